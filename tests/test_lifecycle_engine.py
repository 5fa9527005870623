import support

from decimal import Decimal

import pytest
from sqlalchemy import select, update

from asset_tracker.core.errors import (
    ConflictError,
    DomainValidationError,
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
)
from asset_tracker.core.lifecycle import AssetState, AssetStatus, Disposition
from asset_tracker.crud import assets as assets_crud
from asset_tracker.crud.history import list_history
from asset_tracker.models.asset import Asset, AssetHistory
from asset_tracker.services import lifecycle


@pytest.fixture()
def db_session():
    SessionLocal = support.make_sessionmaker()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def reference(db_session):
    return support.seed_reference(db_session)


def _new(reference, **overrides):
    data = {
        "type": "LAPTOP",
        "serial_number": "SN-0001",
        "description": "ThinkPad T14",
        "purchase_price": "1299.99",
        "location_id": reference["store"].id,
    }
    data.update(overrides)
    return lifecycle.NewAsset(**data)


def _walk(db, asset, *states):
    for state in states:
        asset = lifecycle.transition_asset(db, asset, state, changed_by=None)
    return asset


def test_create_asset_allocates_number_and_writes_history(db_session, reference):
    admin = reference["admin"]
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=admin.id)

    assert asset.asset_number == "04-00001"
    assert asset.state == AssetState.AVAILABLE.value
    assert asset.purchase_price == Decimal("1299.99")
    history = list_history(db_session, asset.id)
    assert len(history) == 1
    assert history[0].previous_state is None
    assert history[0].new_state == "AVAILABLE"
    assert history[0].change_reason == "Asset created"
    assert history[0].changed_by_name == "Ada Admin"


def test_create_asset_validates_input(db_session, reference):
    with pytest.raises(DomainValidationError):
        lifecycle.create_asset(db_session, _new(reference, type="TOASTER"), changed_by=None)
    with pytest.raises(DomainValidationError):
        lifecycle.create_asset(db_session, _new(reference, purchase_price="0"), changed_by=None)
    with pytest.raises(DomainValidationError):
        lifecycle.create_asset(db_session, _new(reference, location_id=9999), changed_by=None)

    lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    with pytest.raises(ConflictError):
        lifecycle.create_asset(db_session, _new(reference, serial_number="sn-0001"), changed_by=None)


def test_supplied_asset_number_must_match_type_and_be_unused(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference, asset_number="04-00100"), changed_by=None)
    assert asset.asset_number == "04-00100"

    with pytest.raises(DomainValidationError):
        lifecycle.create_asset(db_session, _new(reference, serial_number="B", asset_number="05-00001"), changed_by=None)
    with pytest.raises(DomainValidationError):
        lifecycle.create_asset(db_session, _new(reference, serial_number="C", asset_number="4-1"), changed_by=None)
    with pytest.raises(ConflictError):
        lifecycle.create_asset(db_session, _new(reference, serial_number="D", asset_number="04-00100"), changed_by=None)


def test_full_build_flow_records_each_step(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    asset = _walk(db_session, asset, "SIGNED_OUT", "BUILT", "READY_TO_GO")

    assert asset.state == "READY_TO_GO"
    steps = [(entry.previous_state, entry.new_state) for entry in reversed(list_history(db_session, asset.id))]
    assert steps == [
        (None, "AVAILABLE"),
        ("AVAILABLE", "SIGNED_OUT"),
        ("SIGNED_OUT", "BUILT"),
        ("BUILT", "READY_TO_GO"),
    ]


def test_monitor_cannot_be_built(db_session, reference):
    monitor = lifecycle.create_asset(db_session, _new(reference, type="MONITOR", serial_number="MON-1"), changed_by=None)
    monitor = _walk(db_session, monitor, "SIGNED_OUT")
    with pytest.raises(InvalidTransitionError) as excinfo:
        lifecycle.transition_asset(db_session, monitor, "BUILT", changed_by=None)
    assert excinfo.value.details["allowed"] == ["AVAILABLE", "READY_TO_GO"]

    monitor = lifecycle.transition_asset(db_session, monitor, "READY_TO_GO", changed_by=None)
    assert monitor.state == "READY_TO_GO"


def test_invalid_and_same_state_transitions_are_rejected(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition_asset(db_session, asset, "ISSUED", changed_by=None)
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition_asset(db_session, asset, "AVAILABLE", changed_by=None)
    with pytest.raises(DomainValidationError):
        lifecycle.transition_asset(db_session, asset, "LOST", changed_by=None)
    assert len(list_history(db_session, asset.id)) == 1


def test_lost_race_raises_stale_state_and_writes_nothing(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    # Another writer moves the asset behind this session's back.
    db_session.execute(
        update(Asset)
        .where(Asset.id == asset.id)
        .values(state="SIGNED_OUT")
        .execution_options(synchronize_session=False)
    )
    db_session.commit()
    stale = Asset(id=asset.id, asset_number=asset.asset_number, type="LAPTOP", state="AVAILABLE")

    with pytest.raises(StaleStateError):
        lifecycle.transition_asset(db_session, stale, "SIGNED_OUT", changed_by=None)

    rows = db_session.execute(select(AssetHistory).where(AssetHistory.asset_id == asset.id)).scalars().all()
    assert len(rows) == 1


def test_assign_and_unassign(db_session, reference):
    user = reference["user"]
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)

    with pytest.raises(InvalidTransitionError):
        lifecycle.assign_asset(db_session, asset, user, changed_by=None)

    asset = _walk(db_session, asset, "SIGNED_OUT", "BUILT", "READY_TO_GO")
    asset = lifecycle.assign_asset(db_session, asset, user, changed_by=reference["admin"].id)
    assert asset.state == "ISSUED"
    assert asset.assigned_to == "uma@example.com"
    assert asset.employee_id == user.employee_id
    assert asset.department == "IT"
    assert assets_crud.list_assets_for_user(db_session, user) == [asset]

    with pytest.raises(ConflictError):
        lifecycle.unassign_asset(db_session, asset, reference["admin"], Disposition.RESTOCK, changed_by=None)

    asset = lifecycle.unassign_asset(db_session, asset, user, "RECYCLE", changed_by=None)
    assert asset.state == "AVAILABLE"
    assert asset.status == AssetStatus.RECYCLED.value
    assert asset.assigned_to is None
    latest = list_history(db_session, asset.id)[0]
    assert latest.details["disposition"] == "RECYCLE"
    assert latest.details["previous"]["assigned_to"] == "uma@example.com"


def test_restock_marks_asset_active(db_session, reference):
    user = reference["user"]
    asset = lifecycle.create_asset(db_session, _new(reference, status="STOCK"), changed_by=None)
    asset = _walk(db_session, asset, "SIGNED_OUT", "BUILT", "READY_TO_GO")
    asset = lifecycle.assign_asset(db_session, asset, user, changed_by=None)
    asset = lifecycle.unassign_asset(db_session, asset, user, "RESTOCK", changed_by=None)
    assert asset.status == "ACTIVE"


def test_issuing_requires_an_assignee(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    asset = _walk(db_session, asset, "SIGNED_OUT", "BUILT", "READY_TO_GO")

    with pytest.raises(InvalidTransitionError) as excinfo:
        lifecycle.transition_asset(db_session, asset, "ISSUED", changed_by=None)
    assert excinfo.value.details["use"] == "assign"
    with pytest.raises(InvalidTransitionError):
        lifecycle.bulk_transition(db_session, [asset.asset_number], "ISSUED", changed_by=None)

    db_session.refresh(asset)
    assert asset.state == "READY_TO_GO"
    assert asset.assigned_to is None
    assert len(list_history(db_session, asset.id)) == 4


def test_returning_issued_asset_clears_assignment(db_session, reference):
    user = reference["user"]
    asset = lifecycle.create_asset(db_session, _new(reference, status="STOCK"), changed_by=None)
    asset = _walk(db_session, asset, "SIGNED_OUT", "BUILT", "READY_TO_GO")
    asset = lifecycle.assign_asset(db_session, asset, user, changed_by=None)

    asset = lifecycle.transition_asset(db_session, asset, "AVAILABLE", changed_by=None, reason="Returned at desk")
    assert asset.state == "AVAILABLE"
    assert asset.status == "ACTIVE"
    assert (asset.assigned_to, asset.employee_id, asset.department) == (None, None, None)
    assert assets_crud.list_assets_for_user(db_session, user) == []
    latest = list_history(db_session, asset.id)[0]
    assert latest.change_reason == "Returned at desk"
    assert latest.details["disposition"] == "RESTOCK"
    assert latest.details["previous"]["assigned_to"] == "uma@example.com"

    asset = _walk(db_session, asset, "SIGNED_OUT", "BUILT", "READY_TO_GO")
    assert asset in assets_crud.list_available_assets(db_session)["LAPTOP"]
    asset = lifecycle.assign_asset(db_session, asset, user, changed_by=None)
    assert asset.assigned_to == "uma@example.com"


def test_bulk_return_clears_assignment(db_session, reference):
    user = reference["user"]
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    asset = _walk(db_session, asset, "SIGNED_OUT", "BUILT", "READY_TO_GO")
    asset = lifecycle.assign_asset(db_session, asset, user, changed_by=None)

    [returned] = lifecycle.bulk_transition(db_session, [asset.asset_number], "AVAILABLE", changed_by=None)
    assert returned.state == "AVAILABLE"
    assert returned.assigned_to is None
    assert returned.employee_id is None
    assert list_history(db_session, asset.id)[0].details["action"] == "bulk_transition"


def test_bulk_transition_is_all_or_nothing(db_session, reference):
    first = lifecycle.create_asset(db_session, _new(reference, serial_number="A1"), changed_by=None)
    second = lifecycle.create_asset(db_session, _new(reference, serial_number="A2"), changed_by=None)
    second = _walk(db_session, second, "SIGNED_OUT")

    with pytest.raises(InvalidTransitionError) as excinfo:
        lifecycle.bulk_transition(db_session, [first.asset_number, second.asset_number], "SIGNED_OUT", changed_by=None)
    assert excinfo.value.details["invalid"] == [{"asset_number": second.asset_number, "state": "SIGNED_OUT"}]
    db_session.refresh(first)
    assert first.state == "AVAILABLE"

    with pytest.raises(NotFoundError):
        lifecycle.bulk_transition(db_session, [first.asset_number, "04-09999"], "SIGNED_OUT", changed_by=None)

    moved = lifecycle.bulk_transition(db_session, [first.asset_number], "SIGNED_OUT", changed_by=None)
    assert [asset.state for asset in moved] == ["SIGNED_OUT"]


def test_bulk_move_changes_location_and_logs(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    moved = lifecycle.bulk_move(db_session, [asset.asset_number], reference["office"].id)
    assert moved[0].location_id == reference["office"].id
    assert list_history(db_session, asset.id)[0].details["action"] == "move"

    with pytest.raises(DomainValidationError):
        lifecycle.bulk_move(db_session, [asset.asset_number], 9999)


def test_soft_delete_hides_asset_but_keeps_number(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    number = asset.asset_number
    lifecycle.soft_delete_asset(db_session, asset, changed_by=None)

    assert assets_crud.get_asset_by_number(db_session, number) is None
    deleted = assets_crud.get_asset_by_number(db_session, number, include_deleted=True)
    assert deleted.is_deleted
    assert list_history(db_session, asset.id)[0].change_reason == "Asset soft deleted"

    with pytest.raises(StaleStateError):
        lifecycle.transition_asset(db_session, deleted, "SIGNED_OUT", changed_by=None)

    replacement = lifecycle.create_asset(db_session, _new(reference, serial_number="SN-0002"), changed_by=None)
    assert replacement.asset_number == "04-00002"


def test_update_asset_edits_descriptive_fields(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    asset = lifecycle.update_asset(
        db_session,
        asset,
        {"description": "  ThinkPad T14 Gen 4 ", "purchase_price": "1349.5", "location_id": reference["office"].id},
        changed_by=reference["admin"].id,
    )

    assert asset.description == "ThinkPad T14 Gen 4"
    assert asset.purchase_price == Decimal("1349.50")
    assert asset.location_id == reference["office"].id
    assert asset.state == "AVAILABLE"
    latest = list_history(db_session, asset.id)[0]
    assert latest.previous_state == latest.new_state == "AVAILABLE"
    assert latest.details["action"] == "edit"
    assert latest.details["changes"]["purchase_price"] == {"from": "1299.99", "to": "1349.50"}

    lifecycle.update_asset(db_session, asset, {"description": "ThinkPad T14 Gen 4"}, changed_by=None)
    assert len(list_history(db_session, asset.id)) == 2


def test_update_asset_rejects_bad_values(db_session, reference):
    asset = lifecycle.create_asset(db_session, _new(reference), changed_by=None)
    lifecycle.create_asset(db_session, _new(reference, serial_number="SN-0002"), changed_by=None)

    with pytest.raises(ConflictError):
        lifecycle.update_asset(db_session, asset, {"serial_number": "sn-0002"}, changed_by=None)
    with pytest.raises(DomainValidationError):
        lifecycle.update_asset(db_session, asset, {"purchase_price": "0"}, changed_by=None)
    with pytest.raises(DomainValidationError):
        lifecycle.update_asset(db_session, asset, {"location_id": 9999}, changed_by=None)
    with pytest.raises(DomainValidationError):
        lifecycle.update_asset(db_session, asset, {"description": "   "}, changed_by=None)
    with pytest.raises(DomainValidationError) as excinfo:
        lifecycle.update_asset(db_session, asset, {"state": "ISSUED", "assigned_to": "x@example.com"}, changed_by=None)
    assert excinfo.value.details["fields"] == ["assigned_to", "state"]

    # Re-saving its own serial in another case is not a clash.
    asset = lifecycle.update_asset(db_session, asset, {"serial_number": "sn-0001"}, changed_by=None)
    assert asset.serial_number == "sn-0001"
    db_session.refresh(asset)
    assert asset.state == "AVAILABLE"
    assert asset.assigned_to is None

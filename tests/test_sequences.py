import support

import pytest
from sqlalchemy import update

from asset_tracker.core.errors import SequenceError, SequenceExhaustedError
from asset_tracker.core.lifecycle import AssetType
from asset_tracker.crud.sequences import (
    allocate_asset_number,
    ensure_sequences,
    parse_asset_number,
    preview_next_asset_number,
)
from asset_tracker.models.asset import Asset, AssetSequence
from asset_tracker.models._common import utcnow


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


def _insert_asset(db, number, kind=AssetType.LAPTOP, deleted=False, location_id=None):
    asset = Asset(
        asset_number=number,
        type=kind.value,
        serial_number=f"SN-{number}",
        description="Preloaded",
        purchase_price=100,
        location_id=location_id,
        deleted_at=utcnow() if deleted else None,
    )
    db.add(asset)
    db.commit()
    return asset


def test_allocation_is_prefixed_and_strictly_increasing(db_session, reference):
    first = allocate_asset_number(db_session, AssetType.LAPTOP)
    second = allocate_asset_number(db_session, "LAPTOP")
    monitor = allocate_asset_number(db_session, AssetType.MONITOR)
    db_session.commit()

    assert first == "04-00001"
    assert second == "04-00002"
    assert monitor == "05-00001"
    assert db_session.get(AssetSequence, "LAPTOP").next_sequence == 3


def test_allocation_skips_numbers_already_taken(db_session, reference):
    _insert_asset(db_session, "04-00001", location_id=reference["store"].id)
    _insert_asset(db_session, "04-00002", deleted=True, location_id=reference["store"].id)

    assert allocate_asset_number(db_session, AssetType.LAPTOP) == "04-00003"


def test_preview_does_not_consume_the_number(db_session, reference):
    _insert_asset(db_session, "03-00001", kind=AssetType.DESKTOP, location_id=reference["store"].id)

    assert preview_next_asset_number(db_session, AssetType.DESKTOP) == "03-00002"
    assert preview_next_asset_number(db_session, AssetType.DESKTOP) == "03-00002"
    assert allocate_asset_number(db_session, AssetType.DESKTOP) == "03-00002"
    assert preview_next_asset_number(db_session, AssetType.DESKTOP) == "03-00003"


def test_exhausted_sequence_never_wraps(db_session, reference):
    db_session.execute(
        update(AssetSequence).where(AssetSequence.asset_type == "TABLET").values(next_sequence=99999)
    )
    db_session.commit()

    assert allocate_asset_number(db_session, AssetType.TABLET) == "02-99999"
    with pytest.raises(SequenceExhaustedError):
        allocate_asset_number(db_session, AssetType.TABLET)
    with pytest.raises(SequenceExhaustedError):
        preview_next_asset_number(db_session, AssetType.TABLET)


def test_missing_sequence_row_is_an_error(db_session):
    with pytest.raises(SequenceError):
        allocate_asset_number(db_session, AssetType.LAPTOP)
    with pytest.raises(SequenceError):
        preview_next_asset_number(db_session, AssetType.LAPTOP)


def test_ensure_sequences_starts_past_existing_numbers(db_session):
    location = support.locations_crud.create_location(db_session, "Storage Room")
    _insert_asset(db_session, "04-00041", location_id=location.id)

    created = ensure_sequences(db_session)
    db_session.commit()

    assert set(created) == set(AssetType)
    assert db_session.get(AssetSequence, "LAPTOP").next_sequence == 42
    assert db_session.get(AssetSequence, "MONITOR").next_sequence == 1
    assert ensure_sequences(db_session) == []


def test_parse_asset_number():
    assert parse_asset_number("05-00123") == (AssetType.MONITOR, 123)
    for bad in ("5-00123", "05-0123", "09-00001", "05-00000", "0500123"):
        with pytest.raises(ValueError):
            parse_asset_number(bad)

"""The asset lifecycle engine.

All state changes go through :func:`_swap_state`, a compare-and-swap
``UPDATE assets SET state = :new WHERE id = :id AND state = :expected AND
deleted_at IS NULL``. If another request moved the asset first the update
touches no row and :class:`StaleStateError` is raised; nothing is written.
The matching history row is staged on the same session, so the audit trail
and the state change commit or roll back together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import (
    ConflictError,
    DomainValidationError,
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
)
from ..core.lifecycle import (
    ASSET_NUMBER_PREFIXES,
    AssetState,
    AssetStatus,
    AssetType,
    AssignmentType,
    Disposition,
    coerce_state,
    coerce_type,
    is_valid_transition,
    valid_next_states,
)
from ..crud import assets as assets_crud
from ..crud import history as history_crud
from ..crud import locations as locations_crud
from ..crud.sequences import allocate_asset_number, asset_number_exists, parse_asset_number
from ..models._common import utcnow
from ..models.asset import Asset
from ..models.user import User

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


@dataclass
class NewAsset:
    type: AssetType | str
    serial_number: str
    description: str
    purchase_price: Decimal | float | str
    location_id: int
    asset_number: str | None = None
    assignment_type: AssignmentType | str = AssignmentType.INDIVIDUAL
    status: AssetStatus | str = AssetStatus.ACTIVE


def _clean_price(value: Any, *, allow_zero: bool = False) -> Decimal:
    try:
        price = Decimal(str(value)).quantize(_CENT)
    except (InvalidOperation, ValueError, TypeError):
        raise DomainValidationError("purchase_price must be a number", details={"field": "purchase_price"}) from None
    if price < 0 or (price == 0 and not allow_zero):
        raise DomainValidationError("purchase_price must be greater than zero", details={"field": "purchase_price"})
    return price


def _validate_supplied_number(db: Session, asset_number: str, kind: AssetType) -> str:
    asset_number = asset_number.strip()
    try:
        number_type, _sequence = parse_asset_number(asset_number)
    except ValueError as exc:
        raise DomainValidationError(str(exc), details={"field": "asset_number"}) from None
    if number_type is not kind:
        raise DomainValidationError(
            f"Asset number {asset_number} does not carry the {ASSET_NUMBER_PREFIXES[kind]} prefix for {kind.value}",
            details={"field": "asset_number"},
        )
    if asset_number_exists(db, asset_number):
        raise ConflictError(f"Asset number {asset_number} is already in use", details={"asset_number": asset_number})
    return asset_number


def _enum_value(value: Any, enum_cls) -> str:
    if isinstance(value, enum_cls):
        return value.value
    try:
        return enum_cls(str(value).strip().upper()).value
    except ValueError:
        raise DomainValidationError(f"Invalid {enum_cls.__name__}: {value!r}") from None


def build_asset(
    db: Session,
    payload: NewAsset,
    *,
    status: AssetStatus | str | None = None,
    allow_zero_price: bool = False,
) -> Asset:
    """Validate ``payload`` and stage a new AVAILABLE asset on the session.

    Allocates an asset number when none is supplied. Does not commit.
    """

    try:
        kind = coerce_type(payload.type)
    except ValueError as exc:
        raise DomainValidationError(str(exc), details={"field": "type"}) from None

    serial = (payload.serial_number or "").strip()
    description = (payload.description or "").strip()
    if not serial:
        raise DomainValidationError("serial_number is required", details={"field": "serial_number"})
    if not description:
        raise DomainValidationError("description is required", details={"field": "description"})
    price = _clean_price(payload.purchase_price, allow_zero=allow_zero_price)

    if locations_crud.get_location(db, payload.location_id) is None:
        raise DomainValidationError("Unknown location", details={"location_id": payload.location_id})
    if assets_crud.serial_number_exists(db, serial):
        raise ConflictError(f"Serial number {serial} is already registered", details={"serial_number": serial})

    if payload.asset_number and payload.asset_number.strip():
        asset_number = _validate_supplied_number(db, payload.asset_number, kind)
    else:
        asset_number = allocate_asset_number(db, kind)

    asset = Asset(
        asset_number=asset_number,
        type=kind.value,
        state=AssetState.AVAILABLE.value,
        status=_enum_value(status or payload.status, AssetStatus),
        serial_number=serial,
        description=description,
        purchase_price=price,
        location_id=payload.location_id,
        assignment_type=_enum_value(payload.assignment_type, AssignmentType),
    )
    db.add(asset)
    db.flush()
    return asset


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("The change conflicts with existing data", details={"error": str(exc.orig)}) from exc


def create_asset(db: Session, payload: NewAsset, changed_by: int | None) -> Asset:
    try:
        asset = build_asset(db, payload)
        history_crud.record_history(
            db,
            asset,
            previous_state=None,
            new_state=AssetState.AVAILABLE,
            changed_by=changed_by,
            reason="Asset created",
            details={"action": "create", "asset_number": asset.asset_number},
        )
    except Exception:
        db.rollback()
        raise
    _commit(db)
    db.refresh(asset)
    logger.info(
        "asset.created",
        extra={"extra_data": {"asset_number": asset.asset_number, "type": asset.type, "changed_by": changed_by}},
    )
    return asset


def _swap_state(
    db: Session,
    asset: Asset,
    expected: AssetState,
    values: dict[str, Any],
) -> None:
    """Apply ``values`` only if the asset is still live and in ``expected``."""

    values = dict(values)
    values["updated_at"] = utcnow()
    stmt = (
        update(Asset)
        .where(
            Asset.id == asset.id,
            Asset.state == expected.value,
            Asset.deleted_at.is_(None),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        raise StaleStateError(
            f"Asset {asset.asset_number} changed while this request was processed; reload and retry",
            details={"asset_number": asset.asset_number, "expected_state": expected.value},
        )


def _check_transition(asset: Asset, target: AssetState) -> AssetState:
    current = coerce_state(asset.state)
    if current is target:
        raise InvalidTransitionError(
            f"Asset {asset.asset_number} is already {target.value}",
            details={"asset_number": asset.asset_number, "state": current.value},
        )
    if not is_valid_transition(asset.type, current, target):
        raise InvalidTransitionError(
            f"Cannot move {asset.asset_number} from {current.value} to {target.value}",
            details={
                "asset_number": asset.asset_number,
                "from": current.value,
                "to": target.value,
                "allowed": [state.value for state in valid_next_states(asset.type, current)],
            },
        )
    return current


_CLEARED_ASSIGNMENT = {"assigned_to": None, "employee_id": None, "department": None}


def _assignment_snapshot(asset: Asset) -> dict[str, Any]:
    return {
        "state": asset.state,
        "status": asset.status,
        "assigned_to": asset.assigned_to,
        "employee_id": asset.employee_id,
        "department": asset.department,
    }


def _reject_issue(target: AssetState, details: dict[str, Any]) -> None:
    if target is AssetState.ISSUED:
        raise InvalidTransitionError(
            "Assets are issued by assigning them to a user; use the assign operation",
            details={**details, "to": target.value, "use": "assign"},
        )


def _state_change(asset: Asset, current: AssetState, target: AssetState) -> tuple[dict[str, Any], dict[str, Any]]:
    """Column values and extra history details for a plain state change.

    Leaving ISSUED puts the asset back in stock, so the assignment is cleared
    in the same update, as a RESTOCK unassignment would.
    """

    values: dict[str, Any] = {"state": target.value}
    if current is not AssetState.ISSUED:
        return values, {}
    values.update(status=AssetStatus.ACTIVE.value, **_CLEARED_ASSIGNMENT)
    return values, {"disposition": Disposition.RESTOCK.value, "previous": _assignment_snapshot(asset)}


def _finish(db: Session, asset: Asset) -> Asset:
    _commit(db)
    db.refresh(asset)
    return asset


def transition_asset(
    db: Session,
    asset: Asset,
    new_state: AssetState | str,
    changed_by: int | None,
    reason: str | None = None,
    details: dict[str, Any] | None = None,
) -> Asset:
    try:
        target = coerce_state(new_state)
    except ValueError as exc:
        raise DomainValidationError(str(exc), details={"field": "new_state"}) from None

    current = _check_transition(asset, target)
    _reject_issue(target, {"asset_number": asset.asset_number, "from": current.value})
    values, extra = _state_change(asset, current, target)
    try:
        _swap_state(db, asset, current, values)
        history_crud.record_history(
            db,
            asset,
            previous_state=current,
            new_state=target,
            changed_by=changed_by,
            reason=reason or "State transition",
            details={**(details or {}), **extra} or None,
        )
    except Exception:
        db.rollback()
        raise
    _finish(db, asset)
    logger.info(
        "asset.transition",
        extra={
            "extra_data": {
                "asset_number": asset.asset_number,
                "from": current.value,
                "to": target.value,
                "changed_by": changed_by,
            }
        },
    )
    return asset


def assign_asset(db: Session, asset: Asset, user: User, changed_by: int | None) -> Asset:
    """Issue a READY_TO_GO asset to ``user``."""

    current = coerce_state(asset.state)
    if current is not AssetState.READY_TO_GO:
        raise InvalidTransitionError(
            f"Asset {asset.asset_number} must be READY_TO_GO to be assigned (currently {current.value})",
            details={"asset_number": asset.asset_number, "state": current.value},
        )
    if asset.assigned_to:
        raise ConflictError(
            f"Asset {asset.asset_number} is already assigned",
            details={"asset_number": asset.asset_number, "assigned_to": asset.assigned_to},
        )
    if not user.is_active:
        raise DomainValidationError("Cannot assign an asset to an inactive user", details={"user_id": user.id})

    department = user.department_name
    try:
        _swap_state(
            db,
            asset,
            AssetState.READY_TO_GO,
            {
                "state": AssetState.ISSUED.value,
                "status": AssetStatus.ACTIVE.value,
                "assigned_to": user.email,
                "employee_id": user.employee_id,
                "department": department,
            },
        )
        history_crud.record_history(
            db,
            asset,
            previous_state=AssetState.READY_TO_GO,
            new_state=AssetState.ISSUED,
            changed_by=changed_by,
            reason=f"Assigned to {user.name}",
            details={
                "action": "assign",
                "user_id": user.id,
                "assigned_to": user.email,
                "employee_id": user.employee_id,
                "department": department,
            },
        )
    except Exception:
        db.rollback()
        raise
    _finish(db, asset)
    logger.info(
        "asset.assigned",
        extra={"extra_data": {"asset_number": asset.asset_number, "user_id": user.id, "changed_by": changed_by}},
    )
    return asset


def unassign_asset(
    db: Session,
    asset: Asset,
    user: User,
    disposition: Disposition | str,
    changed_by: int | None,
) -> Asset:
    """Return an issued asset to stock, or flag it for recycling."""

    try:
        choice = disposition if isinstance(disposition, Disposition) else Disposition(str(disposition).strip().upper())
    except ValueError:
        raise DomainValidationError(
            f"Invalid disposition: {disposition!r}", details={"allowed": [d.value for d in Disposition]}
        ) from None

    if not asset.assigned_to or asset.assigned_to.lower() != user.email.lower():
        raise ConflictError(
            f"Asset {asset.asset_number} is not assigned to {user.email}",
            details={"asset_number": asset.asset_number, "assigned_to": asset.assigned_to},
        )

    current = _check_transition(asset, AssetState.AVAILABLE)
    new_status = AssetStatus.ACTIVE if choice is Disposition.RESTOCK else AssetStatus.RECYCLED
    previous = _assignment_snapshot(asset)
    try:
        _swap_state(
            db,
            asset,
            current,
            {"state": AssetState.AVAILABLE.value, "status": new_status.value, **_CLEARED_ASSIGNMENT},
        )
        history_crud.record_history(
            db,
            asset,
            previous_state=current,
            new_state=AssetState.AVAILABLE,
            changed_by=changed_by,
            reason=f"Unassigned from {user.name} ({choice.value.lower()})",
            details={
                "action": "unassign",
                "disposition": choice.value,
                "previous": previous,
                "new": {"state": AssetState.AVAILABLE.value, "status": new_status.value},
            },
        )
    except Exception:
        db.rollback()
        raise
    _finish(db, asset)
    logger.info(
        "asset.unassigned",
        extra={"extra_data": {"asset_number": asset.asset_number, "disposition": choice.value}},
    )
    return asset


def _load_all(db: Session, asset_numbers: Iterable[str]) -> list[Asset]:
    numbers = list(dict.fromkeys(number.strip() for number in asset_numbers if number and number.strip()))
    if not numbers:
        raise DomainValidationError("asset_numbers must not be empty")
    found = {asset.asset_number: asset for asset in assets_crud.list_assets_by_numbers(db, numbers)}
    missing = [number for number in numbers if number not in found]
    if missing:
        raise NotFoundError("Some assets were not found", details={"missing": missing})
    return [found[number] for number in numbers]


def bulk_transition(
    db: Session,
    asset_numbers: Iterable[str],
    new_state: AssetState | str,
    changed_by: int | None,
    reason: str | None = None,
) -> list[Asset]:
    """Move every listed asset to ``new_state`` or none of them."""

    try:
        target = coerce_state(new_state)
    except ValueError as exc:
        raise DomainValidationError(str(exc), details={"field": "new_state"}) from None
    _reject_issue(target, {})

    assets = _load_all(db, asset_numbers)
    invalid = []
    for asset in assets:
        current = coerce_state(asset.state)
        if current is target or not is_valid_transition(asset.type, current, target):
            invalid.append({"asset_number": asset.asset_number, "state": current.value})
    if invalid:
        raise InvalidTransitionError(
            f"{len(invalid)} asset(s) cannot move to {target.value}",
            details={"to": target.value, "invalid": invalid},
        )

    try:
        for asset in assets:
            current = coerce_state(asset.state)
            values, extra = _state_change(asset, current, target)
            _swap_state(db, asset, current, values)
            history_crud.record_history(
                db,
                asset,
                previous_state=current,
                new_state=target,
                changed_by=changed_by,
                reason=reason or "Bulk state transition",
                details={"action": "bulk_transition", "count": len(assets), **extra},
            )
    except Exception:
        db.rollback()
        raise
    _commit(db)
    for asset in assets:
        db.refresh(asset)
    logger.info(
        "asset.bulk_transition",
        extra={"extra_data": {"count": len(assets), "to": target.value, "changed_by": changed_by}},
    )
    return assets


def bulk_move(db: Session, asset_numbers: Iterable[str], location_id: int, changed_by: int | None = None) -> list[Asset]:
    location = locations_crud.get_location(db, location_id)
    if location is None:
        raise DomainValidationError("Unknown location", details={"location_id": location_id})
    assets = _load_all(db, asset_numbers)
    try:
        for asset in assets:
            previous_location = asset.location_id
            asset.location_id = location.id
            history_crud.record_history(
                db,
                asset,
                previous_state=asset.state,
                new_state=asset.state,
                changed_by=changed_by,
                reason=f"Moved to {location.name}",
                details={"action": "move", "from_location_id": previous_location, "to_location_id": location.id},
            )
    except Exception:
        db.rollback()
        raise
    _commit(db)
    for asset in assets:
        db.refresh(asset)
    logger.info("asset.bulk_move", extra={"extra_data": {"count": len(assets), "location_id": location.id}})
    return assets


EDITABLE_FIELDS = ("description", "purchase_price", "serial_number", "location_id")


def _required_text(changes: dict[str, Any], field: str) -> str:
    text = (changes[field] or "").strip()
    if not text:
        raise DomainValidationError(f"{field} is required", details={"field": field})
    return text


def _loggable(value: Any) -> Any:
    return str(value) if isinstance(value, Decimal) else value


def update_asset(db: Session, asset: Asset, changes: dict[str, Any], changed_by: int | None) -> Asset:
    """Edit the descriptive fields of a live asset.

    State, status and assignment are left to the lifecycle operations above.
    Unchanged values are ignored; an edit that changes nothing writes no
    history.
    """

    if asset.deleted_at is not None:
        raise NotFoundError(f"Asset {asset.asset_number} not found")
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise DomainValidationError(
            "Only description, purchase_price, serial_number and location_id can be edited",
            details={"fields": unknown},
        )

    cleaned: dict[str, Any] = {}
    if "description" in changes:
        cleaned["description"] = _required_text(changes, "description")
    if "purchase_price" in changes:
        cleaned["purchase_price"] = _clean_price(changes["purchase_price"])
    if "serial_number" in changes:
        serial = _required_text(changes, "serial_number")
        if serial.lower() != asset.serial_number.lower() and assets_crud.serial_number_exists(db, serial):
            raise ConflictError(f"Serial number {serial} is already registered", details={"serial_number": serial})
        cleaned["serial_number"] = serial
    if "location_id" in changes:
        location_id = changes["location_id"]
        if location_id is None or locations_crud.get_location(db, location_id) is None:
            raise DomainValidationError("Unknown location", details={"location_id": location_id})
        cleaned["location_id"] = location_id

    diff = {
        field: {"from": _loggable(getattr(asset, field)), "to": _loggable(value)}
        for field, value in cleaned.items()
        if getattr(asset, field) != value
    }
    if not diff:
        return asset

    try:
        for field in diff:
            setattr(asset, field, cleaned[field])
        history_crud.record_history(
            db,
            asset,
            previous_state=asset.state,
            new_state=asset.state,
            changed_by=changed_by,
            reason="Asset details updated",
            details={"action": "edit", "changes": diff},
        )
    except Exception:
        db.rollback()
        raise
    _finish(db, asset)
    logger.info(
        "asset.updated",
        extra={"extra_data": {"asset_number": asset.asset_number, "fields": sorted(diff), "changed_by": changed_by}},
    )
    return asset


def soft_delete_asset(db: Session, asset: Asset, changed_by: int | None) -> Asset:
    if asset.deleted_at is not None:
        raise NotFoundError(f"Asset {asset.asset_number} not found")
    current = coerce_state(asset.state)
    deleted_at = utcnow()
    try:
        _swap_state(db, asset, current, {"deleted_at": deleted_at})
        history_crud.record_history(
            db,
            asset,
            previous_state=current,
            new_state=current,
            changed_by=changed_by,
            reason="Asset soft deleted",
            details={"action": "delete", "deleted_at": deleted_at.isoformat()},
        )
    except Exception:
        db.rollback()
        raise
    _finish(db, asset)
    logger.info("asset.deleted", extra={"extra_data": {"asset_number": asset.asset_number, "changed_by": changed_by}})
    return asset

"""Read-side queries over the ``assets`` table.

Every query here excludes soft-deleted rows unless ``include_deleted`` is
passed explicitly.
"""

from __future__ import annotations

import math
from typing import Any

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.orm import Session

from ..core.lifecycle import AssetState, AssetType, coerce_state, coerce_type
from ..models.asset import Asset
from ..models.user import User

MAX_PAGE_SIZE = 200
UNASSIGNED = "unassigned"


def _active():
    return Asset.deleted_at.is_(None)


def _filter_conditions(
    asset_type: AssetType | str | None = None,
    state: AssetState | str | None = None,
    status: str | None = None,
    location_id: int | None = None,
    assigned_to: str | None = None,
    search: str | None = None,
) -> list:
    conditions = [_active()]
    if asset_type:
        conditions.append(Asset.type == coerce_type(asset_type).value)
    if state:
        conditions.append(Asset.state == coerce_state(state).value)
    if status:
        conditions.append(Asset.status == status.strip().upper())
    if location_id is not None:
        conditions.append(Asset.location_id == location_id)
    if assigned_to:
        if assigned_to.strip().lower() == UNASSIGNED:
            conditions.append(Asset.assigned_to.is_(None))
        else:
            conditions.append(Asset.assigned_to == assigned_to.strip())
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(Asset.asset_number).like(pattern),
                func.lower(Asset.serial_number).like(pattern),
                func.lower(Asset.description).like(pattern),
                func.lower(Asset.assigned_to).like(pattern),
            )
        )
    return conditions


def list_active_assets(
    db: Session,
    *,
    page: int = 1,
    limit: int = 50,
    sort_order: str = "desc",
    **filters: Any,
) -> tuple[list[Asset], dict[str, Any]]:
    """Return one page of active assets plus pagination metadata.

    ``filters`` accepts asset_type, state, status, location_id, assigned_to
    (``"unassigned"`` for none) and search.
    """

    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    conditions = _filter_conditions(**filters)
    total = db.execute(select(func.count(Asset.id)).where(*conditions)).scalar_one()
    ordering = asc if sort_order == "asc" else desc
    stmt = (
        select(Asset)
        .where(*conditions)
        .order_by(ordering(Asset.created_at), ordering(Asset.id))
        .limit(limit)
        .offset((page - 1) * limit)
    )
    items = list(db.execute(stmt).scalars().unique().all())
    total_pages = math.ceil(total / limit) if total else 0
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }
    return items, pagination


def get_asset_by_number(db: Session, asset_number: str, *, include_deleted: bool = False) -> Asset | None:
    stmt = select(Asset).where(Asset.asset_number == asset_number.strip())
    if not include_deleted:
        stmt = stmt.where(_active())
    return db.execute(stmt).scalars().first()


def get_asset_by_serial(db: Session, serial_number: str, *, include_deleted: bool = False) -> Asset | None:
    stmt = select(Asset).where(func.lower(Asset.serial_number) == serial_number.strip().lower())
    if not include_deleted:
        stmt = stmt.where(_active())
    return db.execute(stmt).scalars().first()


def serial_number_exists(db: Session, serial_number: str) -> bool:
    return get_asset_by_serial(db, serial_number, include_deleted=True) is not None


def list_assets_by_numbers(db: Session, asset_numbers: list[str]) -> list[Asset]:
    stmt = select(Asset).where(Asset.asset_number.in_(asset_numbers), _active())
    return list(db.execute(stmt).scalars().unique().all())


def list_available_assets(db: Session) -> dict[str, list[Asset]]:
    """READY_TO_GO assets nobody holds yet, grouped by type."""

    stmt = (
        select(Asset)
        .where(
            _active(),
            Asset.state == AssetState.READY_TO_GO.value,
            Asset.assigned_to.is_(None),
        )
        .order_by(Asset.type, Asset.asset_number)
    )
    grouped: dict[str, list[Asset]] = {kind.value: [] for kind in AssetType}
    for asset in db.execute(stmt).scalars().unique().all():
        grouped.setdefault(asset.type, []).append(asset)
    return grouped


def count_by_type_in_state(db: Session, state: AssetState | str) -> dict[str, int]:
    stmt = (
        select(Asset.type, func.count(Asset.id))
        .where(_active(), Asset.state == coerce_state(state).value)
        .group_by(Asset.type)
    )
    counts = {kind.value: 0 for kind in AssetType}
    for kind, count in db.execute(stmt).all():
        counts[kind] = count
    return counts


def count_by_state(db: Session) -> dict[str, int]:
    stmt = select(Asset.state, func.count(Asset.id)).where(_active()).group_by(Asset.state)
    counts = {state.value: 0 for state in AssetState}
    for state, count in db.execute(stmt).all():
        counts[state] = count
    return counts


def count_by_type(db: Session) -> dict[str, int]:
    stmt = select(Asset.type, func.count(Asset.id)).where(_active()).group_by(Asset.type)
    counts = {kind.value: 0 for kind in AssetType}
    for kind, count in db.execute(stmt).all():
        counts[kind] = count
    return counts


def list_assets_for_user(db: Session, user: User) -> list[Asset]:
    stmt = (
        select(Asset)
        .where(_active(), Asset.assigned_to == user.email)
        .order_by(Asset.asset_number)
    )
    return list(db.execute(stmt).scalars().unique().all())


def list_all_active(db: Session) -> list[Asset]:
    stmt = select(Asset).where(_active()).order_by(Asset.asset_number)
    return list(db.execute(stmt).scalars().unique().all())


def export_assets(db: Session, **filters: Any) -> list[Asset]:
    """Every active asset matching ``filters``, ordered by asset number."""

    stmt = select(Asset).where(*_filter_conditions(**filters)).order_by(Asset.asset_number)
    return list(db.execute(stmt).scalars().unique().all())

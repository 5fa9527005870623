from __future__ import annotations

from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.lifecycle import HoldingStatus
from ..models.holding import HoldingAsset


def list_holding_assets(db: Session, status: HoldingStatus | str | None = HoldingStatus.PENDING) -> list[HoldingAsset]:
    stmt = select(HoldingAsset).order_by(desc(HoldingAsset.imported_at), desc(HoldingAsset.id))
    if status:
        value = status.value if isinstance(status, HoldingStatus) else str(status).lower()
        stmt = stmt.where(HoldingAsset.status == value)
    return list(db.execute(stmt).scalars().all())


def get_holding_asset(db: Session, holding_id: int) -> HoldingAsset | None:
    return db.get(HoldingAsset, holding_id)


def holding_serial_exists(db: Session, serial_number: str) -> bool:
    stmt = select(HoldingAsset.id).where(func.lower(HoldingAsset.serial_number) == serial_number.strip().lower())
    return db.execute(stmt).first() is not None


def add_holding_asset(
    db: Session,
    *,
    serial_number: str,
    description: str,
    supplier: str | None = None,
    imported_by: int | None = None,
    raw_data: dict[str, Any] | None = None,
) -> HoldingAsset:
    """Stage a pending holding row. The caller commits."""

    holding = HoldingAsset(
        serial_number=serial_number.strip(),
        description=description.strip(),
        supplier=(supplier or "").strip() or None,
        imported_by=imported_by,
        status=HoldingStatus.PENDING.value,
        raw_data=raw_data,
    )
    db.add(holding)
    return holding


def count_pending(db: Session) -> int:
    stmt = select(func.count(HoldingAsset.id)).where(HoldingAsset.status == HoldingStatus.PENDING.value)
    return db.execute(stmt).scalar_one()

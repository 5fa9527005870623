from __future__ import annotations

from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.lifecycle import AssetState
from ..models.asset import Asset, AssetHistory
from ..models._common import utcnow


def _state_value(state: AssetState | str | None) -> str | None:
    if state is None:
        return None
    return state.value if isinstance(state, AssetState) else str(state)


def record_history(
    db: Session,
    asset: Asset,
    *,
    previous_state: AssetState | str | None,
    new_state: AssetState | str,
    changed_by: int | None,
    reason: str | None = None,
    details: dict[str, Any] | None = None,
) -> AssetHistory:
    """Stage an audit row on the current transaction. The caller commits."""

    entry = AssetHistory(
        asset_id=asset.id,
        previous_state=_state_value(previous_state),
        new_state=_state_value(new_state),
        changed_by=changed_by,
        change_reason=reason,
        details=details,
        timestamp=utcnow(),
    )
    db.add(entry)
    return entry


def list_history(db: Session, asset_id: int) -> list[AssetHistory]:
    """Return every audit row for an asset, newest first."""

    stmt = (
        select(AssetHistory)
        .where(AssetHistory.asset_id == asset_id)
        .order_by(desc(AssetHistory.timestamp), desc(AssetHistory.id))
    )
    return list(db.execute(stmt).scalars().all())


def last_changed_by_name(db: Session, asset_id: int) -> str | None:
    stmt = (
        select(AssetHistory)
        .where(AssetHistory.asset_id == asset_id)
        .order_by(desc(AssetHistory.timestamp), desc(AssetHistory.id))
        .limit(1)
    )
    entry = db.execute(stmt).scalars().first()
    return entry.changed_by_name if entry else None


def recent_history(db: Session, limit: int = 5) -> list[AssetHistory]:
    stmt = select(AssetHistory).order_by(desc(AssetHistory.timestamp), desc(AssetHistory.id)).limit(limit)
    return list(db.execute(stmt).scalars().all())

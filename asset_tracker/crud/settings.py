from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.settings import DEFAULT_REPORT_CACHE_MINUTES, SystemSettings

DEFAULT_DEPRECIATION: dict[str, Any] = {
    "method": "straight",
    "years": 4,
    "declining_percents": [50, 25, 12.5, 12.5],
}


def get_settings_row(db: Session) -> SystemSettings:
    """Return the single settings row, creating it with defaults if missing."""

    row = db.execute(select(SystemSettings).order_by(SystemSettings.id).limit(1)).scalars().first()
    if row is None:
        row = SystemSettings(
            report_cache_duration=DEFAULT_REPORT_CACHE_MINUTES,
            depreciation_settings=dict(DEFAULT_DEPRECIATION),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def effective_depreciation(row: SystemSettings) -> dict[str, Any]:
    """Merge stored depreciation settings over the defaults."""

    merged = dict(DEFAULT_DEPRECIATION)
    stored = row.depreciation_settings if isinstance(row.depreciation_settings, dict) else {}
    if stored.get("method") in ("straight", "declining"):
        merged["method"] = stored["method"]
    if isinstance(stored.get("years"), int) and stored["years"] >= 1:
        merged["years"] = stored["years"]
    percents = stored.get("declining_percents")
    if isinstance(percents, list) and percents:
        merged["declining_percents"] = list(percents)
    return merged


def update_settings(
    db: Session,
    *,
    report_cache_duration: int | None = None,
    depreciation_settings: dict[str, Any] | None = None,
) -> SystemSettings:
    row = get_settings_row(db)
    if report_cache_duration is not None:
        if not 1 <= report_cache_duration <= 1440:
            raise ValueError("report_cache_duration must be between 1 and 1440 minutes")
        row.report_cache_duration = report_cache_duration
    if depreciation_settings is not None:
        # Reassign so the JSON column is flagged dirty.
        row.depreciation_settings = dict(depreciation_settings)
    db.commit()
    db.refresh(row)
    return row

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud import settings as settings_crud
from ..db.session import get_db
from ..deps.auth import require_admin, require_user
from ..schemas.settings import DepreciationSettings, SettingsOut, SettingsUpdate

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


def _out(row) -> SettingsOut:
    return SettingsOut(
        report_cache_duration=row.report_cache_duration,
        depreciation_settings=DepreciationSettings(**settings_crud.effective_depreciation(row)),
        updated_at=row.updated_at,
    )


@router.get("", response_model=SettingsOut, dependencies=[Depends(require_user)])
def api_get(db: Session = Depends(get_db)):
    return _out(settings_crud.get_settings_row(db))


@router.put("", response_model=SettingsOut, dependencies=[Depends(require_admin)])
def api_update(payload: SettingsUpdate, db: Session = Depends(get_db)):
    depreciation = payload.depreciation_settings.model_dump() if payload.depreciation_settings else None
    try:
        row = settings_crud.update_settings(
            db,
            report_cache_duration=payload.report_cache_duration,
            depreciation_settings=depreciation,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _out(row)

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.lifecycle import AssetState, AssetStatus, AssetType
from ..crud import assets as assets_crud
from ..crud import locations as locations_crud
from ..crud import users as users_crud
from ..crud.settings import get_settings_row
from ..db.session import get_db
from ..deps.auth import require_admin, require_user
from ..services import export, reporting

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

ExportFormat = Literal["csv", "pdf"]


def _cache_headers(db: Session) -> dict[str, str]:
    minutes = get_settings_row(db).report_cache_duration
    return {"Cache-Control": f"private, max-age={minutes * 60}"}


def _json(db: Session, payload) -> JSONResponse:
    return JSONResponse(jsonable_encoder(payload), headers=_cache_headers(db))


def _export(
    db: Session,
    name: str,
    title: str,
    columns,
    rows,
    fmt: ExportFormat,
    filters: dict | None = None,
) -> Response:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    headers = _cache_headers(db)
    if fmt == "pdf":
        body = export.render_pdf(title, columns, rows, filters)
        headers["Content-Disposition"] = f'attachment; filename="{name}-{stamp}.pdf"'
        return Response(content=body, media_type="application/pdf", headers=headers)
    body = export.render_csv(columns, rows)
    headers["Content-Disposition"] = f'attachment; filename="{name}-{stamp}.csv"'
    return Response(content=body, media_type="text/csv; charset=utf-8", headers=headers)


@router.get("/dashboard", dependencies=[Depends(require_user)])
def api_dashboard(db: Session = Depends(get_db)):
    return _json(db, reporting.dashboard(db))


@router.get("/inventory-summary", dependencies=[Depends(require_user)])
def api_inventory_summary(db: Session = Depends(get_db)):
    return _json(db, reporting.inventory_summary(db))


@router.get("/financial-summary", dependencies=[Depends(require_admin)])
def api_financial_summary(db: Session = Depends(get_db)):
    return _json(db, reporting.financial_summary(db))


@router.get("/assets/export", dependencies=[Depends(require_user)])
def api_export_assets(
    format: ExportFormat = "csv",
    type: Optional[AssetType] = None,
    state: Optional[AssetState] = None,
    status: Optional[AssetStatus] = None,
    location_id: Optional[int] = None,
    assigned_to: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    filters = {
        "type": type.value if type else None,
        "state": state.value if state else None,
        "status": status.value if status else None,
        "location_id": location_id,
        "assigned_to": assigned_to,
        "search": search,
    }
    assets = assets_crud.export_assets(
        db,
        asset_type=type,
        state=state,
        status=filters["status"],
        location_id=location_id,
        assigned_to=assigned_to,
        search=search,
    )
    return _export(db, "assets", "Asset Register", export.ASSET_COLUMNS, export.asset_rows(assets), format, filters)


@router.get("/users/export", dependencies=[Depends(require_admin)])
def api_export_users(format: ExportFormat = "csv", db: Session = Depends(get_db)):
    rows = export.user_rows(users_crud.list_users(db))
    return _export(db, "users", "Users", export.USER_COLUMNS, rows, format)


@router.get("/locations/export", dependencies=[Depends(require_user)])
def api_export_locations(format: ExportFormat = "csv", db: Session = Depends(get_db)):
    rows = export.location_rows(locations_crud.list_locations(db))
    return _export(db, "locations", "Locations", export.LOCATION_COLUMNS, rows, format)

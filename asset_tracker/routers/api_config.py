from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.config import settings
from ..db.session import get_db
from ..deps.auth import require_admin, require_user
from ..schemas.tenant import (
    CustomAssetStateOut,
    CustomAssetTypeOut,
    LabelPreviewOut,
    TenantConfigOut,
    TenantConfigUpdate,
)
from ..services import tenant_config

router = APIRouter(prefix="/api/v1/config", tags=["configuration"])


def _tenant(tenant_id: str | None) -> str:
    return tenant_id or settings.DEFAULT_TENANT_ID


@router.get("/tenant", response_model=TenantConfigOut, dependencies=[Depends(require_user)])
def api_get_tenant(tenant_id: str | None = None, db: Session = Depends(get_db)):
    return TenantConfigOut.model_validate(tenant_config.ensure_tenant(db, _tenant(tenant_id)))


@router.put("/tenant", response_model=TenantConfigOut, dependencies=[Depends(require_admin)])
def api_update_tenant(payload: TenantConfigUpdate, tenant_id: str | None = None, db: Session = Depends(get_db)):
    config = tenant_config.upsert_tenant_config(db, _tenant(tenant_id), payload.model_dump(exclude_none=True))
    return TenantConfigOut.model_validate(config)


@router.get("/asset-types", response_model=list[CustomAssetTypeOut], dependencies=[Depends(require_user)])
def api_asset_types(tenant_id: str | None = None, db: Session = Depends(get_db)):
    return [CustomAssetTypeOut.model_validate(row) for row in tenant_config.list_asset_types(db, _tenant(tenant_id))]


@router.get("/asset-states", response_model=list[CustomAssetStateOut], dependencies=[Depends(require_user)])
def api_asset_states(tenant_id: str | None = None, db: Session = Depends(get_db)):
    return [CustomAssetStateOut.model_validate(row) for row in tenant_config.list_asset_states(db, _tenant(tenant_id))]


@router.get("/label-preview", response_model=LabelPreviewOut, dependencies=[Depends(require_user)])
def api_label_preview(
    type_code: str = Query(..., min_length=1, max_length=10),
    sequence: int = Query(1, ge=0),
    tenant_id: str | None = None,
    db: Session = Depends(get_db),
):
    config = tenant_config.ensure_tenant(db, _tenant(tenant_id))
    return LabelPreviewOut(label=tenant_config.format_asset_label(config, type_code, sequence))

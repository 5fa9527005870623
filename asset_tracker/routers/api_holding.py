from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..core.lifecycle import HoldingStatus
from ..crud import holding as holding_crud
from ..db.session import get_db
from ..deps.auth import AuthContext, require_admin
from ..schemas.asset import AssetOut
from ..schemas.holding import HoldingAssetOut, ImportResultOut, PromoteRequest
from ..services import importer

router = APIRouter(prefix="/api/v1/holding-assets", tags=["holding"])


@router.get("", response_model=list[HoldingAssetOut], dependencies=[Depends(require_admin)])
def api_list(status: Optional[HoldingStatus] = HoldingStatus.PENDING, db: Session = Depends(get_db)):
    return [HoldingAssetOut.model_validate(item) for item in holding_crud.list_holding_assets(db, status)]


@router.post("/import", response_model=ImportResultOut)
async def api_import(
    file: UploadFile = File(...),
    context: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    content = await file.read()
    frame = importer.read_upload(file.filename or "", content)
    result = importer.import_holding_assets(db, frame, imported_by=context.user_id)
    return ImportResultOut(**result.as_dict())


@router.post("/{holding_id}/promote", response_model=AssetOut, status_code=201)
def api_promote(
    holding_id: int,
    payload: PromoteRequest,
    context: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    holding = holding_crud.get_holding_asset(db, holding_id)
    if holding is None:
        raise NotFoundError(f"Holding asset {holding_id} not found", details={"holding_id": holding_id})
    asset = importer.promote_holding_asset(
        db,
        holding,
        asset_type=payload.type.value,
        location_id=payload.location_id,
        changed_by=context.user_id,
        asset_number=payload.asset_number,
        purchase_price=payload.purchase_price,
    )
    return AssetOut.model_validate(asset)

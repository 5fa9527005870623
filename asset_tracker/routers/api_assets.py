from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..core.lifecycle import AssetState, AssetStatus, AssetType, valid_next_states
from ..crud import assets as assets_crud
from ..crud import history as history_crud
from ..crud.sequences import preview_next_asset_number
from ..crud.users import get_user
from ..db.session import get_db
from ..deps.auth import AuthContext, require_admin, require_user
from ..models.asset import Asset
from ..schemas.asset import (
    AssetCreate,
    AssetOut,
    AssetPage,
    AssetUpdate,
    AssignRequest,
    BulkRequest,
    BulkResult,
    HistoryOut,
    NextNumberOut,
    Pagination,
    TransitionRequest,
    TransitionsOut,
    UnassignRequest,
)
from ..services import lifecycle
from ..services.lookup import lookup_by_code

router = APIRouter(prefix="/api/v1/assets", tags=["assets"])


def _get_or_404(db: Session, asset_number: str) -> Asset:
    asset = assets_crud.get_asset_by_number(db, asset_number)
    if asset is None:
        raise NotFoundError(f"Asset {asset_number} not found", details={"asset_number": asset_number})
    return asset


def _user_or_404(db: Session, user_id: int):
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
    return user


@router.get("", response_model=AssetPage, dependencies=[Depends(require_user)])
def api_list(
    type: Optional[AssetType] = None,
    state: Optional[AssetState] = None,
    status: Optional[AssetStatus] = None,
    location_id: Optional[int] = None,
    assigned_to: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=assets_crud.MAX_PAGE_SIZE),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    items, pagination = assets_crud.list_active_assets(
        db,
        asset_type=type,
        state=state,
        status=status.value if status else None,
        location_id=location_id,
        assigned_to=assigned_to,
        search=search,
        page=page,
        limit=limit,
        sort_order=sort_order,
    )
    return AssetPage(items=[AssetOut.model_validate(asset) for asset in items], pagination=Pagination(**pagination))


@router.post("", response_model=AssetOut, status_code=201)
def api_create(payload: AssetCreate, context: AuthContext = Depends(require_admin), db: Session = Depends(get_db)):
    asset = lifecycle.create_asset(db, lifecycle.NewAsset(**payload.model_dump()), changed_by=context.user_id)
    return AssetOut.model_validate(asset)


@router.get("/next-number", response_model=NextNumberOut, dependencies=[Depends(require_user)])
def api_next_number(type: AssetType, db: Session = Depends(get_db)):
    return NextNumberOut(type=type, asset_number=preview_next_asset_number(db, type))


@router.get("/available", response_model=dict[str, list[AssetOut]], dependencies=[Depends(require_user)])
def api_available(db: Session = Depends(get_db)):
    grouped = assets_crud.list_available_assets(db)
    return {kind: [AssetOut.model_validate(asset) for asset in assets] for kind, assets in grouped.items()}


@router.get("/building-by-type", response_model=dict[str, int], dependencies=[Depends(require_user)])
def api_building_by_type(db: Session = Depends(get_db)):
    return assets_crud.count_by_type_in_state(db, AssetState.BUILT)


@router.get("/ready-to-go-by-type", response_model=dict[str, int], dependencies=[Depends(require_user)])
def api_ready_to_go_by_type(db: Session = Depends(get_db)):
    return assets_crud.count_by_type_in_state(db, AssetState.READY_TO_GO)


@router.get("/lookup/{code}", response_model=AssetOut, dependencies=[Depends(require_user)])
def api_lookup(code: str, db: Session = Depends(get_db)):
    return AssetOut.model_validate(lookup_by_code(db, code))


@router.put("/bulk", response_model=BulkResult)
def api_bulk(payload: BulkRequest, context: AuthContext = Depends(require_admin), db: Session = Depends(get_db)):
    if payload.action == "state_transition":
        assets = lifecycle.bulk_transition(
            db, payload.asset_numbers, payload.new_state, changed_by=context.user_id, reason=payload.reason
        )
    else:
        assets = lifecycle.bulk_move(db, payload.asset_numbers, payload.location_id, changed_by=context.user_id)
    return BulkResult(updated=len(assets), items=[AssetOut.model_validate(asset) for asset in assets])


@router.get("/{asset_number}", response_model=AssetOut, dependencies=[Depends(require_user)])
def api_get(asset_number: str, db: Session = Depends(get_db)):
    return AssetOut.model_validate(_get_or_404(db, asset_number))


@router.patch("/{asset_number}", response_model=AssetOut)
def api_update(
    asset_number: str,
    payload: AssetUpdate,
    context: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    asset = _get_or_404(db, asset_number)
    changes = payload.model_dump(exclude_unset=True)
    return AssetOut.model_validate(lifecycle.update_asset(db, asset, changes, changed_by=context.user_id))


@router.get("/{asset_number}/history", response_model=list[HistoryOut], dependencies=[Depends(require_user)])
def api_history(asset_number: str, db: Session = Depends(get_db)):
    asset = assets_crud.get_asset_by_number(db, asset_number, include_deleted=True)
    if asset is None:
        raise NotFoundError(f"Asset {asset_number} not found", details={"asset_number": asset_number})
    return [HistoryOut.model_validate(entry) for entry in history_crud.list_history(db, asset.id)]


@router.get("/{asset_number}/transitions", response_model=TransitionsOut, dependencies=[Depends(require_user)])
def api_transitions(asset_number: str, db: Session = Depends(get_db)):
    asset = _get_or_404(db, asset_number)
    return TransitionsOut(
        asset_number=asset.asset_number,
        type=asset.type,
        state=asset.state,
        valid_next_states=valid_next_states(asset.type, asset.state),
    )


@router.post("/{asset_number}/transition", response_model=AssetOut)
def api_transition(
    asset_number: str,
    payload: TransitionRequest,
    context: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    asset = _get_or_404(db, asset_number)
    asset = lifecycle.transition_asset(
        db, asset, payload.new_state, changed_by=context.user_id, reason=payload.reason, details=payload.details
    )
    return AssetOut.model_validate(asset)


@router.post("/{asset_number}/assign", response_model=AssetOut)
def api_assign(
    asset_number: str,
    payload: AssignRequest,
    context: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    asset = _get_or_404(db, asset_number)
    user = _user_or_404(db, payload.user_id)
    return AssetOut.model_validate(lifecycle.assign_asset(db, asset, user, changed_by=context.user_id))


@router.post("/{asset_number}/unassign", response_model=AssetOut)
def api_unassign(
    asset_number: str,
    payload: UnassignRequest,
    context: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    asset = _get_or_404(db, asset_number)
    user = _user_or_404(db, payload.user_id)
    asset = lifecycle.unassign_asset(db, asset, user, payload.disposition, changed_by=context.user_id)
    return AssetOut.model_validate(asset)


@router.delete("/{asset_number}", response_model=AssetOut)
def api_delete(asset_number: str, context: AuthContext = Depends(require_admin), db: Session = Depends(get_db)):
    asset = _get_or_404(db, asset_number)
    return AssetOut.model_validate(lifecycle.soft_delete_asset(db, asset, changed_by=context.user_id))

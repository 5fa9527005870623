from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import require_user
from ..schemas.asset import AssetOut
from ..schemas.search import LocationOut, SearchResults
from ..schemas.user import UserOut
from ..services.lookup import global_search

router = APIRouter(prefix="/api/v1/search", tags=["search"])


@router.get("", response_model=SearchResults, dependencies=[Depends(require_user)])
def api_search(q: str = Query("", max_length=200), db: Session = Depends(get_db)):
    found = global_search(db, q)
    return SearchResults(
        assets=[AssetOut.model_validate(asset) for asset in found["assets"]],
        users=[UserOut.model_validate(user) for user in found["users"]],
        locations=[LocationOut.model_validate(location) for location in found["locations"]],
    )

from __future__ import annotations

from pydantic import BaseModel

from .asset import AssetOut
from .user import UserOut


class LocationOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    is_active: bool

    model_config = {"from_attributes": True}


class SearchResults(BaseModel):
    assets: list[AssetOut]
    users: list[UserOut]
    locations: list[LocationOut]

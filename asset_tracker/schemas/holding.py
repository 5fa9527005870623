from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..core.lifecycle import AssetType


class HoldingAssetOut(BaseModel):
    id: int
    serial_number: str
    description: str
    supplier: Optional[str] = None
    imported_by: Optional[int] = None
    imported_at: datetime
    status: str
    raw_data: Optional[dict[str, Any]] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class PromoteRequest(BaseModel):
    type: AssetType
    location_id: int
    asset_number: Optional[str] = Field(default=None, pattern=r"^\d{2}-\d{5}$")
    purchase_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class ImportResultOut(BaseModel):
    imported: int
    skipped: int
    duplicates: list[str] = Field(default_factory=list)
    errors: list[dict[str, Any]] = Field(default_factory=list)

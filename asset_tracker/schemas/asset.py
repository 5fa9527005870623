from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..core.lifecycle import AssetState, AssetStatus, AssetType, AssignmentType, Disposition


class AssetCreate(BaseModel):
    type: AssetType
    serial_number: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    purchase_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    location_id: int
    asset_number: Optional[str] = Field(default=None, pattern=r"^\d{2}-\d{5}$")
    assignment_type: AssignmentType = AssignmentType.INDIVIDUAL
    status: AssetStatus = AssetStatus.ACTIVE


class AssetUpdate(BaseModel):
    """Descriptive fields only; state and assignment have their own routes."""

    model_config = {"extra": "forbid"}

    description: Optional[str] = Field(default=None, min_length=1)
    purchase_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    serial_number: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location_id: Optional[int] = None


class AssetOut(BaseModel):
    id: int
    asset_number: Optional[str]
    type: str
    type_label: str
    state: str
    state_label: str
    status: str
    serial_number: str
    description: str
    purchase_price: Decimal
    location_id: int
    location_name: Optional[str] = None
    assignment_type: str
    assigned_to: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    is_deleted: bool = False

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class AssetPage(BaseModel):
    items: list[AssetOut]
    pagination: Pagination


class HistoryOut(BaseModel):
    id: int
    asset_id: int
    previous_state: Optional[str] = None
    new_state: str
    changed_by: Optional[int] = None
    changed_by_name: str
    change_reason: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    timestamp: datetime

    model_config = {"from_attributes": True}


class TransitionRequest(BaseModel):
    new_state: AssetState
    reason: Optional[str] = Field(default=None, max_length=500)
    details: Optional[dict[str, Any]] = None


class TransitionsOut(BaseModel):
    asset_number: str
    type: str
    state: str
    valid_next_states: list[AssetState]


class AssignRequest(BaseModel):
    user_id: int


class UnassignRequest(BaseModel):
    user_id: int
    disposition: Disposition = Disposition.RESTOCK


class BulkRequest(BaseModel):
    action: Literal["state_transition", "move"]
    asset_numbers: list[str] = Field(..., min_length=1)
    new_state: Optional[AssetState] = None
    location_id: Optional[int] = None
    reason: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_action_fields(self) -> "BulkRequest":
        if self.action == "state_transition" and self.new_state is None:
            raise ValueError("new_state is required for state_transition")
        if self.action == "move" and self.location_id is None:
            raise ValueError("location_id is required for move")
        return self


class BulkResult(BaseModel):
    updated: int
    items: list[AssetOut]


class NextNumberOut(BaseModel):
    type: AssetType
    asset_number: str

from __future__ import annotations

from pydantic import BaseModel, Field


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    employee_id: str
    role: str
    location_id: int
    location_name: str | None = None
    department_id: int
    department_name: str | None = None
    is_active: bool

    model_config = {"from_attributes": True}


class NextEmployeeIdOut(BaseModel):
    employee_id: str


class PasswordResetRequest(BaseModel):
    new_password: str = Field(..., min_length=1)


class PasswordResetOut(BaseModel):
    user_id: int
    strength: int
    strength_label: str

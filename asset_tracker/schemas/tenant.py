from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TenantConfigOut(BaseModel):
    tenant_id: str
    company_name: str
    company_prefix: str
    label_format: str
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None

    model_config = {"from_attributes": True}


class TenantConfigUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company_prefix: Optional[str] = Field(default=None, min_length=1, max_length=10)
    label_format: Optional[str] = Field(default=None, max_length=100)
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None


class CustomAssetTypeOut(BaseModel):
    type_code: str
    type_name: str
    category: Optional[str] = None
    icon_name: Optional[str] = None

    model_config = {"from_attributes": True}


class CustomAssetStateOut(BaseModel):
    state_code: str
    state_name: str
    state_color: str
    state_order: int
    is_start_state: bool
    is_end_state: bool

    model_config = {"from_attributes": True}


class LabelPreviewOut(BaseModel):
    label: str

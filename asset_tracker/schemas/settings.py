from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class DepreciationSettings(BaseModel):
    method: Literal["straight", "declining"] = "straight"
    years: int = Field(default=4, ge=1, le=50)
    declining_percents: list[float] = Field(default_factory=lambda: [50, 25, 12.5, 12.5])

    @field_validator("declining_percents")
    @classmethod
    def check_percents(cls, value: list[float]) -> list[float]:
        for percent in value:
            if not 0 <= percent <= 100:
                raise ValueError("declining_percents must be between 0 and 100")
        return value


class SettingsOut(BaseModel):
    report_cache_duration: int
    depreciation_settings: DepreciationSettings
    updated_at: Optional[datetime] = None


class SettingsUpdate(BaseModel):
    report_cache_duration: Optional[int] = Field(default=None, ge=1, le=1440)
    depreciation_settings: Optional[DepreciationSettings] = None

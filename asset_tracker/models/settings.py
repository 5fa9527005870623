from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer

from ..db.session import Base
from ._common import utcnow

DEFAULT_REPORT_CACHE_MINUTES = 30


class SystemSettings(Base):
    """Single-row table holding runtime-editable settings."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    report_cache_duration = Column(Integer, nullable=False, default=DEFAULT_REPORT_CACHE_MINUTES)
    depreciation_settings = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

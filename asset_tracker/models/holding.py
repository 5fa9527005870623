from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from ..core.lifecycle import HoldingStatus
from ..db.session import Base
from ._common import utcnow


class HoldingAsset(Base):
    """An imported device still waiting for an asset number."""

    __tablename__ = "holding_assets"

    id = Column(Integer, primary_key=True, index=True)
    serial_number = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=False)
    supplier = Column(String(255), nullable=True)
    imported_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    imported_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    status = Column(String(16), nullable=False, default=HoldingStatus.PENDING.value, index=True)
    raw_data = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

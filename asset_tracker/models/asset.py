from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..core.lifecycle import ASSET_STATE_LABELS, ASSET_TYPE_LABELS, AssetState, AssetStatus, AssetType, AssignmentType
from ..db.session import Base
from ._common import utcnow


class Asset(Base):
    """A tracked piece of hardware.

    ``asset_number`` is ``PP-NNNNN`` where ``PP`` is the type prefix. Rows are
    never removed; ``deleted_at`` marks a soft delete and hides the asset from
    every active query while keeping its number reserved.
    """

    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    asset_number = Column(String(10), nullable=True, unique=True, index=True)
    type = Column(String(32), nullable=False, index=True)
    state = Column(String(32), nullable=False, default=AssetState.AVAILABLE.value, index=True)
    status = Column(String(16), nullable=False, default=AssetStatus.HOLDING.value)
    serial_number = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=False)
    purchase_price = Column(Numeric(10, 2), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    assignment_type = Column(String(16), nullable=False, default=AssignmentType.INDIVIDUAL.value)
    assigned_to = Column(String(255), nullable=True)
    employee_id = Column(String(50), nullable=True)
    department = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    location = relationship("Location", lazy="joined")
    history = relationship(
        "AssetHistory",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="AssetHistory.timestamp.desc()",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def location_name(self) -> str | None:
        return self.location.name if self.location else None

    @property
    def state_label(self) -> str:
        try:
            return ASSET_STATE_LABELS[AssetState(self.state)]
        except ValueError:
            return self.state

    @property
    def type_label(self) -> str:
        try:
            return ASSET_TYPE_LABELS[AssetType(self.type)]
        except ValueError:
            return self.type


class AssetHistory(Base):
    """Append-only audit row written alongside every lifecycle change."""

    __tablename__ = "asset_history"

    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    previous_state = Column(String(32), nullable=True)
    new_state = Column(String(32), nullable=False)
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    change_reason = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    asset = relationship("Asset", back_populates="history")
    user = relationship("User", lazy="joined")

    @property
    def changed_by_name(self) -> str:
        return self.user.name if self.user else "System"

    @property
    def asset_number(self) -> str | None:
        return self.asset.asset_number if self.asset else None


class AssetSequence(Base):
    __tablename__ = "asset_sequences"

    asset_type = Column(String(32), primary_key=True)
    next_sequence = Column(Integer, nullable=False, default=1)

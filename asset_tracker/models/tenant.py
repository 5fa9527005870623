from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint

from ..db.session import Base
from ._common import utcnow


class TenantConfig(Base):
    __tablename__ = "tenant_configs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(50), nullable=False, unique=True)
    company_name = Column(String(255), nullable=False)
    company_prefix = Column(String(10), nullable=False)
    label_format = Column(String(100), nullable=False, default="{prefix}-{type}-{number}")
    logo_url = Column(Text, nullable=True)
    primary_color = Column(String(7), nullable=True)
    secondary_color = Column(String(7), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class CustomAssetType(Base):
    __tablename__ = "custom_asset_types"
    __table_args__ = (UniqueConstraint("tenant_id", "type_code", name="uq_custom_asset_types_tenant_code"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(50), nullable=False, index=True)
    type_code = Column(String(10), nullable=False)
    type_name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    icon_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class CustomAssetState(Base):
    __tablename__ = "custom_asset_states"
    __table_args__ = (UniqueConstraint("tenant_id", "state_code", name="uq_custom_asset_states_tenant_code"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(50), nullable=False, index=True)
    state_code = Column(String(50), nullable=False)
    state_name = Column(String(255), nullable=False)
    state_color = Column(String(7), nullable=False)
    state_order = Column(Integer, nullable=False)
    is_start_state = Column(Boolean, nullable=False, default=False)
    is_end_state = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

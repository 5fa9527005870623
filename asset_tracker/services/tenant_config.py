"""Per-tenant branding, label format and custom type/state catalogues."""

from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import DomainValidationError
from ..models.tenant import CustomAssetState, CustomAssetType, TenantConfig

logger = logging.getLogger(__name__)

DEFAULT_LABEL_FORMAT = "{prefix}-{type}-{number}"
LABEL_NUMBER_WIDTH = 4

DEFAULT_TENANT_CONFIG: dict[str, Any] = {
    "company_name": "Default Company",
    "company_prefix": "COMP",
    "primary_color": "#3B82F6",
    "secondary_color": "#1E40AF",
}

DEFAULT_ASSET_TYPES: list[dict[str, str]] = [
    {"type_code": "01", "type_name": "Mobile Phone", "category": "Mobile", "icon_name": "phone"},
    {"type_code": "02", "type_name": "Tablet", "category": "Mobile", "icon_name": "tablet"},
    {"type_code": "03", "type_name": "Desktop", "category": "Computing", "icon_name": "desktop"},
    {"type_code": "04", "type_name": "Laptop", "category": "Computing", "icon_name": "laptop"},
    {"type_code": "05", "type_name": "Monitor", "category": "Peripherals", "icon_name": "monitor"},
]

DEFAULT_ASSET_STATES: list[dict[str, Any]] = [
    {"state_code": "AVAILABLE", "state_name": "Available Stock", "state_color": "#3B82F6", "state_order": 1, "is_start_state": True},
    {"state_code": "SIGNED_OUT", "state_name": "Signed Out", "state_color": "#0D9488", "state_order": 2},
    {"state_code": "BUILT", "state_name": "Built", "state_color": "#F97316", "state_order": 3},
    {"state_code": "READY_TO_GO", "state_name": "Ready To Go Stock", "state_color": "#9333EA", "state_order": 4},
    {"state_code": "ISSUED", "state_name": "Issued", "state_color": "#16A34A", "state_order": 5, "is_end_state": True},
]

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_EDITABLE_FIELDS = ("company_name", "company_prefix", "label_format", "logo_url", "primary_color", "secondary_color")


def get_tenant_config(db: Session, tenant_id: str) -> TenantConfig | None:
    stmt = select(TenantConfig).where(TenantConfig.tenant_id == tenant_id, TenantConfig.is_active.is_(True))
    return db.execute(stmt).scalars().first()


def _validate(changes: dict[str, Any]) -> None:
    for key in ("primary_color", "secondary_color"):
        value = changes.get(key)
        if value and not _COLOR_RE.match(value):
            raise DomainValidationError(f"{key} must be a #RRGGBB colour", details={"field": key})
    prefix = changes.get("company_prefix")
    if prefix is not None and not (1 <= len(prefix.strip()) <= 10):
        raise DomainValidationError("company_prefix must be 1-10 characters", details={"field": "company_prefix"})
    label_format = changes.get("label_format")
    if label_format is not None and "{number}" not in label_format:
        raise DomainValidationError("label_format must contain {number}", details={"field": "label_format"})


def _seed_catalogues(db: Session, tenant_id: str) -> None:
    for entry in DEFAULT_ASSET_TYPES:
        db.add(CustomAssetType(tenant_id=tenant_id, is_active=True, **entry))
    for entry in DEFAULT_ASSET_STATES:
        db.add(CustomAssetState(tenant_id=tenant_id, is_active=True, **entry))


def upsert_tenant_config(db: Session, tenant_id: str, changes: dict[str, Any]) -> TenantConfig:
    """Create or update a tenant; new tenants get the default types and states."""

    changes = {key: value for key, value in changes.items() if key in _EDITABLE_FIELDS and value is not None}
    _validate(changes)

    config = get_tenant_config(db, tenant_id)
    if config is None:
        values = {**DEFAULT_TENANT_CONFIG, "label_format": DEFAULT_LABEL_FORMAT, **changes}
        config = TenantConfig(tenant_id=tenant_id, is_active=True, **values)
        db.add(config)
        _seed_catalogues(db, tenant_id)
        logger.info("tenant.created", extra={"extra_data": {"tenant_id": tenant_id}})
    else:
        for key, value in changes.items():
            setattr(config, key, value)
        logger.info("tenant.updated", extra={"extra_data": {"tenant_id": tenant_id, "fields": sorted(changes)}})
    db.commit()
    db.refresh(config)
    return config


def ensure_tenant(db: Session, tenant_id: str) -> TenantConfig:
    return get_tenant_config(db, tenant_id) or upsert_tenant_config(db, tenant_id, {})


def list_asset_types(db: Session, tenant_id: str) -> list[CustomAssetType]:
    stmt = (
        select(CustomAssetType)
        .where(CustomAssetType.tenant_id == tenant_id, CustomAssetType.is_active.is_(True))
        .order_by(CustomAssetType.type_code)
    )
    return list(db.execute(stmt).scalars().all())


def list_asset_states(db: Session, tenant_id: str) -> list[CustomAssetState]:
    stmt = (
        select(CustomAssetState)
        .where(CustomAssetState.tenant_id == tenant_id, CustomAssetState.is_active.is_(True))
        .order_by(CustomAssetState.state_order)
    )
    return list(db.execute(stmt).scalars().all())


def format_asset_label(config: TenantConfig, type_code: str, sequence: int) -> str:
    """Render the tenant's label format, e.g. ``COMP-01-0042``."""

    if sequence < 0:
        raise DomainValidationError("sequence must not be negative", details={"field": "sequence"})
    label_format = config.label_format or DEFAULT_LABEL_FORMAT
    return (
        label_format.replace("{prefix}", config.company_prefix)
        .replace("{type}", type_code)
        .replace("{number}", str(sequence).zfill(LABEL_NUMBER_WIDTH))
    )

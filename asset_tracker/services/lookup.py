"""Barcode lookup and the global search box."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..core.barcodes import barcode_aliases
from ..core.errors import DomainValidationError, NotFoundError
from ..crud import assets as assets_crud
from ..models.asset import Asset
from ..models.location import Location
from ..models.user import User

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50


def lookup_by_code(db: Session, raw: str) -> Asset:
    """Resolve a scanned or typed code to a single asset.

    Each alias is tried as an asset number and then as a serial number.
    Active assets win over soft-deleted ones; a deleted match is still
    returned so the scanner can say what the label used to be.
    """

    aliases = barcode_aliases(raw)
    if not aliases:
        raise DomainValidationError("A code is required")

    for include_deleted in (False, True):
        for alias in aliases:
            asset = assets_crud.get_asset_by_number(db, alias, include_deleted=include_deleted)
            if asset is None:
                asset = assets_crud.get_asset_by_serial(db, alias, include_deleted=include_deleted)
            if asset is not None:
                logger.info(
                    "asset.lookup",
                    extra={"extra_data": {"code": raw, "asset_number": asset.asset_number, "deleted": asset.is_deleted}},
                )
                return asset

    raise NotFoundError(f"No asset matches {raw.strip()!r}", details={"code": raw, "tried": aliases})


def global_search(db: Session, query: str, limit: int = SEARCH_LIMIT) -> dict[str, list[Any]]:
    """Case-insensitive substring search over assets, users and locations."""

    term = (query or "").strip()
    if not term:
        raise DomainValidationError("Query parameter is required and cannot be empty", details={"field": "q"})

    pattern = f"%{term.lower()}%"
    asset_stmt = (
        select(Asset)
        .where(
            or_(
                func.lower(Asset.asset_number).like(pattern),
                func.lower(Asset.serial_number).like(pattern),
                func.lower(Asset.description).like(pattern),
            )
        )
        # Live assets first, then soft-deleted ones.
        .order_by(Asset.deleted_at.is_not(None), Asset.asset_number)
        .limit(limit)
    )
    user_stmt = (
        select(User)
        .where(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))
        .order_by(User.name)
        .limit(limit)
    )
    location_stmt = select(Location).where(func.lower(Location.name).like(pattern)).order_by(Location.name).limit(limit)

    return {
        "assets": list(db.execute(asset_stmt).scalars().unique().all()),
        "users": list(db.execute(user_stmt).scalars().unique().all()),
        "locations": list(db.execute(location_stmt).scalars().all()),
    }

"""Spreadsheet import into the holding area, and promotion out of it.

Uploaded CSV or XLSX files are read with pandas. Every usable row becomes a
``pending`` holding asset; an administrator later gives it a type, a location
and an asset number, which turns it into a real asset.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import pandas as pd
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, DomainValidationError
from ..core.lifecycle import AssetState, AssetStatus, HoldingStatus
from ..crud import assets as assets_crud
from ..crud import history as history_crud
from ..crud import holding as holding_crud
from ..models.asset import Asset
from ..models.holding import HoldingAsset
from .lifecycle import NewAsset, build_asset

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")

# Header spellings collapse to lowercase alphanumerics before lookup.
_COLUMN_KEYS = {
    "serialnumber": "serial_number",
    "serial": "serial_number",
    "description": "description",
    "supplier": "supplier",
}
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    duplicates: list[str] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
            "errors": self.errors,
        }


def read_upload(filename: str, content: bytes) -> pd.DataFrame:
    """Parse an uploaded spreadsheet into a string-only DataFrame."""

    name = (filename or "").lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise DomainValidationError(
            "File must be a CSV or Excel spreadsheet",
            details={"filename": filename, "supported": list(SUPPORTED_EXTENSIONS)},
        )
    if not content:
        raise DomainValidationError("Uploaded file is empty", details={"filename": filename})
    try:
        if name.endswith(".csv"):
            frame = pd.read_csv(io.BytesIO(content), dtype=str)
        else:
            frame = pd.read_excel(io.BytesIO(content), dtype=str)
    except (ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise DomainValidationError(f"Could not parse {filename}: {exc}") from exc
    return frame.fillna("")


def _canonical_columns(frame: pd.DataFrame) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for column in frame.columns:
        key = _COLUMN_KEYS.get(_NON_ALNUM_RE.sub("", str(column).lower()))
        if key and key not in mapping:
            mapping[key] = column
    return mapping


def import_holding_assets(db: Session, frame: pd.DataFrame, imported_by: int | None) -> ImportResult:
    """Stage spreadsheet rows as pending holding assets.

    Rows missing a serial number or description are skipped. Serial numbers
    already known (in holding, in assets, or earlier in the same file) are
    reported as duplicates.
    """

    result = ImportResult()
    columns = _canonical_columns(frame)
    if "serial_number" not in columns or "description" not in columns:
        raise DomainValidationError(
            "Spreadsheet must contain serialNumber and description columns",
            details={"found": [str(column) for column in frame.columns]},
        )

    seen: set[str] = set()
    try:
        for index, row in frame.iterrows():
            raw = {str(key): str(value) for key, value in row.items()}
            serial = raw.get(str(columns["serial_number"]), "").strip()
            description = raw.get(str(columns["description"]), "").strip()
            supplier = raw.get(str(columns["supplier"]), "").strip() if "supplier" in columns else ""
            if not serial or not description:
                result.skipped += 1
                result.errors.append({"row": int(index) + 2, "error": "serialNumber and description are required"})
                continue
            key = serial.lower()
            if key in seen or holding_crud.holding_serial_exists(db, serial) or assets_crud.serial_number_exists(db, serial):
                result.skipped += 1
                result.duplicates.append(serial)
                continue
            seen.add(key)
            holding_crud.add_holding_asset(
                db,
                serial_number=serial,
                description=description,
                supplier=supplier or None,
                imported_by=imported_by,
                raw_data=raw,
            )
            result.imported += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "holding.imported",
        extra={"extra_data": {"imported": result.imported, "skipped": result.skipped, "imported_by": imported_by}},
    )
    return result


def promote_holding_asset(
    db: Session,
    holding: HoldingAsset,
    *,
    asset_type: str,
    location_id: int,
    changed_by: int | None,
    asset_number: str | None = None,
    purchase_price: Decimal | float | str | None = None,
) -> Asset:
    """Turn a pending holding row into an AVAILABLE stock asset in one transaction."""

    if holding.status != HoldingStatus.PENDING.value:
        raise ConflictError(
            f"Holding asset {holding.id} is not pending",
            details={"holding_id": holding.id, "status": holding.status},
        )

    payload = NewAsset(
        type=asset_type,
        serial_number=holding.serial_number,
        description=holding.description,
        purchase_price=purchase_price if purchase_price is not None else "0.00",
        location_id=location_id,
        asset_number=asset_number,
    )
    try:
        asset = build_asset(db, payload, status=AssetStatus.STOCK, allow_zero_price=True)
        history_crud.record_history(
            db,
            asset,
            previous_state=None,
            new_state=AssetState.AVAILABLE,
            changed_by=changed_by,
            reason="Asset assigned number and moved from holding",
            details={
                "action": "promote",
                "holding_id": holding.id,
                "asset_number": asset.asset_number,
                "serial_number": asset.serial_number,
                "supplier": holding.supplier,
            },
        )
        db.delete(holding)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(asset)
    logger.info(
        "holding.promoted",
        extra={"extra_data": {"asset_number": asset.asset_number, "serial_number": asset.serial_number}},
    )
    return asset

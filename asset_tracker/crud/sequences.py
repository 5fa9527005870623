"""Asset-number allocation.

Each asset type owns one ``asset_sequences`` row. Allocation advances that row
with a single ``UPDATE ... RETURNING`` so two concurrent requests can never
receive the same value; the database serialises the increments. The minted
sequence is the returned value minus one.

Numbers typed in by hand (or held by soft-deleted assets) may already occupy
a value the counter has not reached yet; the allocator simply advances past
them, so every number it hands out is both unused and larger than the last.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..core.barcodes import ASSET_NUMBER_RE
from ..core.errors import SequenceError, SequenceExhaustedError
from ..core.lifecycle import ASSET_NUMBER_PREFIXES, PREFIX_TO_TYPE, AssetType, coerce_type
from ..models.asset import Asset, AssetSequence

logger = logging.getLogger(__name__)

SEQUENCE_MAX = 99999


def format_asset_number(asset_type: AssetType | str, sequence: int) -> str:
    kind = coerce_type(asset_type)
    if sequence < 1 or sequence > SEQUENCE_MAX:
        raise ValueError(f"sequence {sequence} outside 1..{SEQUENCE_MAX}")
    return f"{ASSET_NUMBER_PREFIXES[kind]}-{sequence:05d}"


def parse_asset_number(value: str) -> tuple[AssetType, int]:
    """Split ``PP-NNNNN`` into its asset type and sequence."""

    match = ASSET_NUMBER_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid asset number format: {value!r} (expected PP-NNNNN)")
    prefix, digits = match.groups()
    kind = PREFIX_TO_TYPE.get(prefix)
    if kind is None:
        raise ValueError(f"Unknown asset number prefix: {prefix}")
    sequence = int(digits)
    if sequence < 1:
        raise ValueError("Asset number sequence must be at least 00001")
    return kind, sequence


def asset_number_exists(db: Session, asset_number: str) -> bool:
    """True when any asset, soft-deleted or not, holds ``asset_number``."""

    stmt = select(Asset.id).where(Asset.asset_number == asset_number).limit(1)
    return db.execute(stmt).first() is not None


def _highest_sequence_in_use(db: Session, kind: AssetType) -> int:
    prefix = ASSET_NUMBER_PREFIXES[kind]
    stmt = select(func.max(Asset.asset_number)).where(Asset.asset_number.like(f"{prefix}-%"))
    highest = db.execute(stmt).scalar_one_or_none()
    if not highest:
        return 0
    try:
        return parse_asset_number(highest)[1]
    except ValueError:
        return 0


def ensure_sequences(db: Session) -> list[AssetType]:
    """Create any missing counter rows, starting past numbers already in use."""

    existing = set(db.execute(select(AssetSequence.asset_type)).scalars().all())
    created: list[AssetType] = []
    for kind in AssetType:
        if kind.value in existing:
            continue
        db.add(AssetSequence(asset_type=kind.value, next_sequence=_highest_sequence_in_use(db, kind) + 1))
        created.append(kind)
    if created:
        db.flush()
    return created


def _claim_next(db: Session, kind: AssetType) -> int:
    stmt = (
        update(AssetSequence)
        .where(AssetSequence.asset_type == kind.value)
        .values(next_sequence=AssetSequence.next_sequence + 1)
        .returning(AssetSequence.next_sequence)
    )
    advanced = db.execute(stmt).scalar_one_or_none()
    if advanced is None:
        raise SequenceError(
            f"No asset sequence configured for {kind.value}",
            details={"asset_type": kind.value},
        )
    return advanced - 1


def allocate_asset_number(db: Session, asset_type: AssetType | str) -> str:
    """Mint the next free asset number for ``asset_type``.

    Runs inside the caller's transaction and does not commit; if the caller
    rolls back, the counter increment is rolled back with it.
    """

    kind = coerce_type(asset_type)
    skipped = 0
    while True:
        sequence = _claim_next(db, kind)
        if sequence > SEQUENCE_MAX:
            raise SequenceExhaustedError(
                f"Asset numbers for {kind.value} are exhausted",
                details={"asset_type": kind.value, "max_sequence": SEQUENCE_MAX},
            )
        candidate = format_asset_number(kind, sequence)
        if not asset_number_exists(db, candidate):
            break
        skipped += 1

    logger.info(
        "asset.number_allocated",
        extra={"extra_data": {"asset_type": kind.value, "asset_number": candidate, "skipped": skipped}},
    )
    return candidate


def preview_next_asset_number(db: Session, asset_type: AssetType | str) -> str:
    """Return the number ``allocate_asset_number`` would hand out next, without consuming it."""

    kind = coerce_type(asset_type)
    stmt = select(AssetSequence.next_sequence).where(AssetSequence.asset_type == kind.value)
    sequence = db.execute(stmt).scalar_one_or_none()
    if sequence is None:
        raise SequenceError(
            f"No asset sequence configured for {kind.value}",
            details={"asset_type": kind.value},
        )
    while sequence <= SEQUENCE_MAX:
        candidate = format_asset_number(kind, sequence)
        if not asset_number_exists(db, candidate):
            return candidate
        sequence += 1
    raise SequenceExhaustedError(
        f"Asset numbers for {kind.value} are exhausted",
        details={"asset_type": kind.value, "max_sequence": SEQUENCE_MAX},
    )

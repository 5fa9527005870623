"""Asset types, lifecycle states and the static transition table.

Phones, tablets, desktops and laptops move through

    AVAILABLE -> SIGNED_OUT -> BUILT -> READY_TO_GO -> ISSUED -> AVAILABLE

with the two "step back" edges SIGNED_OUT -> AVAILABLE and BUILT -> SIGNED_OUT.
Monitors skip the build step entirely: SIGNED_OUT goes straight to
READY_TO_GO. An issued asset only ever returns to AVAILABLE and has to be
rebuilt before it can be issued again.
"""

from __future__ import annotations

from enum import Enum


class AssetType(str, Enum):
    MOBILE_PHONE = "MOBILE_PHONE"
    TABLET = "TABLET"
    DESKTOP = "DESKTOP"
    LAPTOP = "LAPTOP"
    MONITOR = "MONITOR"


class AssetState(str, Enum):
    AVAILABLE = "AVAILABLE"
    SIGNED_OUT = "SIGNED_OUT"
    BUILT = "BUILT"
    READY_TO_GO = "READY_TO_GO"
    ISSUED = "ISSUED"


class AssetStatus(str, Enum):
    HOLDING = "HOLDING"
    ACTIVE = "ACTIVE"
    RECYCLED = "RECYCLED"
    STOCK = "STOCK"
    REPAIR = "REPAIR"


class AssignmentType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    SHARED = "SHARED"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class HoldingStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    ERROR = "error"


class Disposition(str, Enum):
    RESTOCK = "RESTOCK"
    RECYCLE = "RECYCLE"


ASSET_NUMBER_PREFIXES: dict[AssetType, str] = {
    AssetType.MOBILE_PHONE: "01",
    AssetType.TABLET: "02",
    AssetType.DESKTOP: "03",
    AssetType.LAPTOP: "04",
    AssetType.MONITOR: "05",
}

PREFIX_TO_TYPE: dict[str, AssetType] = {prefix: kind for kind, prefix in ASSET_NUMBER_PREFIXES.items()}

_BUILD_FLOW: dict[AssetState, frozenset[AssetState]] = {
    AssetState.AVAILABLE: frozenset({AssetState.SIGNED_OUT}),
    AssetState.SIGNED_OUT: frozenset({AssetState.BUILT, AssetState.AVAILABLE}),
    AssetState.BUILT: frozenset({AssetState.READY_TO_GO, AssetState.SIGNED_OUT}),
    AssetState.READY_TO_GO: frozenset({AssetState.ISSUED}),
    AssetState.ISSUED: frozenset({AssetState.AVAILABLE}),
}

_MONITOR_FLOW: dict[AssetState, frozenset[AssetState]] = {
    AssetState.AVAILABLE: frozenset({AssetState.SIGNED_OUT}),
    AssetState.SIGNED_OUT: frozenset({AssetState.READY_TO_GO, AssetState.AVAILABLE}),
    AssetState.BUILT: frozenset(),
    AssetState.READY_TO_GO: frozenset({AssetState.ISSUED}),
    AssetState.ISSUED: frozenset({AssetState.AVAILABLE}),
}

VALID_STATE_TRANSITIONS: dict[AssetType, dict[AssetState, frozenset[AssetState]]] = {
    AssetType.MOBILE_PHONE: _BUILD_FLOW,
    AssetType.TABLET: _BUILD_FLOW,
    AssetType.DESKTOP: _BUILD_FLOW,
    AssetType.LAPTOP: _BUILD_FLOW,
    AssetType.MONITOR: _MONITOR_FLOW,
}

ASSET_STATE_LABELS: dict[AssetState, str] = {
    AssetState.AVAILABLE: "Available Stock",
    AssetState.SIGNED_OUT: "Signed Out",
    AssetState.BUILT: "Built",
    AssetState.READY_TO_GO: "Ready To Go Stock",
    AssetState.ISSUED: "Issued",
}

ASSET_TYPE_LABELS: dict[AssetType, str] = {
    AssetType.MOBILE_PHONE: "Mobile Phone",
    AssetType.TABLET: "Tablet",
    AssetType.DESKTOP: "Desktop",
    AssetType.LAPTOP: "Laptop",
    AssetType.MONITOR: "Monitor",
}

# Spellings found in imported spreadsheets and older rows.
_STATE_ALIASES: dict[str, AssetState] = {
    "available": AssetState.AVAILABLE,
    "stock": AssetState.AVAILABLE,
    "signed_out": AssetState.SIGNED_OUT,
    "signed-out": AssetState.SIGNED_OUT,
    "signedout": AssetState.SIGNED_OUT,
    "built": AssetState.BUILT,
    "building": AssetState.BUILT,
    "ready_to_go": AssetState.READY_TO_GO,
    "ready-to-go": AssetState.READY_TO_GO,
    "readytogo": AssetState.READY_TO_GO,
    "rtgs": AssetState.READY_TO_GO,
    "issued": AssetState.ISSUED,
    "active": AssetState.ISSUED,
}


def coerce_type(value: AssetType | str) -> AssetType:
    """Return ``value`` as an ``AssetType`` or raise ``ValueError``."""

    if isinstance(value, AssetType):
        return value
    try:
        return AssetType(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Unknown asset type: {value!r}") from None


def coerce_state(value: AssetState | str) -> AssetState:
    if isinstance(value, AssetState):
        return value
    try:
        return AssetState(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Unknown asset state: {value!r}") from None


def valid_next_states(asset_type: AssetType | str, current: AssetState | str) -> list[AssetState]:
    """States reachable in one step, in lifecycle order."""

    table = VALID_STATE_TRANSITIONS[coerce_type(asset_type)]
    allowed = table.get(coerce_state(current), frozenset())
    return [state for state in AssetState if state in allowed]


def is_valid_transition(
    asset_type: AssetType | str, current: AssetState | str, target: AssetState | str
) -> bool:
    table = VALID_STATE_TRANSITIONS[coerce_type(asset_type)]
    return coerce_state(target) in table.get(coerce_state(current), frozenset())


def canonicalize_state(raw: object) -> AssetState | None:
    """Map a loosely spelled state to its canonical value, or ``None``."""

    if isinstance(raw, AssetState):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    return _STATE_ALIASES.get(raw.strip().lower().replace(" ", "_"))


__all__ = [
    "AssetType",
    "AssetState",
    "AssetStatus",
    "AssignmentType",
    "UserRole",
    "HoldingStatus",
    "Disposition",
    "ASSET_NUMBER_PREFIXES",
    "PREFIX_TO_TYPE",
    "VALID_STATE_TRANSITIONS",
    "ASSET_STATE_LABELS",
    "ASSET_TYPE_LABELS",
    "coerce_type",
    "coerce_state",
    "valid_next_states",
    "is_valid_transition",
    "canonicalize_state",
]

"""Normalisation helpers for scanned asset labels.

Handheld scanners and hand-typed searches rarely agree on formatting: a label
printed as ``01-00042`` may arrive as ``0100042``, ``01 00042`` or with a
trailing newline. These helpers reduce every variant to the canonical
``PP-NNNNN`` asset number where possible and list the other spellings worth
trying (serial numbers are matched case-insensitively as typed).
"""

from __future__ import annotations

import re
from typing import List

__all__ = ["ASSET_NUMBER_RE", "normalize_asset_number", "barcode_aliases"]


ASSET_NUMBER_RE = re.compile(r"^(\d{2})-(\d{5})$")
_SEPARATORS_RE = re.compile(r"[\s_./-]+")
_DIGIT_ONLY_RE = re.compile(r"^\d+$")
_WHITESPACE_RE = re.compile(r"\s+")


def _squash(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value.strip())


def normalize_asset_number(raw: str | None) -> str | None:
    """Return the canonical ``PP-NNNNN`` form of ``raw`` or ``None``.

    * Trims whitespace and ignores separators between the two groups.
    * A bare seven digit code is split after the two-digit prefix.
    * Anything else (serial numbers, free text) yields ``None``.
    """

    if raw is None:
        return None
    cleaned = _squash(raw)
    if not cleaned:
        return None
    compact = _SEPARATORS_RE.sub("", cleaned)
    if len(compact) == 7 and _DIGIT_ONLY_RE.match(compact):
        return f"{compact[:2]}-{compact[2:]}"
    return None


def barcode_aliases(raw: str | None) -> list[str]:
    """Return candidate values a scanned code could match, best first."""

    if raw is None:
        return []

    cleaned = _squash(raw)
    if not cleaned:
        return []

    aliases: List[str] = []
    seen: set[str] = set()

    def add(candidate: str | None) -> None:
        if not candidate or candidate in seen:
            return
        seen.add(candidate)
        aliases.append(candidate)

    add(normalize_asset_number(cleaned))
    add(cleaned.upper())
    add(cleaned.replace(" ", "").upper())
    return aliases

"""Password policy and bcrypt hashing for user accounts."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import bcrypt

MIN_LENGTH = 12
SPECIAL_CHARACTERS = "!@£$%^&*():\"|;'\\?><,./"

_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_DIGIT_RE = re.compile(r"\d")

STRENGTH_LABELS = {0: "Invalid", 1: "Weak", 2: "Fair", 3: "Good", 4: "Strong"}


@dataclass
class PasswordCheck:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    requirements: dict[str, bool] = field(default_factory=dict)


def _has_special(password: str) -> bool:
    return any(char in SPECIAL_CHARACTERS for char in password)


def validate_password(password: str) -> PasswordCheck:
    requirements = {
        "length": len(password) >= MIN_LENGTH,
        "uppercase": bool(_UPPER_RE.search(password)),
        "lowercase": bool(_LOWER_RE.search(password)),
        "number": bool(_DIGIT_RE.search(password)),
        "special": _has_special(password),
    }
    messages = {
        "length": f"Password must be at least {MIN_LENGTH} characters long",
        "uppercase": "Password must contain at least one uppercase letter",
        "lowercase": "Password must contain at least one lowercase letter",
        "number": "Password must contain at least one number",
        "special": f"Password must contain at least one special character ({SPECIAL_CHARACTERS})",
    }
    errors = [messages[name] for name, ok in requirements.items() if not ok]
    return PasswordCheck(is_valid=not errors, errors=errors, requirements=requirements)


def password_strength(password: str) -> int:
    """Score a password from 0 (invalid) to 4 (strong)."""

    if not password or not validate_password(password).is_valid:
        return 0

    strength = 1.0
    if len(password) >= 16:
        strength += 1
    elif len(password) >= 14:
        strength += 0.5

    unique_chars = len(set(password))
    if unique_chars >= 10:
        strength += 1
    elif unique_chars >= 8:
        strength += 0.5

    # A valid password already mixes all four character classes.
    strength += 1
    return min(4, int(strength))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False

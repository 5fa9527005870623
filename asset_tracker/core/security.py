"""Signed access and refresh tokens.

Tokens are HS256 JWTs bound to this service by audience and issuer. The
subject is either ``api-client`` (issued in exchange for the API key) or
``user:<id>`` (issued at login). The ``role`` claim records the role at issue
time; for user subjects the auth dependency re-reads the stored role.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings
from .lifecycle import UserRole

ALGORITHM = "HS256"
AUDIENCE = "asset-tracker-clients"
ISSUER = "asset-tracker"

API_CLIENT_SUBJECT = "api-client"
USER_SUBJECT_PREFIX = "user:"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(ValueError):
    """The token is malformed, expired, foreign or of the wrong type."""


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenClaims(BaseModel):
    sub: str
    typ: TokenType
    role: UserRole
    iat: datetime
    exp: datetime

    @property
    def is_api_client(self) -> bool:
        return self.sub == API_CLIENT_SUBJECT

    @property
    def user_id(self) -> int | None:
        if not self.sub.startswith(USER_SUBJECT_PREFIX):
            return None
        try:
            return int(self.sub[len(USER_SUBJECT_PREFIX):])
        except ValueError:
            return None


def user_subject(user_id: int) -> str:
    return f"{USER_SUBJECT_PREFIX}{user_id}"


def _sign(subject: str, role: UserRole, token_type: TokenType, lifetime: timedelta) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "typ": token_type.value,
        "role": role.value,
        "iat": issued,
        "exp": issued + lifetime,
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def issue_token_pair(subject: str, role: UserRole | str) -> TokenPair:
    role = role if isinstance(role, UserRole) else UserRole(str(role).upper())
    access_ttl = timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    refresh_ttl = timedelta(days=settings.JWT_REFRESH_TTL_DAYS)
    return TokenPair(
        access_token=_sign(subject, role, TokenType.ACCESS, access_ttl),
        refresh_token=_sign(subject, role, TokenType.REFRESH, refresh_ttl),
        expires_in=int(access_ttl.total_seconds()),
    )


def decode_token(token: str, expected: TokenType | None = None) -> TokenClaims:
    """Verify ``token`` and return its claims, or raise :class:`TokenError`."""

    try:
        raw = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM], audience=AUDIENCE, issuer=ISSUER)
        claims = TokenClaims.model_validate(raw)
    except (JWTError, ValidationError) as exc:
        raise TokenError("Invalid or expired token") from exc
    if expected is not None and claims.typ is not expected:
        raise TokenError(f"Wrong token type, expected {expected.value}")
    return claims


def refresh_access_token(refresh_token: str) -> TokenPair:
    claims = decode_token(refresh_token, TokenType.REFRESH)
    return issue_token_pair(claims.sub, claims.role)

"""Request authentication for the ``/api/v1`` routes.

Two credentials are accepted. The ``X-API-Key`` master key acts as the system
administrator and has no user id, so its changes are recorded as "System".
A bearer access token identifies either the API client or a user; for users
the account must still exist and be active, and the stored role is used.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import PermissionDeniedError
from ..core.lifecycle import UserRole
from ..core.security import TokenClaims, TokenError, TokenType, decode_token
from ..crud.users import get_user
from ..db.session import get_db
from ..middlewares import principal_ctx_var


@dataclass(frozen=True)
class AuthContext:
    principal: str
    scheme: str
    role: UserRole
    user_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


def _reject(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _remember(request: Request, context: AuthContext) -> AuthContext:
    principal_ctx_var.set(context.principal)
    request.state.principal = context.principal
    return context


def _context_for_claims(db: Session, claims: TokenClaims) -> AuthContext:
    if claims.is_api_client:
        return AuthContext(principal=f"jwt:{claims.sub}", scheme="jwt", role=UserRole.ADMIN)
    if claims.user_id is None:
        raise _reject("Unknown token subject")
    user = get_user(db, claims.user_id)
    if user is None or not user.is_active:
        raise _reject("User is inactive or no longer exists")
    return AuthContext(principal=f"jwt:{claims.sub}", scheme="jwt", role=UserRole(user.role), user_id=user.id)


def _api_key_matches(provided: str) -> bool:
    configured = (settings.API_KEY or "").strip()
    return bool(configured) and hmac.compare_digest(configured, provided)


async def require_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    db: Session = Depends(get_db),
) -> AuthContext:
    provided_key = (x_api_key or "").strip()
    if provided_key:
        if not _api_key_matches(provided_key):
            raise _reject("Invalid API key")
        return _remember(request, AuthContext(principal="api-key", scheme="api_key", role=UserRole.ADMIN))

    scheme, token = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not token:
        raise _reject("Authorization required")
    try:
        claims = decode_token(token, TokenType.ACCESS)
    except TokenError as exc:
        raise _reject(str(exc)) from exc
    request.state.token_claims = claims
    return _remember(request, _context_for_claims(db, claims))


async def require_admin(context: AuthContext = Depends(require_user)) -> AuthContext:
    if not context.is_admin:
        raise PermissionDeniedError("Administrator role required", details={"role": context.role.value})
    return context

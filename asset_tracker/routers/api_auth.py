from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.lifecycle import UserRole
from ..core.passwords import verify_password
from ..core.security import API_CLIENT_SUBJECT, TokenError, issue_token_pair, refresh_access_token, user_subject
from ..crud.users import get_user_by_email
from ..db.session import get_db
from ..schemas.auth import ApiKeyExchange, LoginRequest, RefreshRequest, TokenResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=TokenResponse, summary="Exchange email and password for tokens")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, payload.email)
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("auth.login_failed", extra={"extra_data": {"email": payload.email}})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    pair = issue_token_pair(user_subject(user.id), user.role)
    logger.info("auth.login", extra={"extra_data": {"user_id": user.id, "role": user.role}})
    return pair


@router.post("/token", response_model=TokenResponse, summary="Exchange the API key for tokens")
async def exchange_api_key(
    payload: ApiKeyExchange,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    configured = (settings.API_KEY or "").strip()
    if not configured:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="API key authentication is disabled")
    provided = (payload.api_key or x_api_key or "").strip()
    if not provided or not hmac.compare_digest(provided, configured):
        logger.info("auth.api_key_rejected")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    return issue_token_pair(API_CLIENT_SUBJECT, UserRole.ADMIN)


@router.post("/refresh", response_model=TokenResponse, summary="Trade a refresh token for a new pair")
async def refresh(payload: RefreshRequest):
    try:
        pair = refresh_access_token(payload.refresh_token)
    except TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return pair

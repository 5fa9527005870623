from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..core.security import TokenPair

# Login, key exchange and refresh all answer with the same token pair.
TokenResponse = TokenPair


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalise_email(cls, value: str) -> str:
        return value.strip().lower()


class ApiKeyExchange(BaseModel):
    """Body of ``POST /auth/token``; the key may come in the ``X-API-Key`` header instead."""

    api_key: Optional[str] = Field(default=None, alias="apiKey")

    model_config = {"populate_by_name": True}


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)

"""
Authentication schemas for request/response validation.

This module defines Pydantic models for authentication-related API operations:
- Access token claims
- Refresh/logout request bodies (mobile clients)
- Token and session responses

Wire names are camelCase to match the mobile and web clients.
"""

from typing import Literal

from pydantic import BaseModel, Field

from breadthwise_auth.schemas.common import CamelModel, UTCDatetime
from breadthwise_auth.schemas.user import UserResponse


class AccessTokenClaims(CamelModel):
    """Claims carried by an access token. Never persisted."""

    sub: str
    github_id: str
    username: str
    email: str | None = None
    platform: Literal["web", "mobile"]
    fingerprint: str | None = None
    iat: int
    exp: int
    type: Literal["access"] = "access"


class RefreshRequest(CamelModel):
    """
    Request body for token refresh.

    Mobile clients send the refresh token in the body; web clients rely on
    the refresh_token cookie and may send no body at all.
    """

    refresh_token: str | None = None


class LogoutRequest(CamelModel):
    """Request body for logout (mobile)."""

    refresh_token: str | None = None


class TokenPairResponse(CamelModel):
    """Tokens returned to mobile clients."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token expiration time in seconds from now")


class LoginResponse(TokenPairResponse):
    """Mobile callback response without a deep link."""

    user: UserResponse


class SessionResponse(CamelModel):
    """Current session as seen by the session guard."""

    user: UserResponse
    claims: AccessTokenClaims
    expires_at: UTCDatetime


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str

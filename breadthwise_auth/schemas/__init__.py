"""
Pydantic schemas for API responses and requests
"""

from breadthwise_auth.schemas.auth import (
    AccessTokenClaims,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    SessionResponse,
    TokenPairResponse,
)
from breadthwise_auth.schemas.common import CamelModel, UTCDatetime
from breadthwise_auth.schemas.user import UserResponse

__all__ = [
    # Auth schemas
    "AccessTokenClaims",
    "LoginResponse",
    "LogoutRequest",
    "MessageResponse",
    "RefreshRequest",
    "SessionResponse",
    "TokenPairResponse",
    # User schemas
    "UserResponse",
    # Common
    "CamelModel",
    "UTCDatetime",
]

"""
Security utilities for authentication.

This module provides:
- JWT access token generation and verification
- Refresh token generation and hashing

Access tokens are self-contained: validity is decided by signature and expiry
alone. Refresh tokens are opaque random strings; only their SHA-256 hash is
ever stored.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from pydantic import ValidationError

from breadthwise_auth.config import PlatformName, Settings
from breadthwise_auth.core.crypto import random_token, sha256_hex
from breadthwise_auth.core.logging import get_logger
from breadthwise_auth.models.user import Users
from breadthwise_auth.schemas.auth import AccessTokenClaims

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    user: Users,
    platform: PlatformName,
    settings: Settings,
    fingerprint: str | None = None,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """
    Create a JWT access token.

    The lifetime is ACCESS_TOKEN_EXPIRE_MINUTES on every platform.

    Args:
        user: The user the token is issued to
        platform: Platform the token was issued for
        settings: Application settings
        fingerprint: Optional client fingerprint to bind into the claims
        now: Issue time (defaults to the current time)

    Returns:
        Tuple of (encoded token, expiry as aware UTC datetime)
    """
    issued_at = (now or datetime.now(UTC)).replace(microsecond=0)
    expire = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload: dict[str, Any] = {
        "sub": user.id,
        "githubId": user.github_id,
        "username": user.username,
        "platform": platform,
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
        "type": ACCESS_TOKEN_TYPE,
    }
    if user.email:
        payload["email"] = user.email
    if fingerprint:
        payload["fingerprint"] = fingerprint

    encoded_jwt = jwt.encode(payload, settings.JWT_ACCESS_SECRET, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt, expire


def verify_access_token(token: str, settings: Settings) -> AccessTokenClaims | None:
    """
    Verify and decode a JWT access token.

    Args:
        token: The JWT token to verify
        settings: Application settings

    Returns:
        Decoded claims if the token is valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_ACCESS_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={
                "verify_exp": True,
                "verify_signature": True,
                "require": ["exp", "iat", "sub"],
            },
        )
    except jwt.ExpiredSignatureError:
        logger.debug("access_token_expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("access_token_invalid", error=str(e))
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None

    try:
        return AccessTokenClaims.model_validate(payload)
    except ValidationError:
        logger.debug("access_token_claims_invalid")
        return None


def create_refresh_token(settings: Settings) -> str:
    """
    Create a cryptographically secure refresh token.

    Returns:
        Hex string of REFRESH_TOKEN_BYTES random bytes
    """
    return random_token(settings.REFRESH_TOKEN_BYTES)


def hash_refresh_token(refresh_token: str) -> str:
    """Hash a raw refresh token for storage and lookup."""
    return sha256_hex(refresh_token)

"""
Authentication dependencies for FastAPI route protection.

This module provides the session guard: it reads the access token from the
channel matching the request's platform (bearer header for mobile, cookie for
web), verifies it and returns the claims. Handlers receive the claims as a
parameter; nothing is stored on the request.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPBearer

from breadthwise_auth.api.dependencies import RequestContextDep, SettingsDep
from breadthwise_auth.core.delivery import ACCESS_TOKEN_COOKIE, read_access_token
from breadthwise_auth.core.errors import UnauthorizedError
from breadthwise_auth.core.fingerprint import generate_fingerprint
from breadthwise_auth.core.logging import get_logger, set_user_context
from breadthwise_auth.core.security import verify_access_token
from breadthwise_auth.schemas.auth import AccessTokenClaims

logger = get_logger(__name__)

# Security schemes for OpenAPI documentation only; the guard reads the
# credential itself so that the platform decides which channel counts.
bearer_scheme = HTTPBearer(auto_error=False)
cookie_scheme = APIKeyCookie(name=ACCESS_TOKEN_COOKIE, auto_error=False)


async def get_current_session(
    request: Request,
    settings: SettingsDep,
    ctx: RequestContextDep,
    _bearer: Annotated[object, Depends(bearer_scheme)] = None,
    _cookie: Annotated[object, Depends(cookie_scheme)] = None,
) -> AccessTokenClaims:
    """
    Verify the presented access token and return its claims.

    Raises:
        UnauthorizedError: Missing, malformed, expired or wrongly signed
            token, a non-access token, or a fingerprint mismatch when
            ENFORCE_FINGERPRINT is set
    """
    token = read_access_token(request, ctx.platform)
    if not token:
        raise UnauthorizedError("Not authenticated")

    claims = verify_access_token(token, settings)
    if claims is None:
        raise UnauthorizedError("Could not validate credentials")

    if settings.ENFORCE_FINGERPRINT and claims.fingerprint:
        if claims.fingerprint != generate_fingerprint(ctx):
            logger.warning("access_token_fingerprint_mismatch", user_id=claims.sub)
            raise UnauthorizedError("Could not validate credentials")

    set_user_context(claims.sub)
    return claims


CurrentSession = Annotated[AccessTokenClaims, Depends(get_current_session)]


async def get_optional_session(
    request: Request,
    settings: SettingsDep,
    ctx: RequestContextDep,
) -> AccessTokenClaims | None:
    """
    Return the verified claims if a valid access token was presented.

    Used by logout, which succeeds with or without a session.
    """
    token = read_access_token(request, ctx.platform)
    if not token:
        return None
    return verify_access_token(token, settings)


OptionalSession = Annotated[AccessTokenClaims | None, Depends(get_optional_session)]

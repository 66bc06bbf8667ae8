"""
Authentication API endpoints.

This module provides endpoints for:
- GitHub OAuth login (start + callback)
- Token refresh (single-use rotation)
- Logout (revoke the presented refresh token)
- Revoke all sessions of the current user
- Session validation

Web clients get tokens as httpOnly cookies; mobile clients get them as JSON
or deep-link parameters and send them back as a bearer header / JSON body.
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from breadthwise_auth.api.dependencies import (
    GitHubClientDep,
    RequestContextDep,
    SessionServiceDep,
    SettingsDep,
    StateSignerDep,
)
from breadthwise_auth.config import Platform
from breadthwise_auth.core.auth import CurrentSession, OptionalSession
from breadthwise_auth.core.database import get_db
from breadthwise_auth.core.delivery import (
    build_deep_link,
    clear_token_cookies,
    read_refresh_token,
    set_token_cookies,
)
from breadthwise_auth.core.errors import (
    InvalidOAuthStateError,
    InvalidRedirectUriError,
    InvalidRefreshTokenError,
    ProviderError,
    UserNotFoundError,
)
from breadthwise_auth.core.logging import get_logger
from breadthwise_auth.core.oauth_state import OAuthStateError
from breadthwise_auth.schemas.auth import (
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    SessionResponse,
    TokenPairResponse,
)
from breadthwise_auth.schemas.user import UserResponse
from breadthwise_auth.services.user import get_user_by_id

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/github", status_code=status.HTTP_302_FOUND, response_class=RedirectResponse)
async def github_login(
    ctx: RequestContextDep,
    settings: SettingsDep,
    signer: StateSignerDep,
    github: GitHubClientDep,
    redirect_uri: str | None = Query(default=None),
) -> RedirectResponse:
    """
    Start the GitHub OAuth flow.

    The platform (and for mobile, the deep link to return tokens to) is
    signed into the state parameter so the callback can recover it.
    """
    if ctx.platform == Platform.MOBILE:
        if not redirect_uri:
            raise InvalidRedirectUriError("redirect_uri is required for mobile platform")
        if not redirect_uri.startswith(settings.MOBILE_DEEP_LINK_SCHEME):
            raise InvalidRedirectUriError(
                f"Invalid redirect_uri: must start with {settings.MOBILE_DEEP_LINK_SCHEME}"
            )
        state = signer.generate_state(Platform.MOBILE, redirect_uri)
    else:
        state = signer.generate_state(Platform.WEB)

    logger.info("oauth_flow_started", platform=ctx.platform)
    return RedirectResponse(github.build_authorize_url(state), status_code=status.HTTP_302_FOUND)


@router.get(
    "/github/callback",
    response_model=LoginResponse,
    responses={302: {"description": "Redirect to the web client or mobile deep link"}},
)
async def github_callback(
    ctx: RequestContextDep,
    settings: SettingsDep,
    signer: StateSignerDep,
    github: GitHubClientDep,
    service: SessionServiceDep,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
) -> Response | LoginResponse:
    """
    Complete the GitHub OAuth flow.

    Web: sets token cookies and redirects to the web client.
    Mobile: redirects to the signed deep link with the tokens as query
    parameters, or returns them as JSON when no deep link was given.
    """
    if not state:
        raise InvalidOAuthStateError("Missing state parameter")
    try:
        oauth_state = signer.validate_state(state)
    except OAuthStateError as e:
        logger.warning("oauth_state_invalid", reason=e.reason.value)
        raise InvalidOAuthStateError() from e

    if error or not code:
        logger.warning("oauth_provider_denied", error=error)
        raise ProviderError()

    profile = await github.authenticate(code)

    # The provider's redirect carries neither platform signal; the state does
    ctx = ctx.with_platform(oauth_state.platform)
    result = await service.handle_provider_callback(profile, ctx)
    tokens = result.tokens

    if oauth_state.platform == Platform.MOBILE:
        if oauth_state.redirect_uri:
            return RedirectResponse(
                build_deep_link(oauth_state.redirect_uri, tokens),
                status_code=status.HTTP_302_FOUND,
            )
        return LoginResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
            user=UserResponse.model_validate(result.user),
        )

    response = RedirectResponse(settings.WEB_CLIENT_URL, status_code=status.HTTP_302_FOUND)
    set_token_cookies(response, tokens, settings)
    return response


@router.post("/refresh", response_model=TokenPairResponse | MessageResponse)
async def refresh(
    response: Response,
    ctx: RequestContextDep,
    settings: SettingsDep,
    service: SessionServiceDep,
    request: Request,
    body: RefreshRequest | None = None,
) -> TokenPairResponse | MessageResponse:
    """
    Rotate the refresh token and issue a new pair.

    The presented refresh token is single use: a second refresh with it
    fails even if the first one is still in flight.
    """
    raw = read_refresh_token(request, ctx.platform, body.refresh_token if body else None)
    if not raw:
        raise InvalidRefreshTokenError("No refresh token provided")

    result = await service.refresh(raw, ctx)
    tokens = result.tokens

    if ctx.platform == Platform.MOBILE:
        return TokenPairResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
        )

    set_token_cookies(response, tokens, settings)
    return MessageResponse(message="Tokens refreshed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    request: Request,
    ctx: RequestContextDep,
    settings: SettingsDep,
    service: SessionServiceDep,
    session: OptionalSession,
    body: LogoutRequest | None = None,
) -> MessageResponse:
    """
    Log out the current device.

    Always succeeds: an invalid or missing token is not an error here, and
    the user's other sessions are left alone.
    """
    raw = read_refresh_token(request, ctx.platform, body.refresh_token if body else None)
    await service.logout(raw, user_id=session.sub if session else None)

    if ctx.platform == Platform.WEB:
        clear_token_cookies(response, settings)

    return MessageResponse(message="Logged out successfully")


@router.post("/revoke-all", response_model=MessageResponse)
async def revoke_all(
    response: Response,
    ctx: RequestContextDep,
    settings: SettingsDep,
    service: SessionServiceDep,
    session: CurrentSession,
) -> MessageResponse:
    """Revoke every refresh token of the current user (log out everywhere)."""
    count = await service.revoke_all(session.sub)
    logger.info("all_sessions_revoked", user_id=session.sub, count=count)

    if ctx.platform == Platform.WEB:
        clear_token_cookies(response, settings)

    return MessageResponse(message="All tokens revoked")


@router.get("/session", response_model=SessionResponse)
async def get_session(
    session: CurrentSession,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionResponse:
    """Validate the current access token and return the session's user."""
    user = await get_user_by_id(db, session.sub)
    if user is None:
        raise UserNotFoundError()

    return SessionResponse(
        user=UserResponse.model_validate(user),
        claims=session,
        expires_at=datetime.fromtimestamp(session.exp, UTC),
    )

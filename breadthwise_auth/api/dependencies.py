"""
Shared FastAPI dependencies.

Settings and long-lived clients are created once in main.create_app() and
kept on app.state; these dependencies hand them to route handlers so tests
can swap any of them through app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from breadthwise_auth.config import Settings
from breadthwise_auth.core.database import get_db
from breadthwise_auth.core.oauth_state import OAuthStateSigner
from breadthwise_auth.core.platform import RequestContext, build_request_context
from breadthwise_auth.services.github import GitHubOAuthClient
from breadthwise_auth.services.session import SessionService


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    settings: Settings = request.app.state.settings
    return settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_request_context(request: Request, settings: SettingsDep) -> RequestContext:
    """Platform, user agent, client IP and device id of the current request."""
    return build_request_context(request, settings)


RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]


def get_state_signer(settings: SettingsDep) -> OAuthStateSigner:
    return OAuthStateSigner(
        settings.OAUTH_STATE_SECRET,
        ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS,
    )


def get_github_client(settings: SettingsDep) -> GitHubOAuthClient:
    return GitHubOAuthClient(settings)


def get_session_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
) -> SessionService:
    return SessionService(db, settings)


StateSignerDep = Annotated[OAuthStateSigner, Depends(get_state_signer)]
GitHubClientDep = Annotated[GitHubOAuthClient, Depends(get_github_client)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]

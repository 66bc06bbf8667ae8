"""
Async API client that keeps a Breadthwise session alive.

Mobile clients hold the token pair in memory and send the access token as a
bearer header; web clients let the cookie jar carry both tokens. On a 401 the
client refreshes once and retries the request once.

Refresh tokens are single use, so concurrent refreshes must be collapsed: the
first caller starts the refresh and every caller that arrives while it is in
flight awaits the same task.
"""

import asyncio
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx

from breadthwise_auth.config import Platform, PlatformName
from breadthwise_auth.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_PREFIX = "/api/v1"


class SessionClientError(Exception):
    """A session operation failed; carries the server's status and code."""

    def __init__(self, message: str, status_code: int, code: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


@dataclass
class StoredTokens:
    access_token: str
    refresh_token: str


def tokens_from_deep_link(url: str) -> StoredTokens:
    """
    Extract the token pair from the deep link the callback redirected to.

    The server puts the tokens in the query string; a fragment is accepted too.

    Raises:
        SessionClientError: If either token is missing
    """
    parts = urlsplit(url)
    params = parse_qs(parts.query)
    if "access_token" not in params and parts.fragment:
        params = parse_qs(parts.fragment)

    access = params.get("access_token", [None])[0]
    refresh = params.get("refresh_token", [None])[0]
    if not access or not refresh:
        raise SessionClientError("Missing tokens in callback URL", 400, "MISSING_TOKENS")
    return StoredTokens(access_token=access, refresh_token=refresh)


class SessionClient:
    """
    Session-aware wrapper around httpx.AsyncClient.

    Args:
        http: Client pointed at the API host (its cookie jar holds web tokens)
        platform: 'web' or 'mobile'
        tokens: Initial token pair (mobile)
        api_prefix: Path prefix of the auth API
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        platform: PlatformName = Platform.MOBILE,
        tokens: StoredTokens | None = None,
        api_prefix: str = DEFAULT_API_PREFIX,
    ) -> None:
        self.http = http
        self.platform = platform
        self.tokens = tokens
        self.api_prefix = api_prefix.rstrip("/")
        self._refresh_task: asyncio.Task[str | None] | None = None

    def _url(self, path: str) -> str:
        return f"{self.api_prefix}{path}"

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"X-Platform": self.platform}
        if self.platform == Platform.MOBILE and access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def login_url(self, redirect_uri: str | None = None) -> str:
        """URL that starts the GitHub login for this platform."""
        params: dict[str, str] = {"platform": self.platform}
        if redirect_uri:
            params["redirect_uri"] = redirect_uri
        return str(self.http.build_request("GET", self._url("/auth/github"), params=params).url)

    def complete_mobile_login(self, deep_link: str) -> None:
        """Store the tokens delivered through the mobile deep link."""
        self.tokens = tokens_from_deep_link(deep_link)

    def clear_tokens(self) -> None:
        self.tokens = None
        if self.platform == Platform.WEB:
            self.http.cookies.clear()

    async def refresh_access_token(self) -> str | None:
        """
        Refresh the session, sharing one in-flight refresh among callers.

        Returns:
            The new access token (mobile) or None (web, tokens are cookies)

        Raises:
            SessionClientError: SESSION_EXPIRED if the server rejects the
                refresh; local tokens are cleared
        """
        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh())
        # A cancelled caller must not cancel the refresh for the others
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> str | None:
        try:
            body: dict[str, str] | None = None
            if self.platform == Platform.MOBILE:
                if self.tokens is None:
                    raise SessionClientError("Not logged in", 401, "SESSION_EXPIRED")
                body = {"refreshToken": self.tokens.refresh_token}

            response = await self.http.post(
                self._url("/auth/refresh"), json=body, headers=self._headers()
            )
            if response.status_code != httpx.codes.OK:
                logger.info("session_refresh_rejected", status_code=response.status_code)
                self.clear_tokens()
                raise SessionClientError("Session expired", 401, "SESSION_EXPIRED")

            if self.platform == Platform.WEB:
                return None

            data = response.json()
            self.tokens = StoredTokens(
                access_token=data["accessToken"], refresh_token=data["refreshToken"]
            )
            return self.tokens.access_token
        finally:
            self._refresh_task = None

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send an authenticated request, refreshing and retrying once on 401.

        Raises:
            SessionClientError: If the refresh triggered by a 401 fails
        """
        extra_headers = kwargs.pop("headers", None) or {}
        access_token = self.tokens.access_token if self.tokens else None

        response = await self.http.request(
            method, url, headers={**extra_headers, **self._headers(access_token)}, **kwargs
        )
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return response

        new_token = await self.refresh_access_token()
        return await self.http.request(
            method, url, headers={**extra_headers, **self._headers(new_token)}, **kwargs
        )

    async def check_session(self) -> dict[str, Any] | None:
        """Return the current user, or None if there is no valid session."""
        try:
            response = await self.request("GET", self._url("/auth/session"))
        except SessionClientError:
            return None
        if response.status_code != httpx.codes.OK:
            return None
        user: dict[str, Any] = response.json()["user"]
        return user

    async def logout(self) -> None:
        """
        Log out this device.

        Local tokens are cleared even if the server cannot be reached.
        """
        body = {"refreshToken": self.tokens.refresh_token} if self.tokens else None
        try:
            await self.http.post(self._url("/auth/logout"), json=body, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("logout_request_failed", error=str(e))
        finally:
            self.clear_tokens()

    async def revoke_all(self) -> None:
        """
        Log out every device of the current user.

        Raises:
            SessionClientError: REVOKE_FAILED if the server refuses
        """
        response = await self.request("POST", self._url("/auth/revoke-all"))
        if response.status_code != httpx.codes.OK:
            raise SessionClientError(
                "Failed to revoke all tokens", response.status_code, "REVOKE_FAILED"
            )
        self.clear_tokens()

"""
Platform-aware token delivery.

Web clients receive tokens as httpOnly cookies and present them the same way.
Mobile clients receive tokens in JSON bodies or deep-link query parameters
and present them as a bearer header (access) or in the request body
(refresh). A request is read from exactly one channel, chosen by platform.
"""

from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import Request, Response

from breadthwise_auth.config import Platform, Settings

if TYPE_CHECKING:
    from breadthwise_auth.services.session import TokenPair

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


def set_token_cookies(response: Response, tokens: "TokenPair", settings: Settings) -> None:
    """
    Attach both tokens to a response as httpOnly cookies.

    Args:
        response: Outgoing response
        tokens: TokenPair to deliver
        settings: Application settings (cookie domain, secure flag)
    """
    common: dict[str, Any] = {
        "httponly": True,
        "secure": settings.SECURE_COOKIES,
        "samesite": "lax",
        "domain": settings.COOKIE_DOMAIN,
        "path": "/",
    }
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=tokens.access_token,
        max_age=tokens.expires_in,
        **common,
    )
    response.set_cookie(
        key=REFRESH_TOKEN_COOKIE,
        value=tokens.refresh_token,
        max_age=tokens.refresh_expires_in,
        **common,
    )


def clear_token_cookies(response: Response, settings: Settings) -> None:
    """Expire both token cookies immediately."""
    for key in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            key=key,
            path="/",
            domain=settings.COOKIE_DOMAIN,
            secure=settings.SECURE_COOKIES,
            httponly=True,
            samesite="lax",
        )


def token_payload(tokens: "TokenPair") -> dict[str, Any]:
    """JSON body for mobile token delivery."""
    return {
        "accessToken": tokens.access_token,
        "refreshToken": tokens.refresh_token,
        "tokenType": "bearer",
        "expiresIn": tokens.expires_in,
    }


def build_deep_link(redirect_uri: str, tokens: "TokenPair") -> str:
    """Append the token pair to a mobile deep link as query parameters."""
    parts = urlsplit(redirect_uri)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query = [(k, v) for k, v in query if k not in ("access_token", "refresh_token")]
    query.append(("access_token", tokens.access_token))
    query.append(("refresh_token", tokens.refresh_token))
    return urlunsplit(parts._replace(query=urlencode(query)))


def read_access_token(request: Request, platform: str) -> str | None:
    """
    Read the presented access token.

    Mobile: Authorization: Bearer header. Web: access_token cookie.
    """
    if platform == Platform.MOBILE:
        authorization = request.headers.get("Authorization")
        if not authorization:
            return None
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() != "bearer" or not credentials.strip():
            return None
        return credentials.strip()

    return request.cookies.get(ACCESS_TOKEN_COOKIE) or None


def read_refresh_token(request: Request, platform: str, body_token: str | None) -> str | None:
    """
    Read the presented refresh token.

    Mobile: refreshToken field of the JSON body. Web: refresh_token cookie.
    """
    if platform == Platform.MOBILE:
        return body_token or None

    return request.cookies.get(REFRESH_TOKEN_COOKIE) or None

"""
Auth error taxonomy.

Every error carries a stable machine-readable code alongside the HTTP status.
The exception handler in main.py renders them as {"detail": ..., "code": ...}.
"""

from fastapi import HTTPException, status


class AuthError(HTTPException):
    """Base class for errors surfaced at the HTTP boundary with a stable code."""

    code: str = "AUTH_ERROR"
    status_code_default: int = status.HTTP_400_BAD_REQUEST
    message: str = "Authentication error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.message,
            headers=headers,
        )


class UnauthorizedError(AuthError):
    """Missing, invalid or expired access token."""

    code = "UNAUTHORIZED"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidRefreshTokenError(AuthError):
    """Refresh token not found, expired or already revoked."""

    code = "INVALID_REFRESH_TOKEN"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    message = "Invalid refresh token"


class InvalidOAuthStateError(AuthError):
    """OAuth state malformed, tampered, expired or issued in the future."""

    code = "INVALID_OAUTH_STATE"
    status_code_default = status.HTTP_400_BAD_REQUEST
    message = "Invalid state"


class InvalidRedirectUriError(AuthError):
    """Mobile login started without an acceptable deep link."""

    code = "INVALID_REDIRECT_URI"
    status_code_default = status.HTTP_400_BAD_REQUEST
    message = "Invalid redirect_uri"


class UserNotFoundError(AuthError):
    """The user behind a token no longer exists."""

    code = "USER_NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND
    message = "User not found"


class ProviderError(AuthError):
    """The identity provider exchange or profile fetch failed."""

    code = "PROVIDER_ERROR"
    status_code_default = status.HTTP_502_BAD_GATEWAY
    message = "GitHub authentication failed"

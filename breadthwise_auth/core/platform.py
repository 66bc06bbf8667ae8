"""
Per-request client context.

The platform (web or mobile) decides token lifetimes and how tokens travel,
so it is resolved once per request into a RequestContext and passed
explicitly to everything downstream.
"""

from dataclasses import dataclass, replace

from fastapi import Request

from breadthwise_auth.config import Platform, PlatformName, Settings

PLATFORM_HEADER = "X-Platform"
DEVICE_ID_HEADER = "X-Device-Id"


@dataclass(frozen=True)
class RequestContext:
    """Observable attributes of the requesting client."""

    platform: PlatformName = Platform.WEB
    user_agent: str | None = None
    ip_address: str | None = None
    device_id: str | None = None

    def with_platform(self, platform: PlatformName) -> "RequestContext":
        return replace(self, platform=platform)


def detect_platform(request: Request) -> PlatformName:
    """
    Detect the client platform.

    Reads the X-Platform header, falling back to the ``platform`` query
    parameter. Anything other than 'mobile' is treated as web.
    """
    value = request.headers.get(PLATFORM_HEADER) or request.query_params.get("platform")
    if value == Platform.MOBILE:
        return Platform.MOBILE
    return Platform.WEB


def get_client_ip(request: Request, trust_proxy_headers: bool = False) -> str | None:
    """
    Extract client IP address from request.

    X-Forwarded-For is only honoured behind a trusted proxy; it can contain
    multiple IPs, the first one is the client.
    """
    if trust_proxy_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def build_request_context(request: Request, settings: Settings) -> RequestContext:
    """Resolve the RequestContext for a request."""
    return RequestContext(
        platform=detect_platform(request),
        user_agent=request.headers.get("User-Agent"),
        ip_address=get_client_ip(request, settings.TRUST_PROXY_HEADERS),
        device_id=request.headers.get(DEVICE_ID_HEADER),
    )

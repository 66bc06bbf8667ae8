"""Tests for platform detection and request context resolution."""

import pytest
from starlette.requests import Request

from breadthwise_auth.core.platform import (
    build_request_context,
    detect_platform,
    get_client_ip,
)


def make_request(
    headers: dict[str, str] | None = None,
    query: str = "",
    client: tuple[str, int] | None = ("10.0.0.5", 51234),
) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": query.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


@pytest.mark.unit
class TestDetectPlatform:
    def test_defaults_to_web(self) -> None:
        assert detect_platform(make_request()) == "web"

    def test_header_mobile(self) -> None:
        assert detect_platform(make_request({"X-Platform": "mobile"})) == "mobile"

    def test_query_mobile(self) -> None:
        assert detect_platform(make_request(query="platform=mobile")) == "mobile"

    def test_header_takes_precedence_over_query(self) -> None:
        request = make_request({"X-Platform": "web"}, query="platform=mobile")
        assert detect_platform(request) == "web"

    @pytest.mark.parametrize("value", ["Mobile", "MOBILE", "ios", "android", "desktop", ""])
    def test_only_exact_mobile_selects_mobile(self, value: str) -> None:
        assert detect_platform(make_request({"X-Platform": value})) == "web"


@pytest.mark.unit
class TestGetClientIp:
    def test_socket_peer(self) -> None:
        assert get_client_ip(make_request()) == "10.0.0.5"

    def test_forwarded_for_ignored_by_default(self) -> None:
        request = make_request({"X-Forwarded-For": "203.0.113.9"})
        assert get_client_ip(request) == "10.0.0.5"

    def test_forwarded_for_first_entry_when_trusted(self) -> None:
        request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
        assert get_client_ip(request, trust_proxy_headers=True) == "203.0.113.9"

    def test_no_client(self) -> None:
        assert get_client_ip(make_request(client=None)) is None


@pytest.mark.unit
class TestBuildRequestContext:
    def test_collects_attributes(self, settings) -> None:
        request = make_request(
            {"X-Platform": "mobile", "User-Agent": "Breadthwise/1.4", "X-Device-Id": "dev-1"}
        )
        ctx = build_request_context(request, settings)

        assert ctx.platform == "mobile"
        assert ctx.user_agent == "Breadthwise/1.4"
        assert ctx.ip_address == "10.0.0.5"
        assert ctx.device_id == "dev-1"

    def test_with_platform_returns_copy(self, settings) -> None:
        ctx = build_request_context(make_request(), settings)
        mobile = ctx.with_platform("mobile")

        assert mobile.platform == "mobile"
        assert ctx.platform == "web"
        assert mobile.ip_address == ctx.ip_address

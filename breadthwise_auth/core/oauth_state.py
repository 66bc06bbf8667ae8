"""
Signed OAuth state parameter.

The state carried through the GitHub redirect is a base64url JSON payload
followed by its HMAC-SHA256 signature: ``<payload>.<signature>``. It binds the
client platform (and, for mobile, the deep link to return to) to the login
attempt and expires after a short window.

The nonce is not recorded server-side, so a captured state can be replayed
until it expires. GitHub's authorization codes are single use, which bounds
what a replayed state can achieve.
"""

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from breadthwise_auth.config import Platform, PlatformName
from breadthwise_auth.core.crypto import (
    b64url_decode,
    b64url_encode,
    hmac_sign,
    random_token,
    timing_safe_equal,
)

STATE_VALIDITY_SECONDS = 600
CLOCK_SKEW_SECONDS = 60
NONCE_BYTES = 16


class StateErrorReason(str, Enum):
    """Why a state string was rejected."""

    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    UNDECODABLE = "undecodable"
    EXPIRED = "expired"
    FUTURE_ISSUED = "future_issued"


class OAuthStateError(Exception):
    """Raised when a state string fails validation."""

    def __init__(self, reason: StateErrorReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class OAuthStatePayload:
    nonce: str
    platform: PlatformName
    iat: int
    exp: int
    redirect_uri: str | None = None

    def to_json(self) -> str:
        data: dict[str, Any] = {
            "nonce": self.nonce,
            "platform": self.platform,
            "iat": self.iat,
            "exp": self.exp,
        }
        if self.redirect_uri is not None:
            data["redirectUri"] = self.redirect_uri
        return json.dumps(data, separators=(",", ":"))


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class OAuthStateSigner:
    """
    Issues and validates signed, time-boxed OAuth state strings.

    Args:
        secret: HMAC secret
        ttl_seconds: How long a state stays valid
        clock_skew_seconds: How far in the future ``iat`` may be
        now: Clock returning unix seconds (injectable for tests)
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = STATE_VALIDITY_SECONDS,
        clock_skew_seconds: int = CLOCK_SKEW_SECONDS,
        now: Callable[[], int] | None = None,
    ) -> None:
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._clock_skew_seconds = clock_skew_seconds
        self._now = now or (lambda: int(time.time()))

    def sign_payload(self, payload: OAuthStatePayload) -> str:
        """Encode and sign a payload as ``<payload>.<signature>``."""
        encoded = b64url_encode(payload.to_json().encode("utf-8"))
        return f"{encoded}.{hmac_sign(encoded, self._secret)}"

    def generate_state(self, platform: PlatformName, redirect_uri: str | None = None) -> str:
        """
        Generate a signed state for a new login attempt.

        Args:
            platform: 'web' or 'mobile'
            redirect_uri: Deep link to return tokens to (mobile)

        Returns:
            Signed state string
        """
        now = self._now()
        payload = OAuthStatePayload(
            nonce=random_token(NONCE_BYTES),
            platform=platform,
            redirect_uri=redirect_uri,
            iat=now,
            exp=now + self._ttl_seconds,
        )
        return self.sign_payload(payload)

    def validate_state(self, state: str) -> OAuthStatePayload:
        """
        Validate a state string and return its payload.

        The signature is checked before the payload is decoded, so nothing in
        a tampered payload is ever acted upon.

        Raises:
            OAuthStateError: With the specific reason for rejection
        """
        parts = state.split(".")
        if len(parts) != 2:
            raise OAuthStateError(StateErrorReason.MALFORMED, "Invalid state format")

        encoded, signature = parts
        expected = hmac_sign(encoded, self._secret)
        if not timing_safe_equal(signature, expected):
            raise OAuthStateError(
                StateErrorReason.BAD_SIGNATURE,
                "Invalid state signature",
            )

        try:
            data = json.loads(b64url_decode(encoded).decode("utf-8"))
        except ValueError as e:
            raise OAuthStateError(
                StateErrorReason.UNDECODABLE, "Failed to decode state payload"
            ) from e

        if not isinstance(data, dict):
            raise OAuthStateError(StateErrorReason.MALFORMED, "State payload is not an object")

        nonce = data.get("nonce")
        platform = data.get("platform")
        iat = data.get("iat")
        exp = data.get("exp")
        redirect_uri = data.get("redirectUri")

        if not nonce or not isinstance(nonce, str) or not _is_timestamp(iat) or not _is_timestamp(exp):
            raise OAuthStateError(
                StateErrorReason.MALFORMED, "State payload missing required fields"
            )
        if platform not in Platform.ALL:
            raise OAuthStateError(StateErrorReason.MALFORMED, "Invalid platform value in state")
        if redirect_uri is not None and not isinstance(redirect_uri, str):
            raise OAuthStateError(StateErrorReason.MALFORMED, "Invalid redirect URI in state")

        now = self._now()
        if now > exp:
            raise OAuthStateError(StateErrorReason.EXPIRED, "State has expired")
        if iat > now + self._clock_skew_seconds:
            raise OAuthStateError(StateErrorReason.FUTURE_ISSUED, "State issued in the future")

        return OAuthStatePayload(
            nonce=nonce,
            platform=platform,
            redirect_uri=redirect_uri,
            iat=iat,
            exp=exp,
        )

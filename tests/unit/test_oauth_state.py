"""Tests for signed OAuth state generation and validation."""

import json

import pytest

from breadthwise_auth.core.crypto import b64url_decode, b64url_encode, hmac_sign
from breadthwise_auth.core.oauth_state import (
    OAuthStateError,
    OAuthStatePayload,
    OAuthStateSigner,
    StateErrorReason,
)

SECRET = "x" * 40
NOW = 1_760_000_000


class FakeClock:
    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def make_signer(clock: FakeClock | None = None, secret: str = SECRET) -> OAuthStateSigner:
    return OAuthStateSigner(secret, now=clock or FakeClock())


def sign_raw(data: object, secret: str = SECRET) -> str:
    encoded = b64url_encode(json.dumps(data).encode())
    return f"{encoded}.{hmac_sign(encoded, secret)}"


def flip_bit(segment: str, index: int) -> str:
    raw = bytearray(b64url_decode(segment))
    raw[index % len(raw)] ^= 0x01
    return b64url_encode(bytes(raw))


def reason_of(signer: OAuthStateSigner, state: str) -> StateErrorReason:
    with pytest.raises(OAuthStateError) as exc_info:
        signer.validate_state(state)
    return exc_info.value.reason


@pytest.mark.unit
class TestGenerateState:
    def test_round_trip_web(self) -> None:
        signer = make_signer()
        payload = signer.validate_state(signer.generate_state("web"))

        assert payload.platform == "web"
        assert payload.redirect_uri is None
        assert payload.iat == NOW
        assert payload.exp == NOW + 600

    def test_round_trip_mobile_with_redirect(self) -> None:
        signer = make_signer()
        state = signer.generate_state("mobile", "breadthwise://auth/callback")
        payload = signer.validate_state(state)

        assert payload.platform == "mobile"
        assert payload.redirect_uri == "breadthwise://auth/callback"

    def test_payload_uses_camel_case_redirect_key(self) -> None:
        signer = make_signer()
        state = signer.generate_state("mobile", "breadthwise://cb")
        data = json.loads(b64url_decode(state.split(".")[0]))

        assert data["redirectUri"] == "breadthwise://cb"
        assert set(data) == {"nonce", "platform", "iat", "exp", "redirectUri"}

    def test_nonce_is_128_bits_and_unique(self) -> None:
        signer = make_signer()
        nonces = {signer.validate_state(signer.generate_state("web")).nonce for _ in range(50)}

        assert len(nonces) == 50
        assert all(len(n) == 32 for n in nonces)

    def test_state_has_exactly_two_segments(self) -> None:
        assert make_signer().generate_state("web").count(".") == 1


@pytest.mark.unit
class TestValidateState:
    @pytest.mark.parametrize("state", ["", "abc", "a.b.c", "..", "nodots"])
    def test_malformed_segment_count(self, state: str) -> None:
        assert reason_of(make_signer(), state) == StateErrorReason.MALFORMED

    def test_signature_from_other_secret(self) -> None:
        state = make_signer(secret="y" * 40).generate_state("web")
        assert reason_of(make_signer(), state) == StateErrorReason.BAD_SIGNATURE

    @pytest.mark.parametrize("index", [0, 3, 10, 25, -1])
    def test_payload_bit_flip_rejected(self, index: int) -> None:
        signer = make_signer()
        encoded, signature = signer.generate_state("mobile", "breadthwise://cb").split(".")
        tampered = f"{flip_bit(encoded, index)}.{signature}"

        assert reason_of(signer, tampered) == StateErrorReason.BAD_SIGNATURE

    @pytest.mark.parametrize("index", [0, 7, 16, 31])
    def test_signature_bit_flip_rejected(self, index: int) -> None:
        signer = make_signer()
        encoded, signature = signer.generate_state("web").split(".")
        tampered = f"{encoded}.{flip_bit(signature, index)}"

        assert reason_of(signer, tampered) == StateErrorReason.BAD_SIGNATURE

    def test_platform_swap_rejected(self) -> None:
        """A web state cannot be rewritten into a mobile one without the secret."""
        signer = make_signer()
        encoded, signature = signer.generate_state("web").split(".")
        data = json.loads(b64url_decode(encoded))
        data["platform"] = "mobile"
        forged = b64url_encode(json.dumps(data).encode())

        assert reason_of(signer, f"{forged}.{signature}") == StateErrorReason.BAD_SIGNATURE

    def test_undecodable_base64(self) -> None:
        encoded = "@@@@"
        state = f"{encoded}.{hmac_sign(encoded, SECRET)}"
        assert reason_of(make_signer(), state) == StateErrorReason.UNDECODABLE

    def test_undecodable_json(self) -> None:
        encoded = b64url_encode(b"{not json")
        state = f"{encoded}.{hmac_sign(encoded, SECRET)}"
        assert reason_of(make_signer(), state) == StateErrorReason.UNDECODABLE

    @pytest.mark.parametrize(
        "data",
        [
            {"platform": "web", "iat": NOW, "exp": NOW + 600},
            {"nonce": "n", "iat": NOW, "exp": NOW + 600},
            {"nonce": "n", "platform": "web", "exp": NOW + 600},
            {"nonce": "n", "platform": "web", "iat": NOW},
            {"nonce": "n", "platform": "desktop", "iat": NOW, "exp": NOW + 600},
            {"nonce": "n", "platform": "web", "iat": "now", "exp": NOW + 600},
            [1, 2, 3],
        ],
    )
    def test_missing_or_invalid_fields(self, data: object) -> None:
        assert reason_of(make_signer(), sign_raw(data)) == StateErrorReason.MALFORMED

    def test_expired(self) -> None:
        clock = FakeClock()
        signer = make_signer(clock)
        state = signer.generate_state("web")
        clock.now = NOW + 601

        assert reason_of(signer, state) == StateErrorReason.EXPIRED

    def test_valid_at_exact_expiry(self) -> None:
        clock = FakeClock()
        signer = make_signer(clock)
        state = signer.generate_state("web")
        clock.now = NOW + 600

        assert signer.validate_state(state).platform == "web"

    def test_issued_in_the_future(self) -> None:
        state = sign_raw(
            {"nonce": "n", "platform": "web", "iat": NOW + 120, "exp": NOW + 720}
        )
        assert reason_of(make_signer(), state) == StateErrorReason.FUTURE_ISSUED

    def test_small_clock_skew_tolerated(self) -> None:
        state = sign_raw({"nonce": "n", "platform": "web", "iat": NOW + 60, "exp": NOW + 660})
        assert make_signer().validate_state(state).iat == NOW + 60

    def test_expiry_checked_before_future_iat(self) -> None:
        state = sign_raw({"nonce": "n", "platform": "web", "iat": NOW + 500, "exp": NOW - 1})
        assert reason_of(make_signer(), state) == StateErrorReason.EXPIRED


@pytest.mark.unit
class TestOAuthStatePayload:
    def test_to_json_omits_missing_redirect(self) -> None:
        payload = OAuthStatePayload(nonce="n", platform="web", iat=1, exp=2)
        assert "redirectUri" not in json.loads(payload.to_json())

    def test_sign_payload_validates(self) -> None:
        signer = make_signer()
        payload = OAuthStatePayload(
            nonce="abc", platform="mobile", iat=NOW, exp=NOW + 10, redirect_uri="breadthwise://x"
        )
        assert signer.validate_state(signer.sign_payload(payload)) == payload

"""
Cryptographic primitives shared by the auth subsystem.

This module provides:
- SHA-256 hashing for storing refresh tokens
- Random token generation
- HMAC-SHA256 signing with base64url output
- Constant-time string comparison
"""

import base64
import hashlib
import hmac
import secrets


def sha256_hex(data: str) -> str:
    """
    Hash a string with SHA-256.

    Args:
        data: The value to hash

    Returns:
        Lowercase hex digest (64 characters)
    """
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def random_token(byte_length: int = 32) -> str:
    """
    Generate a cryptographically secure random token.

    Args:
        byte_length: Number of random bytes

    Returns:
        Hex string of length 2 * byte_length
    """
    return secrets.token_hex(byte_length)


def b64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """
    Decode unpadded base64url.

    Raises:
        ValueError: If the input is not valid base64url
    """
    padded = data + "=" * (-len(data) % 4)
    return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)


def hmac_sign(payload: str, secret: str) -> str:
    """
    Sign a payload with HMAC-SHA256.

    Args:
        payload: The string to sign
        secret: Signing secret

    Returns:
        base64url signature without padding
    """
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return b64url_encode(digest)


def timing_safe_equal(a: str, b: str) -> bool:
    """
    Compare two strings in constant time.

    Strings of different length compare unequal instead of raising.
    """
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))

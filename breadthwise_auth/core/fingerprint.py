"""
Client fingerprinting.

A fingerprint is a hash of the client's user agent, IP address, platform and
device id. It is embedded in access tokens as an advisory signal: proxies and
NAT can legitimately change the IP between issuance and use, so a mismatch is
only rejected when ENFORCE_FINGERPRINT is set.
"""

from breadthwise_auth.core.crypto import sha256_hex
from breadthwise_auth.core.platform import RequestContext

# Cannot appear inside an HTTP header value
FINGERPRINT_DELIMITER = "\n"


def generate_fingerprint(ctx: RequestContext) -> str:
    """
    Derive the fingerprint for a request context.

    Args:
        ctx: Resolved request context

    Returns:
        SHA-256 hex digest
    """
    components = [
        ctx.user_agent or "",
        ctx.ip_address or "",
        ctx.platform or "",
        ctx.device_id or "",
    ]
    return sha256_hex(FINGERPRINT_DELIMITER.join(components))

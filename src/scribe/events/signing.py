"""HMAC-SHA256 signing of webhook bodies.

Signatures are computed over the exact bytes placed on the wire. Never sign a
re-serialization of the payload: any whitespace or key-order difference changes
the digest and the receiver will reject the delivery.
"""

import hashlib
import hmac
from collections.abc import Mapping

SIGNATURE_HEADER = "X-Webhook-Signature"
EVENT_HEADER = "X-Webhook-Event"
ENVELOPE_ID_HEADER = "X-Webhook-ID"

_SIGNATURE_PREFIX = "sha256="


def sign(payload: bytes, secret: str) -> str:
    """Compute the HMAC-SHA256 hex digest of *payload* keyed by *secret*."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify(payload: bytes, signature: str, secret: str) -> bool:
    """Check *signature* against *payload* in constant time.

    Returns False (never raises) for signatures that are empty or not ASCII.
    """
    if not signature:
        return False
    try:
        supplied = signature.encode("ascii")
    except UnicodeEncodeError:
        return False
    expected = sign(payload, secret).encode("ascii")
    return hmac.compare_digest(expected, supplied)


def verify_request(body: bytes, headers: Mapping[str, str], secret: str) -> bool:
    """Verify an inbound webhook request signed by this system.

    Accepts the bare hex digest or a ``sha256=`` prefixed one. Header lookup is
    case-insensitive for plain dicts as well as framework header mappings.
    """
    signature = headers.get(SIGNATURE_HEADER)
    if signature is None:
        lowered = {k.lower(): v for k, v in headers.items()}
        signature = lowered.get(SIGNATURE_HEADER.lower())
    if not signature:
        return False
    if signature.startswith(_SIGNATURE_PREFIX):
        signature = signature[len(_SIGNATURE_PREFIX):]
    return verify(body, signature, secret)

import hashlib
import hmac
from typing import Optional, Union

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    """Return the ``sha256=<hex>`` signature GitHub sends for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    secret: Optional[str], body: bytes, signature: Optional[Union[str, bytes]]
) -> bool:
    """
    Check an ``X-Hub-Signature-256`` header against the raw request body.

    Fails closed: a missing secret, a missing header or a malformed
    signature all return False. Never raises.
    """
    if not secret or not signature:
        return False
    if isinstance(signature, bytes):
        try:
            signature = signature.decode("ascii")
        except UnicodeDecodeError:
            return False
    if not signature.startswith(SIGNATURE_PREFIX):
        return False
    if not isinstance(body, (bytes, bytearray)):
        return False
    expected = compute_signature(secret, bytes(body))
    try:
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii"))
    except UnicodeEncodeError:
        return False

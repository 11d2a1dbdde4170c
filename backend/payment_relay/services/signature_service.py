"""
Webhook Signature Service

Verifies the everypay-signature header on processor notifications.

Two schemes are supported:
- concat: SHA-256 over raw_body + shared_secret (what the processor
  integration sends today)
- hmac: HMAC-SHA256 keyed with shared_secret over raw_body

concat is not a keyed MAC; it stays the default until the processor
contract for the header is confirmed.
"""
import hmac
import hashlib
from typing import Literal, Optional


SignatureScheme = Literal["concat", "hmac"]


def compute_signature(
    raw_body: bytes,
    shared_secret: bytes,
    scheme: SignatureScheme = "concat"
) -> str:
    """
    Compute the expected webhook signature.

    Args:
        raw_body: Request body exactly as received
        shared_secret: Shared webhook key
        scheme: Digest construction

    Returns:
        Lowercase hexadecimal SHA-256 digest
    """
    if scheme == "hmac":
        return hmac.new(shared_secret, raw_body, hashlib.sha256).hexdigest()
    if scheme == "concat":
        return hashlib.sha256(raw_body + shared_secret).hexdigest()
    raise ValueError(f"Unknown signature scheme: {scheme}")


def verify_signature(
    raw_body: bytes,
    supplied_signature: Optional[str],
    shared_secret: bytes,
    scheme: SignatureScheme = "concat"
) -> bool:
    """
    Check a supplied signature against the raw body.

    Comparison is exact (case-sensitive hex) and constant-time.
    A missing or empty signature, or an empty shared secret, never verifies.
    """
    if not supplied_signature or not shared_secret:
        return False

    expected = compute_signature(raw_body, shared_secret, scheme)

    return hmac.compare_digest(
        expected.encode("ascii"),
        supplied_signature.encode("utf-8")
    )

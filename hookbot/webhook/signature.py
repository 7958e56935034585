"""GitHub webhook signature verification.

GitHub signs every delivery with HMAC-SHA256 over the exact request body
using the webhook secret, and sends the result in the X-Hub-Signature-256
header as ``sha256=<hexdigest>``. Verification must run over the raw bytes:
re-serializing a parsed payload can change its byte layout and invalidate
the signature.
"""

import hashlib
import hmac
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Compute the X-Hub-Signature-256 header value for a body.

    Args:
        raw_body: The exact request body bytes.
        secret: The webhook shared secret.

    Returns:
        The header value in format ``sha256=<hexdigest>``.
    """
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(
    raw_body: Union[bytes, str],
    signature_header: Optional[str],
    secret: str,
) -> bool:
    """Verify a GitHub webhook HMAC-SHA256 signature.

    The comparison is constant-time. Any malformed input (missing header,
    wrong prefix, non-text values) yields False rather than an exception.

    Args:
        raw_body: The exact request body bytes.
        signature_header: The X-Hub-Signature-256 header value.
        secret: The webhook shared secret.

    Returns:
        True if the header matches the body's signature.
    """
    if not signature_header or not isinstance(signature_header, str):
        return False
    if not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    if not secret or not isinstance(secret, str):
        return False

    try:
        if isinstance(raw_body, str):
            raw_body = raw_body.encode("utf-8")
        expected = compute_signature(bytes(raw_body), secret)
        return hmac.compare_digest(
            expected.encode("ascii"),
            signature_header.encode("utf-8", errors="replace"),
        )
    except (TypeError, ValueError) as e:
        logger.warning("Could not verify webhook signature: %s", e)
        return False

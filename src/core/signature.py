"""Kong webhook signature check.

Kong signs each delivery with a `kong-signature: t=<unix>,v1=<hex>` header where
`v1` is HMAC-SHA256 over `"<t>.<raw body>"` using the subscription secret.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)


def sign_payload(body: str, secret: str, timestamp: int | None = None) -> str:
    """Build a header value in the same format Kong sends."""
    ts = int(time.time()) if timestamp is None else int(timestamp)
    digest = hmac.new(secret.encode("utf-8"), f"{ts}.{body}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def verify_webhook_signature(
    signature_header: str | None,
    secret: str,
    body: str,
    tolerance_seconds: int = 300,
    now: int | None = None,
) -> bool:
    if not signature_header:
        return False

    elements = [part.strip() for part in signature_header.split(",")]
    timestamp_part = next((e for e in elements if e.startswith("t=")), None)
    signature_part = next((e for e in elements if e.startswith("v1=")), None)
    if not timestamp_part or not signature_part:
        return False

    try:
        timestamp = int(timestamp_part.split("=", 1)[1])
    except ValueError:
        return False

    current = int(time.time()) if now is None else int(now)
    if abs(current - timestamp) > tolerance_seconds:
        logger.warning("Rejected webhook signature outside tolerance window")
        return False

    received = signature_part.split("=", 1)[1]
    expected = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{body}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(received, expected)

"""
Webhook Security Module

Signature verification for the payment gateway webhook:
- Constant-time signature comparison
- Timestamp tolerance against replayed deliveries
- Raw body is read once and returned for parsing
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300
STRIPE_SIGNATURE_HEADER = "Stripe-Signature"


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload as hex"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """
    Verify webhook timestamp is within acceptable range.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds

    Returns:
        True if timestamp is valid, False otherwise
    """
    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def parse_stripe_signature_header(header: str) -> tuple[Optional[str], list[str]]:
    """Split 't=<ts>,v1=<sig>[,v1=<sig>...]' into the timestamp and v1 signatures"""
    timestamp = None
    signatures = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


def verify_stripe_signature(
    payload: bytes, signature_header: str, secret: str, max_age: int = MAX_WEBHOOK_AGE_SECONDS
) -> None:
    """Raise WebhookSignatureError unless the header signs this exact payload"""
    timestamp, signatures = parse_stripe_signature_header(signature_header)
    if not timestamp or not signatures:
        raise WebhookSignatureError("Invalid signature format")

    if not verify_timestamp(timestamp, max_age):
        raise WebhookSignatureError("Webhook timestamp outside tolerance")

    signed_payload = timestamp.encode("utf-8") + b"." + payload
    expected_signature = compute_hmac_sha256(secret, signed_payload)
    if not any(constant_time_compare(expected_signature, sig) for sig in signatures):
        raise WebhookSignatureError("Signature mismatch")


async def verify_stripe_webhook(request: Request, secret: str) -> bytes:
    """
    Verify a Stripe webhook request and return its raw body.

    Stripe uses:
    - Header: 'Stripe-Signature' (format: "t=<timestamp>,v1=<signature>")
    - Signed payload: "<timestamp>.<raw body>"

    Raises:
        HTTPException(400) when the header is missing or the signature is invalid
    """
    raw_body = await request.body()
    signature_header = request.headers.get(STRIPE_SIGNATURE_HEADER)

    if not signature_header:
        logger.warning("🚫 Stripe webhook missing signature header")
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    try:
        verify_stripe_signature(raw_body, signature_header, secret)
    except WebhookSignatureError as e:
        logger.warning(f"🚫 Stripe webhook signature rejected: {e}")
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}") from e

    logger.debug("✅ Stripe webhook signature verified")
    return raw_body


def create_stripe_signature(secret: str, payload: bytes, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header value for a payload (used for replaying events)"""
    timestamp = timestamp if timestamp is not None else int(time.time())
    sig = compute_hmac_sha256(secret, str(timestamp).encode("utf-8") + b"." + payload)
    return f"t={timestamp},v1={sig}"

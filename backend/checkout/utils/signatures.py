from __future__ import annotations

import hashlib
import hmac
import logging

from checkout.errors import InvalidSignature, MissingSignature

log = logging.getLogger(__name__)


def payment_signature_payload(gateway_order_id: str, payment_id: str) -> bytes:
    # Razorpay signs "<order_id>|<payment_id>" for checkout confirmations.
    return f"{gateway_order_id}|{payment_id}".encode("utf-8")


def verify(raw_payload: bytes, provided_signature: str | None, shared_secret: str | None) -> bool:
    """HMAC-SHA256 over the exact bytes received, compared in constant time."""
    if not provided_signature or not shared_secret:
        return False
    try:
        if isinstance(raw_payload, str):
            raw_payload = raw_payload.encode("utf-8")
        computed = hmac.new(shared_secret.encode("utf-8"), raw_payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(computed, provided_signature.strip())
    except Exception:
        return False


def check_signature(
    raw_payload: bytes,
    signature: str | None,
    secret: str | None,
    *,
    required: bool,
    context: str = "webhook",
) -> bool:
    """Returns True when verified, False when skipped in advisory mode.

    Raises MissingSignature (required mode, no signature) or InvalidSignature
    (mismatch, or a signature that cannot be checked for lack of a secret).
    """
    if not (signature or "").strip():
        if required:
            raise MissingSignature(f"Missing {context} signature")
        log.warning("!!! %s signature missing; accepting UNVERIFIED request (non-production mode) !!!", context)
        return False
    if not secret:
        # A supplied signature is never accepted unchecked, advisory mode included.
        log.error("%s signature supplied but no secret is configured; rejecting", context)
        raise InvalidSignature(f"Cannot verify {context} signature")
    if not verify(raw_payload, signature, secret):
        log.warning("%s signature mismatch; rejecting", context)
        raise InvalidSignature()
    return True

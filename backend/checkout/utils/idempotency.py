from __future__ import annotations

import uuid

from flask import request


def get_idempotency_key(body: dict | None = None) -> str:
    """Per-checkout-attempt key: header, then body, then a fresh one."""
    k = request.headers.get("Idempotency-Key") or request.headers.get("X-Idempotency-Key")
    if not k and isinstance(body, dict):
        k = body.get("idempotencyKey")
    if isinstance(k, str) and k.strip():
        return k.strip()[:128]
    return uuid.uuid4().hex

from __future__ import annotations

from flask import Blueprint, jsonify, request

from checkout.services import get_services

webhooks_bp = Blueprint("webhooks_bp", __name__, url_prefix="/api/webhooks")


@webhooks_bp.post("/razorpay")
def razorpay_webhook():
    svc = get_services()
    if svc.config.is_production and not svc.config.RAZORPAY_WEBHOOK_SECRET:
        return jsonify({"success": False, "message": "Webhook secret not set."}), 500

    # Signature covers the raw bytes; never re-serialize before verifying.
    raw = request.get_data(cache=True) or b""
    sig = request.headers.get("X-Razorpay-Signature")
    event_id = request.headers.get("X-Razorpay-Event-Id")

    result = svc.reconciler.handle(raw, sig, event_id)
    return jsonify(result), 200

from __future__ import annotations

import json

from flask import Blueprint, current_app, jsonify, request

from checkout.errors import RemoteError
from checkout.services import get_services
from checkout.utils.idempotency import get_idempotency_key
from checkout.utils.masking import mask_secret
from checkout.utils.sendgrid_client import send_mail
from checkout.utils.strapi_client import decode_response, extract_order_id
from checkout.validation import confirm_payment, validate_checkout

checkout_bp = Blueprint("checkout_bp", __name__, url_prefix="/api")


def _mail(message: dict) -> tuple[bool, str]:
    cfg = get_services().config
    message.setdefault("from", cfg.MAIL_FROM)
    return send_mail(message, api_key=cfg.SENDGRID_API_KEY)


def _confirmation_email(order_id, checkout) -> None:
    if not checkout.customer_email:
        return
    lines = "".join(
        f"<li>{item.name or item.productId} x {item.quantity} @ {item.price:.2f}</li>" for item in checkout.cart
    )
    ok, detail = _mail({
        "to": checkout.customer_email,
        "subject": f"Order #{order_id} confirmed",
        "text": f"Thank you for your purchase, {checkout.name}! Your order #{order_id} total was {checkout.total_cost:.2f}.",
        "html": f"<h3>Order #{order_id}</h3><ul>{lines}</ul><p>Total: {checkout.total_cost:.2f}</p>",
    })
    if not ok:
        current_app.logger.warning("Order %s confirmation email not sent: %s", order_id, detail)


@checkout_bp.post("/checkout")
def create_checkout():
    body = request.get_json(silent=True)
    co = validate_checkout(body)

    svc = get_services()
    if not svc.config.STRAPI_API_TOKEN:
        return jsonify({"success": False, "message": "Strapi API token not set."}), 500

    confirm_payment(co, svc.gateway, required=svc.config.is_production)

    idem = get_idempotency_key(body)
    payload = co.order_payload()
    current_app.logger.info(
        "Checkout %s: %d items, total=%s, method=%s, status=%s (strapi token %s)",
        idem, len(co.cart), co.total_cost, co.payment_method, payload["transactionStatus"],
        mask_secret(svc.config.STRAPI_API_TOKEN),
    )

    try:
        res = svc.store.write(payload, idempotency_key=idem)
    except RemoteError as e:
        current_app.logger.error("Failed to save order %s: %s", idem, e.message)
        return jsonify({"success": False, "message": "Failed to save order to Strapi.", "error": e.body or e.message}), e.status_code

    order_id = extract_order_id(decode_response(res))
    _confirmation_email(order_id, co)

    return jsonify({
        "success": True,
        "orderId": order_id,
        "redirectUrl": f"/order/success?orderId={order_id}",
    })


@checkout_bp.post("/payments/order")
def create_payment_order():
    data = request.get_json(silent=True) or {}
    amount = data.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        return jsonify({"success": False, "message": "amount must be a positive number"}), 400

    svc = get_services()
    notes = data.get("notes") if isinstance(data.get("notes"), dict) else None
    order = svc.gateway.create_order(amount, currency=svc.config.CURRENCY, receipt=str(data.get("receipt") or ""), notes=notes)
    return jsonify({
        "success": True,
        "orderId": order.get("id"),
        "amount": order.get("amount"),
        "currency": order.get("currency") or svc.config.CURRENCY,
        "keyId": svc.gateway.key_id,
    })


@checkout_bp.post("/checkout/custom")
def custom_checkout():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    items = data.get("items") or []
    total = data.get("total")
    if not email or not isinstance(email, str):
        return jsonify({"success": False, "message": "Missing required fields: email"}), 400

    current_app.logger.info("Processing custom order: %d items, total=%s", len(items) if isinstance(items, list) else 0, total)

    ok, detail = _mail({
        "to": email,
        "subject": "Your Purchase Invoice",
        "text": f"Thank you for your purchase! Your total was {total}.",
        "html": f"<h3>Invoice</h3><p>Items: {json.dumps(items, default=str)}</p><p>Total: {total}</p>",
    })
    if not ok:
        current_app.logger.error("Custom checkout email failed: %s", detail)
        return jsonify({"success": False, "message": "Checkout failed."}), 500
    return jsonify({"success": True, "message": "Checkout successful. Email sent."})


@checkout_bp.post("/send-invoice")
def send_invoice():
    data = request.get_json(silent=True) or {}
    recipient = data.get("recipient")
    subject = data.get("subject")
    html = data.get("html")
    if not all(isinstance(v, str) and v for v in (recipient, subject, html)):
        return jsonify({"success": False, "message": "Missing required fields."}), 400

    ok, detail = _mail({"to": recipient, "subject": subject, "html": html})
    if not ok:
        current_app.logger.error("Send invoice failed: %s", detail)
        return jsonify({"success": False, "message": "Failed to send invoice."}), 500
    return jsonify({"success": True, "message": "Invoice sent."})

from __future__ import annotations

import logging
import re

from checkout.errors import CheckoutError

log = logging.getLogger(__name__)

_NAME_ALLOWED = re.compile(r"[^A-Za-z0-9 .'\-]")
_MIN_NAME_LEN = 3


def sanitize_customer_name(name) -> str | None:
    """Reduce a display name to characters the gateway accepts; None if too short to send."""
    if not isinstance(name, str):
        return None
    cleaned = _NAME_ALLOWED.sub("", name)
    cleaned = re.sub(r"\s+", " ", cleaned).strip(" .'-")
    if len(cleaned) < _MIN_NAME_LEN:
        return None
    return cleaned[:50]


def _as_float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def build_line_items(order: dict) -> list:
    """[(name, unit_price_major, quantity)] from the cart, or one "Order Total" line."""
    lines = []
    for item in order.get("cart") or []:
        if not isinstance(item, dict):
            continue
        price = _as_float(item.get("price"))
        try:
            qty = int(item.get("quantity") or 1)
        except (TypeError, ValueError):
            qty = 1
        if price <= 0 or qty <= 0:
            continue
        name = item.get("name") or item.get("title") or f"Product {item.get('productId') or item.get('id') or ''}".strip()
        lines.append((str(name), price, qty))
    if not lines:
        total = _as_float(order.get("totalCost"))
        if total > 0:
            lines.append(("Order Total", total, 1))
    return lines


def build_customer(order: dict) -> dict:
    customer = {}
    name = sanitize_customer_name(order.get("customerName"))
    if name:
        customer["name"] = name
    if order.get("customerEmail"):
        customer["email"] = order["customerEmail"]
    if order.get("customerContact"):
        customer["contact"] = str(order["customerContact"])
    return customer


def issue_invoice(gateway, order: dict, *, currency: str = "INR") -> dict:
    """Create items and an invoice for a paid order.

    Returns {"ok": True, "invoice_id", "invoice_url"} or {"ok": False, "error"};
    the caller decides what to do with a failure.
    """
    lines = build_line_items(order)
    if not lines:
        return {"ok": False, "error": "order has nothing to invoice"}

    try:
        line_items = []
        for name, price, qty in lines:
            item = gateway.create_item(name, price, currency)
            line_items.append({"item_id": item.get("id"), "quantity": qty})

        inv = gateway.create_invoice(
            customer=build_customer(order),
            line_items=line_items,
            currency=currency,
            description=f"Order {order.get('id')}",
            receipt=f"order-{order.get('id')}",
            notes={"orderId": str(order.get("id")), "paymentId": order.get("paymentId") or ""},
        )
    except CheckoutError as e:
        return {"ok": False, "error": e.message}

    invoice_id = inv.get("id")
    if not invoice_id:
        return {"ok": False, "error": "gateway returned no invoice id"}
    return {"ok": True, "invoice_id": invoice_id, "invoice_url": inv.get("short_url") or ""}

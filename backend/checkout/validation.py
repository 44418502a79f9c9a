from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from checkout.errors import ConfigurationError, InvalidPaymentMethod, PaymentNotCaptured, ValidationError
from checkout.utils.payment_methods import initial_status, map_payment_method
from checkout.utils.razorpay_client import ACCEPTED_PAYMENT_STATUSES
from checkout.utils.signatures import check_signature, payment_signature_payload

log = logging.getLogger(__name__)


@dataclass
class LineItem:
    productId: Any
    quantity: int
    price: float
    name: str | None = None

    def to_dict(self) -> dict:
        d = asdict(self)
        if d["name"] is None:
            d.pop("name")
        return d


@dataclass
class NormalizedCheckout:
    cart: list
    total_cost: float
    name: str
    address: Any
    payment_method: str
    customer_email: str | None = None
    customer_contact: str | None = None
    payment_id: str | None = None
    gateway_order_id: str | None = None
    signature: str | None = None

    @property
    def has_payment_confirmation(self) -> bool:
        return bool(self.payment_id and self.gateway_order_id)

    def order_payload(self, status: str | None = None) -> dict:
        return {
            "customerEmail": self.customer_email,
            "customerName": self.name,
            "customerContact": self.customer_contact,
            "cart": [item.to_dict() for item in self.cart],
            "totalCost": self.total_cost,
            "address": self.address,
            "paymentId": self.payment_id,
            "razorpayOrderId": self.gateway_order_id,
            "paymentMethod": self.payment_method,
            "transactionStatus": status or initial_status(self.payment_method),
        }


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _first(body: dict, *names):
    for n in names:
        v = body.get(n)
        if v not in (None, ""):
            return v
    return None


def _normalize_line(raw) -> LineItem | None:
    if not isinstance(raw, dict):
        return None
    product_id = _first(raw, "productId", "product", "id")
    qty = raw.get("quantity", 1)
    price = raw.get("price", 0)
    if product_id is None or not _is_number(price) or price < 0:
        return None
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        return None
    name = raw.get("name") or raw.get("title")
    return LineItem(productId=product_id, quantity=qty, price=float(price), name=str(name) if name else None)


def validate_checkout(body) -> NormalizedCheckout:
    """Collects every missing/invalid field into one ValidationError."""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = []
    cart = body.get("cart")
    lines = []
    if cart is None:
        missing.append("cart")
    elif not isinstance(cart, list):
        missing.append("cart (must be an array)")
    else:
        lines = [_normalize_line(item) for item in cart]
        if any(item is None for item in lines):
            missing.append("cart (invalid line items)")

    total = body.get("totalCost")
    if not _is_number(total):
        missing.append("totalCost (must be a number)")
    elif total < 0:
        missing.append("totalCost (must not be negative)")

    if not body.get("name"):
        missing.append("name")
    if not body.get("address"):
        missing.append("address")
    method = body.get("paymentMethod")
    if not method:
        missing.append("paymentMethod")

    if missing:
        raise ValidationError(f"Missing or invalid fields: {', '.join(missing)}")

    canonical = map_payment_method(method)
    if canonical is None:
        raise InvalidPaymentMethod(method)

    return NormalizedCheckout(
        cart=lines,
        total_cost=float(total),
        name=str(body["name"]).strip(),
        address=body["address"],
        payment_method=canonical,
        customer_email=_first(body, "customerEmail", "email"),
        customer_contact=_first(body, "customerContact", "phone"),
        payment_id=_first(body, "razorpay_payment_id", "razorpayPaymentId", "paymentId"),
        gateway_order_id=_first(body, "razorpay_order_id", "razorpayOrderId"),
        signature=_first(body, "razorpay_signature", "razorpaySignature"),
    )


def confirm_payment(checkout: NormalizedCheckout, gateway, *, required: bool) -> dict | None:
    """Synchronous payment confirmation for checkouts that carry gateway ids.

    Verifies the "<order_id>|<payment_id>" signature, then fetches the payment
    and requires it to be captured or authorized.
    """
    if not checkout.has_payment_confirmation:
        return None
    if not gateway.key_secret:
        raise ConfigurationError("Razorpay key secret not set.")

    verified = check_signature(
        payment_signature_payload(checkout.gateway_order_id, checkout.payment_id),
        checkout.signature,
        gateway.key_secret,
        required=required,
        context="payment confirmation",
    )
    payment = gateway.fetch_payment(checkout.payment_id)
    status = (payment.get("status") or "").lower()
    if status not in ACCEPTED_PAYMENT_STATUSES:
        raise PaymentNotCaptured(checkout.payment_id, status)
    log.info("Payment %s confirmed (%s, signature %s)", checkout.payment_id, status, "verified" if verified else "UNVERIFIED")
    return payment

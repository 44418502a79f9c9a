from __future__ import annotations

from types import MappingProxyType

# Storefront tokens -> values accepted by the order store's paymentMethod enum.
CLIENT_TO_CANONICAL = MappingProxyType({
    "credit-card": "Card",
    "debit-card": "Card",
    "card": "Card",
    "paypal": "Paypal",
    "cod": "Cash on Delivery",
    "upi": "UPI",
    "gpay": "UPI",
    "phonepe": "UPI",
    "netbanking": "Net Banking",
    "wallet": "Wallet",
    "razorpay": "Razorpay",
})

CANONICAL = frozenset(CLIENT_TO_CANONICAL.values())

DEFERRED = frozenset({"Cash on Delivery"})


def map_payment_method(token) -> str | None:
    """Returns the canonical method, or None when the token is not in the vocabulary."""
    if not isinstance(token, str):
        return None
    t = token.strip()
    if t in CANONICAL:
        return t
    return CLIENT_TO_CANONICAL.get(t.lower())


def initial_status(canonical_method: str) -> str:
    return "pending" if canonical_method in DEFERRED else "paid"

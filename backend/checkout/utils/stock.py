from __future__ import annotations

import logging

from checkout.errors import CheckoutError

log = logging.getLogger(__name__)

# Products in the store predate a single schema; the first numeric match wins.
STOCK_FIELDS = ("stock", "quantity", "inventory", "available")


def discover_stock_field(product: dict) -> tuple[str, float] | None:
    for name in STOCK_FIELDS:
        value = (product or {}).get(name)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return name, value
    return None


def decrement_stock(store, product_id, quantity: int) -> dict:
    """Decrement a product's stock field, floored at zero.

    Returns {"ok": True, "field", "before", "after"} or {"ok": False, "error"}.
    """
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        return {"ok": False, "error": f"invalid quantity {quantity!r}"}
    if qty <= 0:
        return {"ok": False, "error": f"invalid quantity {quantity!r}"}

    try:
        product = store.get_product(product_id)
    except CheckoutError as e:
        return {"ok": False, "error": f"product lookup failed: {e.message}"}

    found = discover_stock_field(product)
    if not found:
        return {"ok": False, "error": f"product {product_id} has no numeric stock field"}
    field, before = found
    after = max(0, before - qty)
    if isinstance(before, int):
        after = int(after)

    try:
        store.update_product(product_id, {field: after})
    except CheckoutError as e:
        return {"ok": False, "error": f"product update failed: {e.message}"}

    log.info("Stock for product %s: %s %s -> %s", product_id, field, before, after)
    return {"ok": True, "field": field, "before": before, "after": after}

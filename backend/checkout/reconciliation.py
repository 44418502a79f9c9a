"""Razorpay webhook ingestion.

    verify -> parse -> dedupe check -> locate order -> reconcile
           -> side effects (captured only) -> mark processed -> acknowledge

Order-store failures while locating or writing the order propagate so the
gateway redelivers. Stock and invoice failures are logged, dead-lettered in
the side-effect ledger and never fail the webhook.
"""

from __future__ import annotations

import json
import logging

from checkout.dedupe import DedupStore, dedupe_id
from checkout.errors import ValidationError
from checkout.utils import side_effects
from checkout.utils.invoices import issue_invoice
from checkout.utils.payment_methods import map_payment_method
from checkout.utils.razorpay_client import to_major
from checkout.utils.signatures import check_signature
from checkout.utils.stock import decrement_stock

log = logging.getLogger(__name__)

CAPTURED = "captured"


def map_transaction_status(gateway_status: str | None) -> str:
    if gateway_status == CAPTURED:
        return "paid"
    return gateway_status or "pending"


def payment_entity(event: dict) -> dict | None:
    try:
        entity = event["payload"]["payment"]["entity"]
    except (KeyError, TypeError):
        return None
    return entity if isinstance(entity, dict) and entity.get("id") else None


class WebhookReconciler:
    def __init__(
        self,
        store,
        dedupe: DedupStore,
        gateway,
        *,
        secret: str | None,
        signature_required: bool,
        currency: str = "INR",
    ):
        self.store = store
        self.dedupe = dedupe
        self.gateway = gateway
        self.secret = secret
        self.signature_required = signature_required
        self.currency = currency

    def handle(self, raw_body: bytes, signature: str | None, event_id: str | None = None) -> dict:
        verified = check_signature(raw_body, signature, self.secret, required=self.signature_required, context="webhook")

        try:
            event = json.loads(raw_body or b"{}")
        except ValueError as e:
            raise ValidationError(f"Webhook body is not valid JSON: {e}")
        if not isinstance(event, dict):
            raise ValidationError("Webhook body must be a JSON object")

        event_type = event.get("event") or ""
        entity = payment_entity(event)
        if entity is None:
            log.info("Webhook %s carries no payment entity; acknowledged", event_type or "<unknown>")
            return {"success": True, "ignored": True}

        payment_id = entity["id"]
        key = dedupe_id(event_id or event.get("id"), event_type, payment_id)
        if self.dedupe.is_processed(key):
            log.info("Webhook %s already processed; duplicate delivery", key)
            return {"success": True, "duplicate": True}

        order = self.locate_order(payment_id, entity.get("order_id"))
        order = self.reconcile(order, entity)

        status = entity.get("status")
        if status == CAPTURED:
            self.apply_side_effects(order, payment_id, key)

        self.dedupe.mark_processed(key, event)
        side_effects.audit("webhook_processed", "payment", payment_id, {
            "event": event_type,
            "event_id": key,
            "order_id": order.get("id"),
            "status": status,
            "verified": verified,
        })
        return {"success": True, "orderId": order.get("id"), "status": order.get("transactionStatus")}

    def locate_order(self, payment_id: str, gateway_order_id: str | None) -> dict | None:
        order = self.store.find_order("paymentId", payment_id)
        if order is None and gateway_order_id:
            order = self.store.find_order("razorpayOrderId", gateway_order_id)
        return order

    def reconcile(self, order: dict | None, entity: dict) -> dict:
        fields = {
            "transactionStatus": map_transaction_status(entity.get("status")),
            "paymentId": entity["id"],
        }
        if entity.get("order_id"):
            fields["razorpayOrderId"] = entity["order_id"]
        if order is not None:
            self.store.update_order(order["id"], fields)
            order.update(fields)
            log.info("Order %s -> %s (payment %s)", order["id"], fields["transactionStatus"], entity["id"])
            return order

        notes = entity.get("notes") if isinstance(entity.get("notes"), dict) else {}
        payload = {
            "customerEmail": entity.get("email") or notes.get("email") or "",
            "customerName": notes.get("name") or entity.get("contact") or entity.get("email") or "Customer",
            "customerContact": entity.get("contact") or "",
            "cart": [],
            "totalCost": to_major(entity.get("amount")),
            "address": notes.get("address") or "",
            "paymentMethod": map_payment_method(entity.get("method")) or "Razorpay",
            **fields,
        }
        order = self.store.create_order(payload, idempotency_key=f"webhook-order:{entity['id']}")
        log.info("Created order %s from webhook for unmatched payment %s", order.get("id"), entity["id"])
        return order

    def apply_side_effects(self, order: dict, payment_id: str, event_key: str) -> None:
        for idx, item in enumerate(order.get("cart") or []):
            if not isinstance(item, dict):
                continue
            product_id = item.get("productId") or item.get("id")
            if product_id is None:
                continue
            key = side_effects.effect_key("stock", payment_id, idx, product_id)
            if side_effects.has_applied(key):
                log.info("Stock already decremented for %s", key)
                continue
            result = decrement_stock(self.store, product_id, item.get("quantity") or 1)
            if result["ok"]:
                side_effects.record_applied(key, kind="stock", payment_id=payment_id, order_id=order.get("id"), event_id=event_key, meta=result)
            else:
                side_effects.record_failure(key, result["error"], kind="stock", payment_id=payment_id, order_id=order.get("id"), event_id=event_key)

        self._invoice(order, payment_id, event_key)

    def _invoice(self, order: dict, payment_id: str, event_key: str) -> None:
        key = side_effects.effect_key("invoice", payment_id)
        if order.get("invoiceId") or side_effects.has_applied(key):
            log.info("Invoice already issued for order %s", order.get("id"))
            return

        result = issue_invoice(self.gateway, order, currency=self.currency)
        if not result["ok"]:
            side_effects.record_failure(key, result["error"], kind="invoice", payment_id=payment_id, order_id=order.get("id"), event_id=event_key)
            return

        side_effects.record_applied(key, kind="invoice", payment_id=payment_id, order_id=order.get("id"), event_id=event_key, meta=result)
        try:
            self.store.update_order(order["id"], {"invoiceId": result["invoice_id"], "invoiceUrl": result["invoice_url"]})
            order.update(invoiceId=result["invoice_id"], invoiceUrl=result["invoice_url"])
        except Exception as e:
            log.error("Invoice %s issued but not attached to order %s: %s", result["invoice_id"], order.get("id"), e)

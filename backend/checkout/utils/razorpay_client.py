from __future__ import annotations

import logging
from typing import Any

import requests

from checkout.errors import ConfigurationError, GatewayError
from checkout.utils.masking import mask_secret

log = logging.getLogger(__name__)

RAZORPAY_BASE = "https://api.razorpay.com/v1"

ACCEPTED_PAYMENT_STATUSES = frozenset({"captured", "authorized"})


def to_minor(amount_major) -> int:
    return int(round(float(amount_major) * 100))


def to_major(amount_minor) -> float:
    try:
        return float(amount_minor or 0) / 100.0
    except (TypeError, ValueError):
        return 0.0


class RazorpayClient:
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = RAZORPAY_BASE,
        timeout: float = 20,
        session: requests.Session | None = None,
    ):
        self.key_id = key_id or ""
        self.key_secret = key_secret or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def __repr__(self) -> str:
        return f"RazorpayClient(key_id={self.key_id!r}, key_secret={mask_secret(self.key_secret)})"

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _call(self, method: str, path: str, payload: dict | None = None) -> dict:
        if not self.configured:
            raise ConfigurationError("Razorpay credentials not set.")
        try:
            r = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GatewayError(f"Razorpay {method} {path} failed: {e}") from e
        try:
            j = r.json() if r.content else {}
        except ValueError:
            j = {}
        if 200 <= r.status_code < 300:
            return j
        err = (j.get("error") or {}).get("description") if isinstance(j, dict) else None
        log.error("Razorpay %s %s -> HTTP %s: %s", method, path, r.status_code, err or j)
        raise GatewayError(err or f"Razorpay HTTP {r.status_code}", status=r.status_code, body=j)

    def create_order(self, amount_major, currency: str = "INR", receipt: str = "", notes: dict | None = None) -> dict:
        payload: dict[str, Any] = {"amount": to_minor(amount_major), "currency": currency}
        if receipt:
            payload["receipt"] = receipt[:40]
        if notes:
            payload["notes"] = notes
        return self._call("POST", "/orders", payload)

    def fetch_payment(self, payment_id: str) -> dict:
        return self._call("GET", f"/payments/{payment_id}")

    def create_item(self, name: str, amount_major, currency: str = "INR") -> dict:
        return self._call("POST", "/items", {"name": name[:250], "amount": to_minor(amount_major), "currency": currency})

    def create_invoice(
        self,
        *,
        customer: dict,
        line_items: list,
        currency: str = "INR",
        description: str = "",
        receipt: str = "",
        notes: dict | None = None,
    ) -> dict:
        payload: dict[str, Any] = {
            "type": "invoice",
            "customer": customer,
            "line_items": line_items,
            "currency": currency,
            "sms_notify": 1,
            "email_notify": 1,
        }
        if description:
            payload["description"] = description
        if receipt:
            payload["receipt"] = receipt[:40]
        if notes:
            payload["notes"] = notes
        return self._call("POST", "/invoices", payload)

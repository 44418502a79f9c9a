from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from checkout.errors import RemotePermanentError, RemoteTransientError
from checkout.utils.masking import mask_secret

log = logging.getLogger(__name__)


def decode_response(r: requests.Response) -> Any:
    if not r.content:
        return {}
    try:
        return r.json()
    except ValueError:
        return {"raw": r.text[:500]}


def flatten_record(item: Any) -> dict:
    """Strapi v4 nests fields under `attributes`, v5 returns them flat."""
    if not isinstance(item, dict):
        return {}
    attrs = item.get("attributes")
    if isinstance(attrs, dict):
        rec = dict(attrs)
        rec["id"] = item.get("id")
        return rec
    return dict(item)


def extract_order_id(body: Any):
    """Remote id of a created order, or a timestamp sentinel when the store omits it."""
    try:
        oid = (body.get("data") or {}).get("id")
    except AttributeError:
        oid = None
    if oid is not None and oid != "":
        return oid
    return int(time.time() * 1000)


class StrapiClient:
    """Order/product store client with bounded retry and exponential backoff.

    Transient failures (no response, connection errors, timeouts, 5xx) are
    retried up to `max_retries` times, sleeping `base_delay * 2 ** (attempt - 1)`
    before each retry. Anything else is raised immediately.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 15,
        base_delay: float = 0.3,
        max_retries: int = 3,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.token = token or ""
        self.timeout = timeout
        self.base_delay = base_delay
        self.max_retries = max_retries
        self.session = session or requests.Session()
        self.sleep = sleep

    def __repr__(self) -> str:
        return f"StrapiClient(base_url={self.base_url!r}, token={mask_secret(self.token)})"

    def _headers(self, idempotency_key: str | None = None) -> dict:
        headers = {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    def backoff(self, attempt: int) -> float:
        return self.base_delay * (2 ** (attempt - 1))

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict | None = None,
        idempotency_key: str | None = None,
        max_retries: int | None = None,
    ) -> requests.Response:
        retries = self.max_retries if max_retries is None else max(0, int(max_retries))
        url = f"{self.base_url}{path}"
        attempt = 0
        while True:
            attempt += 1
            try:
                r = self.session.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=self._headers(idempotency_key),
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                # Connection reset/refused, DNS failure, timeout: nothing came back.
                status, body, reason = None, None, f"{type(e).__name__}: {e}"
            else:
                if 200 <= r.status_code < 300:
                    return r
                status, body = r.status_code, decode_response(r)
                reason = f"HTTP {r.status_code}"
                if status < 500:
                    log.error("Strapi %s %s rejected: %s body=%s", method, path, reason, body)
                    raise RemotePermanentError(
                        f"Strapi {method} {path} failed: {reason}", status=status, body=body, attempts=attempt
                    )

            if attempt > retries:
                log.error(
                    "Strapi %s %s giving up after %d attempts: %s (token=%s)",
                    method, path, attempt, reason, mask_secret(self.token),
                )
                raise RemoteTransientError(
                    f"Strapi {method} {path} failed after {attempt} attempts: {reason}",
                    status=status,
                    body=body,
                    attempts=attempt,
                )
            delay = self.backoff(attempt)
            log.warning("Strapi %s %s transient failure (%s); retry %d/%d in %.2fs", method, path, reason, attempt, retries, delay)
            self.sleep(delay)

    # -------------------------
    # Orders
    # -------------------------

    def write(self, payload: dict, idempotency_key: str | None = None, max_retries: int | None = None) -> requests.Response:
        """Create an order. The idempotency key lets the store collapse retried writes."""
        return self._request(
            "POST",
            "/api/orders",
            json={"data": payload},
            idempotency_key=idempotency_key,
            max_retries=max_retries,
        )

    def find_orders(self, field: str, value: str) -> list:
        r = self._request("GET", "/api/orders", params={f"filters[{field}][$eq]": value})
        data = decode_response(r).get("data") or []
        return [flatten_record(item) for item in data]

    def find_order(self, field: str, value: str) -> dict | None:
        if not value:
            return None
        found = self.find_orders(field, value)
        return found[0] if found else None

    def create_order(self, payload: dict, idempotency_key: str | None = None) -> dict:
        body = decode_response(self.write(payload, idempotency_key=idempotency_key))
        rec = flatten_record(body.get("data") or {})
        rec["id"] = extract_order_id(body)
        return rec

    def update_order(self, order_id, fields: dict) -> dict:
        r = self._request("PUT", f"/api/orders/{order_id}", json={"data": fields})
        return flatten_record(decode_response(r).get("data") or {})

    # -------------------------
    # Products
    # -------------------------

    def get_product(self, product_id) -> dict:
        r = self._request("GET", f"/api/products/{product_id}")
        return flatten_record(decode_response(r).get("data") or {})

    def update_product(self, product_id, fields: dict) -> dict:
        r = self._request("PUT", f"/api/products/{product_id}", json={"data": fields})
        return flatten_record(decode_response(r).get("data") or {})

    # -------------------------
    # Processed webhook events
    # -------------------------

    def find_webhook_events(self, event_id: str) -> list:
        r = self._request("GET", "/api/webhook-events", params={"filters[eventId][$eq]": event_id}, max_retries=0)
        return [flatten_record(item) for item in (decode_response(r).get("data") or [])]

    def create_webhook_event(self, event_id: str, payload: Any, processed_at: str) -> dict:
        r = self._request(
            "POST",
            "/api/webhook-events",
            json={"data": {"eventId": event_id, "payload": payload, "processedAt": processed_at}},
            idempotency_key=f"webhook-event:{event_id}",
            max_retries=1,
        )
        return flatten_record(decode_response(r).get("data") or {})

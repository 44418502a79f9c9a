"""Shared pytest fixtures: fake HTTP session, fake order store and gateway."""

import hashlib
import hmac
import itertools
import json

import pytest
import requests

from checkout import create_app
from checkout.config import Config
from checkout.dedupe import DedupStore
from checkout.errors import GatewayError, RemoteTransientError
from checkout.services import Services

WEBHOOK_SECRET = "whsec_test_secret"
KEY_SECRET = "rzp_key_secret"
STRAPI_TOKEN = "strapi-token-abcdef123456"


def sign(raw: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"" if body is None else json.dumps(body).encode("utf-8")
        self.text = self.content.decode("utf-8")

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeSession:
    """Replays queued responses; an exception instance in the queue is raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected call {method} {url}")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


class FakeStore:
    """In-memory stand-in for the Strapi order/product store."""

    def __init__(self):
        self.orders = {}
        self.products = {}
        self.writes = []
        self.product_updates = []
        self.fail_updates = False
        self._ids = itertools.count(100)

    def write(self, payload, idempotency_key=None, max_retries=None):
        self.writes.append({"payload": payload, "idempotency_key": idempotency_key})
        oid = next(self._ids)
        self.orders[oid] = {"id": oid, **payload}
        return FakeResponse(200, {"data": {"id": oid, "attributes": payload}})

    def create_order(self, payload, idempotency_key=None):
        self.write(payload, idempotency_key=idempotency_key)
        oid = max(self.orders)
        return dict(self.orders[oid])

    def find_order(self, field, value):
        if not value:
            return None
        for order in self.orders.values():
            if order.get(field) == value:
                return dict(order)
        return None

    def update_order(self, order_id, fields):
        if self.fail_updates:
            raise RemoteTransientError("Strapi PUT failed", status=503)
        self.orders[order_id].update(fields)
        return dict(self.orders[order_id])

    def get_product(self, product_id):
        return dict(self.products[product_id])

    def update_product(self, product_id, fields):
        self.product_updates.append((product_id, fields))
        self.products[product_id].update(fields)
        return dict(self.products[product_id])


class FakeGateway:
    def __init__(self):
        self.key_id = "rzp_test_key"
        self.key_secret = KEY_SECRET
        self.payments = {}
        self.items = []
        self.invoices = []
        self.fail_invoices = False

    def fetch_payment(self, payment_id):
        return self.payments.get(payment_id, {"id": payment_id, "status": "failed"})

    def create_order(self, amount_major, currency="INR", receipt="", notes=None):
        return {"id": "order_gw_1", "amount": int(round(amount_major * 100)), "currency": currency}

    def create_item(self, name, amount_major, currency="INR"):
        if self.fail_invoices:
            raise GatewayError("Razorpay HTTP 400", status=400)
        item = {"id": f"item_{len(self.items) + 1}", "name": name, "amount": int(round(amount_major * 100))}
        self.items.append(item)
        return item

    def create_invoice(self, **kwargs):
        inv = {"id": f"inv_{len(self.invoices) + 1}", "short_url": "https://rzp.io/i/abc", **kwargs}
        self.invoices.append(inv)
        return inv


class MemoryDedupStore(DedupStore):
    def __init__(self):
        self.ids = {}

    def is_processed(self, event_id):
        return event_id in self.ids

    def mark_processed(self, event_id, raw_event=None):
        self.ids[event_id] = raw_event


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def dedupe():
    return MemoryDedupStore()


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        base = dict(
            ENV="dev",
            INSTANCE_DIR=str(tmp_path),
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            PROCESSED_WEBHOOKS_FILE=str(tmp_path / "processed_webhooks.json"),
            STRAPI_API_TOKEN=STRAPI_TOKEN,
            RAZORPAY_KEY_ID="rzp_test_key",
            RAZORPAY_KEY_SECRET=KEY_SECRET,
            RAZORPAY_WEBHOOK_SECRET=WEBHOOK_SECRET,
            SENDGRID_API_KEY="",
            DEDUPE_REMOTE=False,
            CORS_ORIGINS="https://kaalikacreations.com",
            ADMIN_TOKEN="admin-token",
        )
        base.update(overrides)
        return Config(**base)

    return _make


@pytest.fixture
def make_app(make_config, store, gateway, dedupe):
    def _make(**overrides):
        cfg = make_config(**overrides)
        services = Services(config=cfg, store=store, gateway=gateway, dedupe=dedupe)
        app = create_app(cfg, services=services)
        app.config["TESTING"] = True
        return app

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection reset by peer")

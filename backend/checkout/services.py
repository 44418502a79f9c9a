from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app

from checkout.config import Config
from checkout.dedupe import ChainedDedupStore, DedupStore, LocalDedupStore, RemoteDedupStore
from checkout.reconciliation import WebhookReconciler
from checkout.utils.masking import mask_secret
from checkout.utils.razorpay_client import RazorpayClient
from checkout.utils.strapi_client import StrapiClient

log = logging.getLogger(__name__)


@dataclass
class Services:
    config: Config
    store: StrapiClient
    gateway: RazorpayClient
    dedupe: DedupStore

    @property
    def reconciler(self) -> WebhookReconciler:
        return WebhookReconciler(
            self.store,
            self.dedupe,
            self.gateway,
            secret=self.config.RAZORPAY_WEBHOOK_SECRET,
            signature_required=self.config.is_production,
            currency=self.config.CURRENCY,
        )


def build_services(config: Config) -> Services:
    store = StrapiClient(
        config.STRAPI_BASE_URL,
        config.STRAPI_API_TOKEN,
        timeout=config.HTTP_TIMEOUT_SECONDS,
        base_delay=config.retry_base_delay,
        max_retries=config.STRAPI_MAX_RETRIES,
    )
    gateway = RazorpayClient(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET, timeout=config.HTTP_TIMEOUT_SECONDS)
    local = LocalDedupStore(config.PROCESSED_WEBHOOKS_FILE)
    remote = RemoteDedupStore(store) if config.DEDUPE_REMOTE else None
    log.info(
        "Checkout services: strapi=%s token=%s razorpay_key=%s dedupe=%s (%d local ids)",
        config.STRAPI_BASE_URL,
        mask_secret(config.STRAPI_API_TOKEN),
        config.RAZORPAY_KEY_ID or "<unset>",
        "remote+local" if remote else "local",
        len(local),
    )
    return Services(config=config, store=store, gateway=gateway, dedupe=ChainedDedupStore(local, remote))


def get_services() -> Services:
    return current_app.extensions["checkout"]

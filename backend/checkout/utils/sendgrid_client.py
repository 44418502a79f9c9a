from __future__ import annotations

import os

import requests

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


def send_mail(message: dict, *, api_key: str | None = None, session: requests.Session | None = None) -> tuple[bool, str]:
    """Send a transactional email through SendGrid.

    `message` uses the storefront shape: to, from, subject, and text and/or html.
    Never raises; returns (ok, detail).
    """

    key = (api_key if api_key is not None else os.getenv("SENDGRID_API_KEY", "")).strip()
    if not key:
        return False, "SENDGRID_API_KEY not set"

    to = message.get("to")
    sender = message.get("from")
    if not isinstance(to, str) or not isinstance(sender, str):
        return False, "missing_recipient_or_sender"
    to, sender = to.strip(), sender.strip()
    if not to or not sender:
        return False, "missing_recipient_or_sender"

    content = []
    if message.get("text"):
        content.append({"type": "text/plain", "value": message["text"]})
    if message.get("html"):
        content.append({"type": "text/html", "value": message["html"]})
    if not content:
        return False, "missing_content"

    payload = {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": sender},
        "subject": message.get("subject") or "",
        "content": content,
    }

    try:
        r = (session or requests).post(
            SENDGRID_URL,
            json=payload,
            headers={"Authorization": f"Bearer {key}", "Content-Type": "application/json"},
            timeout=10,
        )
        if 200 <= r.status_code < 300:
            return True, "sent"
        return False, f"sendgrid_http_{r.status_code}"
    except Exception as e:
        return False, f"sendgrid_exception:{e}"

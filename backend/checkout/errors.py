"""Error taxonomy for checkout and webhook handling.

Every error carries the HTTP status it maps to; the app-level error handler
renders them as ``{"success": false, "message": ...}``.
"""

from __future__ import annotations

from typing import Any


class CheckoutError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(CheckoutError):
    status_code = 400


class InvalidPaymentMethod(ValidationError):
    def __init__(self, method: Any):
        super().__init__(f"Invalid payment method: {method}")
        self.method = method


class PaymentNotCaptured(ValidationError):
    def __init__(self, payment_id: str, status: str):
        super().__init__(f"Payment {payment_id} is not completed (status: {status or 'unknown'})")
        self.payment_id = payment_id
        self.payment_status = status


class InvalidSignature(CheckoutError):
    status_code = 400

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)


class MissingSignature(CheckoutError):
    status_code = 400

    def __init__(self, message: str = "Missing signature"):
        super().__init__(message)


class ConfigurationError(CheckoutError):
    status_code = 500


class RemoteError(CheckoutError):
    """An outbound call to the order store failed."""

    status_code = 502

    def __init__(self, message: str, *, status: int | None = None, body: Any = None, attempts: int = 1):
        super().__init__(message)
        self.status = status
        self.body = body
        self.attempts = attempts


class RemoteTransientError(RemoteError):
    """Network failure or 5xx that survived every retry."""


class RemotePermanentError(RemoteError):
    """4xx or otherwise non-retryable response."""


class GatewayError(CheckoutError):
    status_code = 502

    def __init__(self, message: str, *, status: int | None = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

"""Tests for HMAC verification of gateway payloads."""

import json

import pytest

from checkout.errors import InvalidSignature, MissingSignature
from checkout.utils.signatures import check_signature, payment_signature_payload, verify

from conftest import WEBHOOK_SECRET, sign


class TestVerify:
    def test_matches_exact_bytes(self) -> None:
        raw = b'{"event":"payment.captured",  "payload":{}}'
        assert verify(raw, sign(raw), WEBHOOK_SECRET) is True

    def test_reserialized_body_does_not_match(self) -> None:
        raw = b'{"event":"payment.captured",  "payload":{}}'
        reserialized = json.dumps(json.loads(raw)).encode("utf-8")
        assert verify(reserialized, sign(raw), WEBHOOK_SECRET) is False

    def test_wrong_secret(self) -> None:
        raw = b"{}"
        assert verify(raw, sign(raw, "other"), WEBHOOK_SECRET) is False

    def test_missing_inputs_fail_closed(self) -> None:
        assert verify(b"{}", None, WEBHOOK_SECRET) is False
        assert verify(b"{}", sign(b"{}"), "") is False

    def test_payment_confirmation_payload(self) -> None:
        payload = payment_signature_payload("order_1", "pay_1")
        assert payload == b"order_1|pay_1"
        assert verify(payload, sign(payload, "k"), "k") is True


class TestCheckSignature:
    def test_valid(self) -> None:
        assert check_signature(b"{}", sign(b"{}"), WEBHOOK_SECRET, required=True) is True

    def test_mismatch_always_rejected(self) -> None:
        with pytest.raises(InvalidSignature):
            check_signature(b"{}", "deadbeef", WEBHOOK_SECRET, required=False)

    def test_missing_in_required_mode(self) -> None:
        with pytest.raises(MissingSignature):
            check_signature(b"{}", None, WEBHOOK_SECRET, required=True)

    def test_missing_in_advisory_mode_warns(self, caplog) -> None:
        assert check_signature(b"{}", "", WEBHOOK_SECRET, required=False) is False
        assert "UNVERIFIED" in caplog.text

    def test_unconfigured_secret_in_required_mode(self) -> None:
        with pytest.raises(InvalidSignature):
            check_signature(b"{}", "abc", "", required=True)

    def test_unconfigured_secret_in_advisory_mode_rejects_supplied_signature(self) -> None:
        with pytest.raises(InvalidSignature):
            check_signature(b"{}", "deadbeef", "", required=False)

    def test_no_signature_and_no_secret_in_advisory_mode(self) -> None:
        assert check_signature(b"{}", None, "", required=False) is False

"""
Unit Tests for Razorpay helpers
Tests for: checkout signatures, webhook signatures, amounts
"""
import hashlib
import hmac

import pytest

from app.core.exceptions import PaymentError
from app.services.payment_service import (
    RazorpayGateway,
    compute_signature,
    generate_receipt,
    to_paise,
    verify_payment_signature,
    verify_webhook_signature,
)


def _hmac(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class TestPaymentSignature:
    """Test HMAC-SHA256 of order_id|payment_id"""

    def test_compute_signature(self):
        assert compute_signature("order_1", "pay_1", "s") == _hmac("s", b"order_1|pay_1")

    def test_valid_signature_accepted(self):
        signature = _hmac("s", b"order_1|pay_1")

        assert verify_payment_signature("order_1", "pay_1", signature, secret="s") is True

    @pytest.mark.parametrize("order_id,payment_id,secret", [
        ("order_2", "pay_1", "s"),
        ("order_1", "pay_2", "s"),
        ("order_1", "pay_1", "t"),
    ])
    def test_any_change_rejected(self, order_id, payment_id, secret):
        signature = _hmac("s", b"order_1|pay_1")

        assert verify_payment_signature(order_id, payment_id, signature, secret=secret) is False

    @pytest.mark.parametrize("signature", ["", None, "deadbeef", "x" * 64])
    def test_garbage_rejected(self, signature):
        assert verify_payment_signature("order_1", "pay_1", signature, secret="s") is False

    def test_uppercase_hex_rejected(self):
        signature = _hmac("s", b"order_1|pay_1").upper()

        assert verify_payment_signature("order_1", "pay_1", signature, secret="s") is False

    def test_defaults_to_configured_key_secret(self):
        signature = _hmac("rzp_test_secret", b"order_9|pay_9")

        assert verify_payment_signature("order_9", "pay_9", signature) is True


class TestWebhookSignature:

    def test_body_signature(self):
        body = b'{"event":"payment.captured"}'

        assert verify_webhook_signature(body, _hmac("w", body), secret="w") is True

    def test_modified_body_rejected(self):
        body = b'{"event":"payment.captured"}'

        assert verify_webhook_signature(body + b" ", _hmac("w", body), secret="w") is False

    def test_missing_header_rejected(self):
        assert verify_webhook_signature(b"{}", None, secret="w") is False


class TestAmounts:

    @pytest.mark.parametrize("rupees,paise", [(1500, 150000), (0.1, 10), (1234.56, 123456), (19.99, 1999)])
    def test_to_paise(self, rupees, paise):
        assert to_paise(rupees) == paise

    def test_receipt_fits_razorpay_limit(self):
        receipt = generate_receipt()

        assert receipt.startswith("receipt_")
        assert len(receipt) <= 40

    def test_receipts_are_unique(self):
        assert generate_receipt() != generate_receipt()


class TestGateway:

    def test_unconfigured_gateway_refuses_orders(self):
        gateway = RazorpayGateway(key_id="", key_secret="")
        gateway.key_id = ""
        gateway.key_secret = ""

        with pytest.raises(PaymentError):
            gateway.create_order(1000, "INR", "receipt_1")

    def test_configured_from_arguments(self):
        gateway = RazorpayGateway(key_id="rzp_live_x", key_secret="secret")

        assert gateway.is_configured is True
        assert gateway.key_id == "rzp_live_x"

"""
Razorpay integration: order creation and signature checks.

Checkout flow:
1. create_order() opens a Razorpay order for the fee total (in paise)
2. The browser completes checkout and receives order id, payment id, signature
3. verify_payment_signature() confirms the triple came from Razorpay
"""

import hashlib
import hmac
import secrets
import time
from typing import Any, Dict, Optional

import razorpay
from razorpay.errors import BadRequestError, ServerError

from app.core.config import settings
from app.core.exceptions import PaymentError
from app.core.logging_config import logger


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 of "order_id|payment_id" keyed with secret, hex encoded"""
    message = f"{order_id}|{payment_id}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def verify_payment_signature(
    order_id: str,
    payment_id: str,
    signature: Optional[str],
    secret: Optional[str] = None,
) -> bool:
    """Constant-time comparison of the checkout signature"""
    if not signature:
        return False
    secret = settings.RAZORPAY_KEY_SECRET if secret is None else secret
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)


def verify_webhook_signature(body: bytes, signature: Optional[str], secret: Optional[str] = None) -> bool:
    """Webhooks sign the raw request body with the webhook secret"""
    if not signature:
        return False
    secret = settings.RAZORPAY_WEBHOOK_SECRET if secret is None else secret
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def to_paise(amount: float) -> int:
    return int(round(amount * 100))


def generate_receipt() -> str:
    # Razorpay caps receipts at 40 chars
    return f"receipt_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class RazorpayGateway:
    """Thin wrapper over the Razorpay SDK client"""

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None):
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _get_client(self) -> razorpay.Client:
        if self._client is None:
            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    def create_order(self, amount_paise: int, currency: str, receipt: str,
                     notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        if not self.is_configured:
            raise PaymentError("Payment service not configured. Please contact support.")

        order_data = {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            order = self._get_client().order.create(data=order_data)
        except (BadRequestError, ServerError) as e:
            logger.error(f"[Payment] Razorpay order creation failed: {e}")
            raise PaymentError("Failed to create payment order. Please try again.")

        logger.info(f"[Payment] Created Razorpay order: {order['id']} ({amount_paise} paise)")
        return order


payment_gateway = RazorpayGateway()


def get_payment_gateway() -> RazorpayGateway:
    """FastAPI dependency; overridden in tests"""
    return payment_gateway

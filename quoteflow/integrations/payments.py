"""Payment gateway client (Razorpay REST API)."""
from __future__ import annotations

import hashlib
import hmac
from abc import ABC, abstractmethod

import requests

from quoteflow.errors import DependencyFailure
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.integrations.payments")


class PaymentGateway(ABC):
    @abstractmethod
    def create_order(self, amount: float, currency: str, receipt: str) -> dict:
        ...

    @abstractmethod
    def verify_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        ...

    @abstractmethod
    def fetch_payment_details(self, payment_id: str) -> dict:
        ...

    @abstractmethod
    def refund(self, payment_id: str, amount: float | None = None, reason: str | None = None) -> dict:
        ...


class RazorpayGateway(PaymentGateway):
    """Amounts are exchanged with the API in the currency's minor unit."""

    def __init__(self, key_id: str | None, key_secret: str | None,
                 api_url: str = "https://api.razorpay.com/v1", timeout: float = 10):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _require_configured(self):
        if not self.configured:
            raise DependencyFailure("Payment gateway not configured")

    def _request(self, method: str, path: str, **kwargs) -> dict:
        self._require_configured()
        try:
            response = requests.request(
                method,
                f"{self.api_url}{path}",
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"Payment gateway {method} {path} failed: {e}")
            raise DependencyFailure("Payment gateway request failed") from e

    def create_order(self, amount, currency="INR", receipt=None):
        payload = {
            "amount": int(round(amount * 100)),
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
        }
        order = self._request("POST", "/orders", json=payload)
        logger.info(f"Gateway order {order.get('id')} created for {receipt}")
        return {
            "orderId": order.get("id"),
            "amount": amount,
            "currency": currency,
            "receipt": order.get("receipt"),
            "keyId": self.key_id,
        }

    def verify_signature(self, gateway_order_id, payment_id, signature):
        self._require_configured()
        body = f"{gateway_order_id}|{payment_id}".encode()
        expected = hmac.new(self.key_secret.encode(), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    def fetch_payment_details(self, payment_id):
        payment = self._request("GET", f"/payments/{payment_id}")
        return {
            "id": payment.get("id"),
            "amount": (payment.get("amount") or 0) / 100,
            "currency": payment.get("currency"),
            "status": payment.get("status"),
            "method": payment.get("method"),
        }

    def refund(self, payment_id, amount=None, reason=None):
        payload = {"notes": {"reason": reason or "Customer request"}}
        if amount:
            payload["amount"] = int(round(amount * 100))
        refund = self._request("POST", f"/payments/{payment_id}/refund", json=payload)
        logger.info(f"Refund {refund.get('id')} issued for payment {payment_id}")
        return {
            "id": refund.get("id"),
            "amount": (refund.get("amount") or 0) / 100,
            "status": refund.get("status"),
            "paymentId": payment_id,
        }

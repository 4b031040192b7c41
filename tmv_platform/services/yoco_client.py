"""
Yoco Payments API Client

Thin wrapper around Yoco's hosted checkout:
- create_checkout(): POST {yoco_api_url}/checkouts, amount in cents
- verify_webhook(): Standard-Webhooks signature check for inbound events

The gateway itself is not re-implemented; whatever Yoco returns is stored
on the transaction row by the payment routes.
"""

import base64
import hashlib
import hmac
import time
from typing import Optional

import httpx

from tmv_platform.core.config import get_settings
from tmv_platform.core.errors import PaymentGatewayError
from tmv_platform.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

# Accepted clock skew for webhook timestamps (seconds)
WEBHOOK_TOLERANCE_SECONDS = 300


def to_cents(amount: float) -> int:
    """Yoco amounts are integers in the currency's minor unit."""
    return int(round(float(amount) * 100))


class YocoClient:
    """
    Wrapper for the Yoco checkout API.
    """

    def __init__(self, secret_key: str = None, base_url: str = None, client: Optional[httpx.Client] = None):
        self.secret_key = secret_key if secret_key is not None else settings.yoco_secret_key
        self.base_url = (base_url or settings.yoco_api_url).rstrip("/")
        self.client = client or httpx.Client(timeout=settings.payment_timeout_seconds)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def create_checkout(self, amount: float, currency: str, transaction_id: int,
                        success_url: str = None, cancel_url: str = None, failure_url: str = None) -> dict:
        """
        Create a hosted checkout and return Yoco's response body.

        The body always contains ``id`` (checkout id) and ``redirectUrl``.

        Raises:
            PaymentGatewayError on transport errors, non-2xx answers or a
            response without a redirect URL.
        """
        body = {
            "amount": to_cents(amount),
            "currency": currency,
            "metadata": {"transactionId": str(transaction_id)},
        }
        if success_url:
            body["successUrl"] = success_url
        if cancel_url:
            body["cancelUrl"] = cancel_url
        if failure_url:
            body["failureUrl"] = failure_url

        try:
            response = self.client.post(f"{self.base_url}/checkouts", json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Checkout request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Yoco checkout rejected ({response.status_code}): {response.text[:500]}")
            raise PaymentGatewayError(
                f"Checkout rejected with status {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Yoco checkout returned a non-JSON body: {response.text[:500]}")
            raise PaymentGatewayError("Checkout response is not valid JSON") from e
        if not isinstance(data, dict) or not data.get("redirectUrl"):
            raise PaymentGatewayError("Checkout response has no redirectUrl")
        return data

    def test_connection(self) -> bool:
        """Check that the API host answers at all (any HTTP status counts)."""
        try:
            self.client.get(self.base_url, headers=self._headers())
            return True
        except httpx.HTTPError as e:
            logger.error(f"Yoco connection failed: {e}")
            return False


def verify_webhook(secret: str, headers: dict, body: bytes, now: float = None) -> bool:
    """
    Verify a Standard-Webhooks signature.

    signed content = "{webhook-id}.{webhook-timestamp}.{raw body}",
    HMAC-SHA256 with the base64-decoded secret (``whsec_`` prefix stripped);
    ``webhook-signature`` holds space separated ``v1,<base64>`` entries.
    """
    msg_id = headers.get("webhook-id")
    timestamp = headers.get("webhook-timestamp")
    signatures = headers.get("webhook-signature")
    if not (msg_id and timestamp and signatures):
        return False

    try:
        ts = int(timestamp)
    except ValueError:
        return False
    if abs((now or time.time()) - ts) > WEBHOOK_TOLERANCE_SECONDS:
        return False

    key = secret[len("whsec_"):] if secret.startswith("whsec_") else secret
    try:
        key_bytes = base64.b64decode(key)
    except ValueError:
        return False

    signed = f"{msg_id}.{timestamp}.".encode() + body
    expected = base64.b64encode(hmac.new(key_bytes, signed, hashlib.sha256).digest()).decode()

    for entry in signatures.split():
        version, _, sig = entry.partition(",")
        if version == "v1" and hmac.compare_digest(sig, expected):
            return True
    return False


# Singleton instance
_yoco_client: YocoClient = None


def get_yoco_client() -> YocoClient:
    """Get or create the Yoco client (singleton pattern)"""
    global _yoco_client
    if _yoco_client is None:
        _yoco_client = YocoClient()
    return _yoco_client

"""
Payment Gateway Client

HTTP client for the external payment provider. Amounts travel in cents;
every request carries a bearer API key and an HMAC-SHA256 signature of
the sorted payload.

Without an API key (or with ``PAYMENT_GATEWAY["EMULATE"]``) the provider
is emulated locally, which is what development and tests use.
"""

import hashlib
import hmac
import logging
import uuid

import requests
from django.conf import settings

from shared.domain.value_objects import Money
from apps.rentals.application.ports import PaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)


def generate_signature(data: dict, secret_key: str) -> str:
    """HMAC-SHA256 over ``k=v`` pairs sorted by key and joined with ``&``"""
    sign_string = "&".join(f"{k}={v}" for k, v in sorted(data.items()))
    return hmac.new(secret_key.encode(), sign_string.encode(), hashlib.sha256).hexdigest()


def to_cents(amount: Money) -> int:
    return int(amount.amount * 100)


class PaymentGatewayClient(PaymentGateway):

    def __init__(
        self,
        api_key: str = "",
        secret_key: str = "",
        base_url: str = "",
        emulate: bool = False,
        timeout: int = 30,
    ):
        self.api_key = api_key
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/") + "/"
        self.emulate = emulate or not api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "PaymentGatewayClient":
        config = getattr(settings, "PAYMENT_GATEWAY", {})
        return cls(
            api_key=config.get("API_KEY", ""),
            secret_key=config.get("SECRET_KEY", ""),
            base_url=config.get("BASE_URL", ""),
            emulate=config.get("EMULATE", False),
            timeout=int(config.get("TIMEOUT", 30)),
        )

    def create_payment_intent(self, amount: Money, method: str) -> str:
        logger.info(f"Creating payment intent of {amount} via {method}")

        if self.emulate:
            reference = f"{method}_{uuid.uuid4().hex[:16]}"
            logger.warning(f"Payment gateway emulated, intent {reference}")
            return reference

        result = self._post(
            "payments/create",
            {
                "amount": to_cents(amount),
                "currency": amount.currency,
                "method": method,
                "idempotency_key": uuid.uuid4().hex,
            },
        )
        reference = result.get("payment_id")
        if not reference:
            raise PaymentGatewayError("Payment provider returned no payment id")

        logger.info(f"Payment intent {reference} created")
        return reference

    def refund(self, reference: str, amount: Money) -> bool:
        logger.info(f"Refunding {amount} on payment {reference}")

        if self.emulate:
            logger.warning(f"Payment gateway emulated, refund on {reference} accepted")
            return True

        result = self._post(
            "payments/refund",
            {
                "payment_id": reference,
                "amount": to_cents(amount),
                "currency": amount.currency,
            },
        )
        return result.get("status") == "refunded"

    def _post(self, path: str, payload: dict) -> dict:
        payload = dict(payload, signature=generate_signature(payload, self.secret_key))
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            response = requests.post(
                f"{self.base_url}{path}",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Payment provider request to {path} failed: {e}")
            raise PaymentGatewayError(f"Payment provider unreachable: {e}") from e
        except ValueError as e:
            raise PaymentGatewayError(f"Invalid response from payment provider: {e}") from e

        if not result.get("success"):
            error_msg = (result.get("error") or {}).get("message", "Unknown error")
            logger.error(f"Payment provider returned an error: {error_msg}")
            raise PaymentGatewayError(error_msg)

        return result

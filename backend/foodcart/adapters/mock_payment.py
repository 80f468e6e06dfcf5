import time
from uuid import uuid4
from typing import Dict

from foodcart.adapters.http_client import ServiceError


class PaymentDeclined(ServiceError):
    """Raised for a non-retryable payment failure (e.g., insufficient funds)."""

    def __init__(self, message: str = "Your card was declined."):
        super().__init__(message, status_code=402, server_message=True)


class MockPaymentAdapter:
    """
    Stand-in for the Payment service when PAYMENT_API_URL is not configured.
    Returns a fake client secret after a small delay.
    """

    def __init__(self, delay_ms: int = 200, force_decline: bool = False):
        # Convert delay from milliseconds to seconds for time.sleep
        self.delay_seconds = delay_ms / 1000.0
        self.force_decline = force_decline
        self.initiated = []

    def initiate(self, order_id: str, amount_minor: int, currency: str) -> Dict:
        """
        Simulates POST /payment/initiate.

        Raises:
            PaymentDeclined: If the adapter was built with force_decline=True.
        """
        time.sleep(self.delay_seconds)

        if self.force_decline:
            raise PaymentDeclined()

        intent = f"pi_mock_{uuid4().hex[:16]}"
        self.initiated.append(
            {"order_id": order_id, "amount": amount_minor, "currency": currency.lower(), "intent": intent}
        )
        return {"client_secret": f"{intent}_secret_{uuid4().hex[:8]}"}

    def health_check(self) -> bool:
        return True

from typing import Dict, Optional

from foodcart.adapters.http_client import ApiClient, ServiceError


class PaymentApiClient:
    """
    Client for the Payment service. Only initiates a payment intent; the
    payment sheet and its completion live in the client-side payment SDK.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, api: Optional[ApiClient] = None):
        self.api = api or ApiClient(base_url, token=token)

    def initiate(self, order_id: str, amount_minor: int, currency: str) -> Dict:
        body = self.api.post(
            "initiate",
            json={"orderId": order_id, "amount": amount_minor, "currency": currency.lower()},
        )
        client_secret = body.get("clientSecret") if isinstance(body, dict) else None
        if not client_secret:
            raise ServiceError("Payment service did not return a client secret")
        return {"client_secret": client_secret}

    def health_check(self) -> bool:
        return bool(self.api.base_url)

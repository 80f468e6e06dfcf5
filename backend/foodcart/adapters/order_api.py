from typing import Any, Dict, Optional

from foodcart.adapters.http_client import ApiClient, ServiceError


class OrderApiClient:
    """Client for the Order service (POST /orders)."""

    def __init__(self, token: Optional[str], base_url: str, api: Optional[ApiClient] = None):
        self.api = api or ApiClient(base_url, token=token)

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an order and return the order record. The record may come back
        bare or wrapped as {"order": {...}}; either way it must carry an id.
        """
        body = self.api.post(json=payload)
        order = body.get("order") if isinstance(body, dict) and isinstance(body.get("order"), dict) else body
        order_id = None
        if isinstance(order, dict):
            order_id = order.get("orderId") or order.get("_id") or order.get("id")
        if not order_id:
            raise ServiceError("Order service did not return an order id")
        order["orderId"] = str(order_id)
        return order

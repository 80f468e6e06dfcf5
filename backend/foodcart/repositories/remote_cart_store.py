from typing import Optional

from foodcart.adapters.cart_api import CartApiClient
from foodcart.adapters.http_client import ServiceError
from foodcart.repositories.cart_store import CartStore, RestaurantConflict
from foodcart.schemas.cart_schema import CartItem, CartSnapshot, Restaurant

CONFLICT_MARKER = "different restaurant"


class RemoteCartStore(CartStore):
    """Cart held by the Cart service for an authenticated user."""

    def __init__(self, client: CartApiClient):
        self.client = client

    def load(self) -> CartSnapshot:
        return self.client.get_cart()

    def add_item(self, line: CartItem, restaurant: Restaurant) -> None:
        try:
            self.client.add_to_cart(
                item_id=line.item_id,
                restaurant_id=restaurant.id,
                quantity=line.quantity,
                item_price=line.unit_price,
                portion=line.portion,
            )
        except ServiceError as e:
            if CONFLICT_MARKER in (e.message or "").lower():
                raise RestaurantConflict(e.message) from e
            raise

    def update_quantity(self, cart_id: str, item_id: str, quantity: int, restaurant_id: Optional[str]) -> None:
        self.client.update_cart_item(cart_id, item_id, quantity, restaurant_id)

    def remove_item(self, cart_id: str) -> None:
        self.client.delete_cart_item(cart_id)

    def reset(self) -> None:
        self.client.reset_cart()

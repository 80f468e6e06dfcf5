from abc import ABC, abstractmethod
from typing import Optional

from foodcart.schemas.cart_schema import CartItem, CartSnapshot, Restaurant


class RestaurantConflict(Exception):
    """The cart already holds items from another restaurant."""

    def __init__(self, message: str = "Cannot add items from different restaurants. Please clear your cart first."):
        super().__init__(message)
        self.message = message


class CartStore(ABC):
    """
    Where a cart lives. CartService only talks to this interface; the
    implementation is picked by auth state (LocalCartStore for guests,
    RemoteCartStore for signed-in users).
    """

    @abstractmethod
    def load(self) -> CartSnapshot:
        ...

    @abstractmethod
    def add_item(self, line: CartItem, restaurant: Restaurant) -> None:
        """
        Add `line.quantity` units of the line's (item_id, portion) to the
        cart, incrementing an existing line. Raises RestaurantConflict when
        the cart holds another restaurant.
        """

    @abstractmethod
    def update_quantity(self, cart_id: str, item_id: str, quantity: int, restaurant_id: Optional[str]) -> None:
        ...

    @abstractmethod
    def remove_item(self, cart_id: str) -> None:
        ...

    @abstractmethod
    def reset(self) -> None:
        ...

from typing import Callable, List, Optional
from uuid import uuid4

from foodcart.adapters.http_client import GENERIC_ERROR, ServiceError
from foodcart.config import settings
from foodcart.repositories.cart_store import CartStore, RestaurantConflict
from foodcart.schemas.cart_schema import (
    AddItemResult,
    CartActionResult,
    CartItem,
    CartSnapshot,
    LoginResult,
    MenuItemIn,
    Restaurant,
)
from foodcart.utils.log import get_logger

log = get_logger("cart")


def new_line_id() -> str:
    """Random token for cart lines created on the device."""
    return uuid4().hex[:13]


def _message(e: Exception) -> str:
    if isinstance(e, ServiceError):
        return e.message
    return str(e) or GENERIC_ERROR


class CartService:
    """
    The active cart: items plus the single restaurant they come from.

    Guests work against `local_store`; after login every operation goes to
    `remote_store` and the authoritative cart is refetched after each
    mutation. A failed store call never loses the user's action: it is
    applied to the in-memory cart and the result carries a warning.
    """

    def __init__(
        self,
        local_store: CartStore,
        remote_store: Optional[CartStore] = None,
        merge_guest_cart: Optional[bool] = None,
    ):
        self.local_store = local_store
        self.remote_store = remote_store
        self.merge_guest_cart = (
            settings.MERGE_GUEST_CART_ON_LOGIN if merge_guest_cart is None else merge_guest_cart
        )
        self.cart = CartSnapshot()
        self.last_error: Optional[str] = None

    # --- state ---

    @property
    def store(self) -> CartStore:
        return self.remote_store or self.local_store

    @property
    def is_authenticated(self) -> bool:
        return self.remote_store is not None

    @property
    def items(self) -> List[CartItem]:
        return self.cart.items

    @property
    def restaurant(self) -> Optional[Restaurant]:
        return self.cart.restaurant

    @property
    def subtotal(self):
        return self.cart.subtotal

    @property
    def item_count(self) -> int:
        return self.cart.item_count

    @property
    def tax(self):
        return self.cart.tax

    @property
    def total(self):
        return self.cart.total

    def refresh(self) -> bool:
        """Reload the cart from the active store. Keeps the last known cart on failure."""
        try:
            self.cart = self.store.load()
        except Exception as e:
            log.error("Failed to fetch cart (%s store): %s", self._mode(), e)
            self.last_error = _message(e)
            return False
        self.last_error = None
        return True

    def _mode(self) -> str:
        return "remote" if self.is_authenticated else "local"

    def _mutate(self, action: str, store_call: Callable[[], None], local_apply: Callable[[], None]) -> Optional[str]:
        """
        Run a store mutation and refetch. If either step fails, apply the
        change to the in-memory cart and return a warning message.
        RestaurantConflict is passed through to the caller.
        """
        try:
            store_call()
        except RestaurantConflict:
            raise
        except Exception as e:
            log.error("Failed to %s (%s store): %s", action, self._mode(), e)
            local_apply()
            return _message(e)
        if not self.refresh():
            local_apply()
            return self.last_error
        return None

    # --- in-memory mutations, used for fallback ---

    def _apply_add(self, line: CartItem, restaurant: Restaurant):
        items = list(self.cart.items)
        existing = self.cart.find_by_key(line.key)
        if existing:
            items = [
                it.with_quantity(it.quantity + line.quantity) if it.id == existing.id else it
                for it in items
            ]
        else:
            items.append(line)
        self.cart = CartSnapshot(items=items, restaurant=self.cart.restaurant or restaurant)

    def _apply_update(self, cart_id: str, quantity: int):
        items = [it.with_quantity(quantity) if it.id == cart_id else it for it in self.cart.items]
        self.cart = CartSnapshot(items=items, restaurant=self.cart.restaurant)

    def _apply_remove(self, cart_id: str):
        items = [it for it in self.cart.items if it.id != cart_id]
        # CartSnapshot drops the restaurant once the last line is gone
        self.cart = CartSnapshot(items=items, restaurant=self.cart.restaurant)

    def _apply_clear(self):
        self.cart = CartSnapshot()

    def _apply_replace(self, new_items: List[CartItem], new_restaurant: Restaurant):
        self.cart = CartSnapshot()
        for line in new_items:
            self._apply_add(line, new_restaurant)

    # --- operations ---

    def add_item(self, item: MenuItemIn, restaurant: Restaurant, quantity: int = 1) -> AddItemResult:
        """
        Add `quantity` of a menu item. Items from a second restaurant are
        never mixed in: the caller gets requires_confirmation and should
        call add_item_replacing once the user agrees.
        """
        if quantity < 1:
            return AddItemResult(error="Quantity must be positive")

        current = self.cart.restaurant
        if self.cart.items and current and current.id != restaurant.id:
            log.info("Add from restaurant %s blocked, cart holds %s", restaurant.id, current.id)
            return AddItemResult(requires_confirmation=True, current_restaurant=current)

        line = CartItem(
            id=new_line_id(),
            item_id=item.id,
            name=item.name,
            unit_price=item.price,
            quantity=quantity,
            portion=item.portion,
            image=item.image,
        )
        try:
            warning = self._mutate(
                "add item",
                lambda: self.store.add_item(line, restaurant),
                lambda: self._apply_add(line, restaurant),
            )
        except RestaurantConflict as e:
            log.warning("Store reported restaurant conflict: %s", e.message)
            self.refresh()
            return AddItemResult(requires_confirmation=True, current_restaurant=self.cart.restaurant)
        return AddItemResult(success=True, warning=warning)

    def add_item_replacing(self, item: MenuItemIn, restaurant: Restaurant, quantity: int = 1) -> AddItemResult:
        """Clear the cart, then add. Used after the user confirms a restaurant switch."""
        cleared = self.clear_cart()
        result = self.add_item(item, restaurant, quantity)
        if result.success and cleared.warning and not result.warning:
            result.warning = cleared.warning
        return result

    def remove_item(self, cart_id: str) -> CartActionResult:
        warning = self._mutate(
            "remove item",
            lambda: self.store.remove_item(cart_id),
            lambda: self._apply_remove(cart_id),
        )
        return CartActionResult(warning=warning)

    def update_quantity(self, cart_id: str, item_id: str, quantity: int) -> CartActionResult:
        if quantity <= 0:
            return self.remove_item(cart_id)
        restaurant_id = self.cart.restaurant.id if self.cart.restaurant else None
        warning = self._mutate(
            "update quantity",
            lambda: self.store.update_quantity(cart_id, item_id, quantity, restaurant_id),
            lambda: self._apply_update(cart_id, quantity),
        )
        return CartActionResult(warning=warning)

    def clear_cart(self) -> CartActionResult:
        warning = self._mutate("clear cart", self.store.reset, self._apply_clear)
        return CartActionResult(warning=warning)

    def replace_cart(self, new_items: List[CartItem], new_restaurant: Restaurant) -> CartActionResult:
        """
        Reset the cart and re-add every line, one store call per line in
        order (there is no batch endpoint).
        """
        lines = [it.model_copy(update={"id": new_line_id()}) for it in new_items]

        def store_call():
            self.store.reset()
            for line in lines:
                self.store.add_item(line, new_restaurant)

        try:
            warning = self._mutate(
                "replace cart", store_call, lambda: self._apply_replace(lines, new_restaurant)
            )
        except RestaurantConflict as e:
            # the reset went through but the server still refused the new restaurant
            log.error("Replace cart rejected by store: %s", e.message)
            self._apply_replace(lines, new_restaurant)
            warning = e.message
        return CartActionResult(warning=warning)

    # --- auth transitions ---

    def login(self, remote_store: CartStore) -> LoginResult:
        """
        Switch to the server cart. A non-empty guest cart is merged into it
        when the server cart is empty or from the same restaurant; otherwise
        the server cart wins and the guest lines are dropped.
        """
        try:
            guest = self.local_store.load()
        except Exception as e:
            log.error("Failed to read guest cart on login: %s", e)
            guest = CartSnapshot()

        self.remote_store = remote_store
        self.refresh()
        result = LoginResult()
        if not guest.items:
            return result

        server_restaurant = self.cart.restaurant
        if not self.merge_guest_cart or (
            self.cart.items and server_restaurant and server_restaurant.id != guest.restaurant.id
        ):
            log.warning(
                "Discarding %d guest cart line(s) on login (server cart restaurant=%s)",
                len(guest.items),
                server_restaurant.id if server_restaurant else None,
            )
            result.discarded_items = len(guest.items)
        else:
            for line in guest.items:
                try:
                    remote_store.add_item(line, guest.restaurant)
                except Exception as e:
                    log.error("Failed to merge guest line %s: %s", line.id, e)
                    result.warning = _message(e)
                    break
                result.merged_items += 1
            self.refresh()

        if result.warning is None:
            try:
                self.local_store.reset()
            except Exception as e:
                log.error("Failed to clear guest cart after login: %s", e)
        return result

    def logout(self) -> CartSnapshot:
        """Back to the guest cart in local storage, which may be older than the server cart."""
        self.remote_store = None
        self.refresh()
        return self.cart

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from foodcart.models.cart import GuestCart
from foodcart.models.cart_item import GuestCartItem
from foodcart.repositories.cart_store import CartStore, RestaurantConflict
from foodcart.schemas.cart_schema import (
    CartItem,
    CartSnapshot,
    Coordinates,
    Portion,
    Restaurant,
    RestaurantAddress,
)
from foodcart.utils.money import from_minor_units, to_minor_units
from foodcart.utils.transactions import locked_transaction


class LocalCartStore(CartStore):
    """Guest cart persisted in the local database, keyed by the cart_uuid cookie."""

    def __init__(self, db: Session, cart_uuid: str):
        self.db = db
        self.cart_uuid = cart_uuid

    def _lock_name(self) -> str:
        return f"cart_{self.cart_uuid}"

    def _get_cart(self) -> Optional[GuestCart]:
        return self.db.query(GuestCart).filter(GuestCart.cart_uuid == self.cart_uuid).first()

    def _get_or_create_cart(self) -> GuestCart:
        c = self._get_cart()
        if c:
            return c
        c = GuestCart(cart_uuid=self.cart_uuid)
        self.db.add(c)
        self.db.flush()
        return c

    def _touch(self, cart: GuestCart):
        cart.updated_at = func.now()

    def _clear_restaurant(self, cart: GuestCart):
        cart.restaurant_id = None
        cart.restaurant_name = None
        cart.restaurant_image = None
        cart.delivery_fee_cents = None
        cart.delivery_time = None
        cart.restaurant_lat = None
        cart.restaurant_lng = None

    def _set_restaurant(self, cart: GuestCart, restaurant: Restaurant):
        cart.restaurant_id = restaurant.id
        cart.restaurant_name = restaurant.name
        cart.restaurant_image = restaurant.image
        cart.delivery_fee_cents = to_minor_units(restaurant.delivery_fee)
        cart.delivery_time = restaurant.delivery_time
        coords = restaurant.coordinates
        cart.restaurant_lat = coords.lat if coords else None
        cart.restaurant_lng = coords.lng if coords else None

    def _to_restaurant(self, cart: GuestCart) -> Optional[Restaurant]:
        if not cart.restaurant_id:
            return None
        address = None
        if cart.restaurant_lat is not None and cart.restaurant_lng is not None:
            address = RestaurantAddress(
                coordinates=Coordinates(lat=cart.restaurant_lat, lng=cart.restaurant_lng)
            )
        return Restaurant(
            id=cart.restaurant_id,
            name=cart.restaurant_name or "",
            image=cart.restaurant_image,
            delivery_fee=from_minor_units(cart.delivery_fee_cents or 0),
            delivery_time=cart.delivery_time or "",
            address=address,
        )

    def _to_item(self, row: GuestCartItem) -> CartItem:
        portion = None
        if row.portion_id:
            portion = Portion(portion_id=row.portion_id, portion_name=row.portion_name or "")
        return CartItem(
            id=row.line_id,
            item_id=row.item_id,
            name=row.name,
            display_name=row.display_name,
            unit_price=from_minor_units(row.unit_price_cents),
            quantity=row.quantity,
            portion=portion,
            image=row.image,
        )

    def load(self) -> CartSnapshot:
        cart = self._get_cart()
        if not cart:
            return CartSnapshot()
        self.db.refresh(cart)
        items = [self._to_item(row) for row in cart.items]
        return CartSnapshot(items=items, restaurant=self._to_restaurant(cart))

    def add_item(self, line: CartItem, restaurant: Restaurant) -> None:
        with locked_transaction(self.db, self._lock_name()):
            cart = self._get_or_create_cart()
            if cart.items and cart.restaurant_id and cart.restaurant_id != restaurant.id:
                raise RestaurantConflict()
            existing = next(
                (
                    it
                    for it in cart.items
                    if it.item_id == line.item_id and it.portion_id == line.portion_id
                ),
                None,
            )
            if existing:
                existing.quantity += line.quantity
            else:
                row = GuestCartItem(
                    line_id=line.id,
                    item_id=line.item_id,
                    name=line.name,
                    display_name=line.display_name,
                    image=line.image,
                    portion_id=line.portion_id,
                    portion_name=line.portion.portion_name if line.portion else None,
                    quantity=line.quantity,
                    unit_price_cents=to_minor_units(line.unit_price),
                )
                cart.items.append(row)
            if not cart.restaurant_id:
                self._set_restaurant(cart, restaurant)
            self._touch(cart)
            self.db.flush()

    def update_quantity(self, cart_id: str, item_id: str, quantity: int, restaurant_id: Optional[str]) -> None:
        with locked_transaction(self.db, self._lock_name()):
            cart = self._get_cart()
            row = self._find_line(cart, cart_id)
            if row is None:
                raise LookupError(f"Cart line not found: {cart_id}")
            row.quantity = quantity
            self._touch(cart)
            self.db.flush()

    def remove_item(self, cart_id: str) -> None:
        with locked_transaction(self.db, self._lock_name()):
            cart = self._get_cart()
            row = self._find_line(cart, cart_id)
            if row is None:
                return
            cart.items.remove(row)
            if not cart.items:
                self._clear_restaurant(cart)
            self._touch(cart)
            self.db.flush()

    def reset(self) -> None:
        with locked_transaction(self.db, self._lock_name()):
            cart = self._get_cart()
            if not cart:
                return
            cart.items.clear()
            self._clear_restaurant(cart)
            self._touch(cart)
            self.db.flush()

    def _find_line(self, cart: Optional[GuestCart], cart_id: str) -> Optional[GuestCartItem]:
        if not cart:
            return None
        return next((it for it in cart.items if it.line_id == cart_id), None)


def purge_stale_carts(db: Session, older_than: datetime) -> List[str]:
    """Delete guest carts not touched since `older_than`; return their uuids."""
    stale = db.query(GuestCart).filter(GuestCart.updated_at < older_than).all()
    uuids = [c.cart_uuid for c in stale]
    for c in stale:
        db.delete(c)
    db.commit()
    return uuids

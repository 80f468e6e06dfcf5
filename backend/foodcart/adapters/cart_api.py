from typing import Any, Dict, Optional

from foodcart.adapters.http_client import ApiClient
from foodcart.schemas.cart_schema import (
    DEFAULT_DELIVERY_FEE,
    DEFAULT_DELIVERY_TIME,
    CartItem,
    CartSnapshot,
    Coordinates,
    Portion,
    Restaurant,
    RestaurantAddress,
)
from foodcart.utils.money import to_decimal


def _parse_coordinates(raw: Any) -> Optional[Coordinates]:
    if not isinstance(raw, dict):
        return None
    lat = raw.get("lat", raw.get("latitude"))
    lng = raw.get("lng", raw.get("longitude"))
    if lat is None or lng is None:
        return None
    return Coordinates(lat=float(lat), lng=float(lng))


def parse_restaurant(raw: Optional[Dict]) -> Optional[Restaurant]:
    if not raw:
        return None
    address = raw.get("address") or {}
    coords = _parse_coordinates(address.get("coordinates") if isinstance(address, dict) else None)
    if coords is None:
        coords = _parse_coordinates(raw.get("coordinates") or raw.get("location"))
    return Restaurant(
        id=str(raw.get("_id") or raw.get("id")),
        name=raw.get("name") or "",
        image=raw.get("coverImage") or raw.get("image"),
        delivery_fee=to_decimal(raw.get("deliveryFee") or DEFAULT_DELIVERY_FEE),
        delivery_time=raw.get("deliveryTime") or DEFAULT_DELIVERY_TIME,
        address=RestaurantAddress(coordinates=coords) if coords else None,
    )


def parse_cart_item(raw: Dict) -> CartItem:
    dish = raw.get("item") or {}
    portion = None
    if raw.get("portionId"):
        portion = Portion(portion_id=str(raw["portionId"]), portion_name=raw.get("portionName") or "")
    image = dish.get("image")
    if not image and dish.get("imageUrls"):
        image = dish["imageUrls"][0]
    return CartItem(
        id=str(raw.get("_id") or raw.get("id")),
        item_id=str(raw.get("itemId")),
        name=dish.get("name") or raw.get("name") or "",
        unit_price=to_decimal(raw.get("itemPrice", 0)),
        quantity=int(raw.get("quantity", 1)),
        portion=portion,
        image=image,
    )


def parse_cart(body: Any) -> CartSnapshot:
    """Translate a GET /cart body into a CartSnapshot."""
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        body = body["data"]
    if not isinstance(body, dict) or not body.get("items"):
        return CartSnapshot()
    return CartSnapshot(
        items=[parse_cart_item(it) for it in body["items"]],
        restaurant=parse_restaurant(body.get("restaurantDetails")),
    )


class CartApiClient:
    """Client for the authenticated Cart service."""

    def __init__(self, token: str, base_url: str, api: Optional[ApiClient] = None):
        self.api = api or ApiClient(base_url, token=token)

    def get_cart(self) -> CartSnapshot:
        return parse_cart(self.api.get())

    def add_to_cart(
        self,
        item_id: str,
        restaurant_id: str,
        quantity: int,
        item_price,
        portion: Optional[Portion] = None,
    ) -> Dict:
        payload = {
            "itemId": item_id,
            "restaurantId": restaurant_id,
            "quantity": quantity,
            "itemPrice": float(item_price),
        }
        if portion:
            payload["portionId"] = portion.portion_id
            payload["portionName"] = portion.portion_name
        return self.api.post(json=payload)

    def update_cart_item(self, cart_id: str, item_id: str, quantity: int, restaurant_id: Optional[str]) -> Dict:
        return self.api.put(
            cart_id,
            json={"itemId": item_id, "quantity": quantity, "restaurantId": restaurant_id},
        )

    def delete_cart_item(self, cart_id: str) -> Dict:
        return self.api.delete(cart_id)

    def reset_cart(self) -> Dict:
        return self.api.post("reset")

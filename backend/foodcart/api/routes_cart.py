from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from foodcart.api.deps import get_cart_service, get_local_store, get_remote_store
from foodcart.repositories.cart_store import CartStore
from foodcart.repositories.local_cart_store import LocalCartStore
from foodcart.schemas.cart_schema import CartItem, MenuItemIn, Restaurant
from foodcart.services.cart_service import CartService, new_line_id

router = APIRouter(prefix="/api/cart", tags=["cart"])


class AddItemIn(BaseModel):
    item: MenuItemIn
    restaurant: Restaurant
    quantity: int = Field(1, ge=1)


class UpdateQuantityIn(BaseModel):
    item_id: str
    quantity: int


class CartLineIn(BaseModel):
    item: MenuItemIn
    quantity: int = Field(1, ge=1)


class ReplaceCartIn(BaseModel):
    items: List[CartLineIn]
    restaurant: Restaurant


def _cart_body(svc: CartService, warning: Optional[str] = None) -> dict:
    body = svc.cart.model_dump(mode="json")
    body["mode"] = "remote" if svc.is_authenticated else "local"
    if warning:
        body["warning"] = warning
    return body


@router.get("", summary="Get cart")
def get_cart(svc: CartService = Depends(get_cart_service)):
    return _cart_body(svc, svc.last_error)


@router.post("/items", summary="Add item to cart")
def add_item(payload: AddItemIn, svc: CartService = Depends(get_cart_service)):
    result = svc.add_item(payload.item, payload.restaurant, payload.quantity)
    if result.error:
        raise HTTPException(status_code=400, detail=result.error)
    # a restaurant conflict is not an error: the UI asks the user to confirm
    body = result.model_dump(mode="json")
    body["cart"] = _cart_body(svc)
    return body


@router.post("/items/replace", summary="Clear cart and add item (after confirmation)")
def add_item_replacing(payload: AddItemIn, svc: CartService = Depends(get_cart_service)):
    result = svc.add_item_replacing(payload.item, payload.restaurant, payload.quantity)
    if result.error:
        raise HTTPException(status_code=400, detail=result.error)
    body = result.model_dump(mode="json")
    body["cart"] = _cart_body(svc)
    return body


@router.put("/items/{cart_id}", summary="Update line quantity")
def update_quantity(cart_id: str, payload: UpdateQuantityIn, svc: CartService = Depends(get_cart_service)):
    result = svc.update_quantity(cart_id, payload.item_id, payload.quantity)
    return _cart_body(svc, result.warning)


@router.delete("/items/{cart_id}", summary="Remove line")
def remove_item(cart_id: str, svc: CartService = Depends(get_cart_service)):
    result = svc.remove_item(cart_id)
    return _cart_body(svc, result.warning)


@router.post("/reset", summary="Clear cart")
def clear_cart(svc: CartService = Depends(get_cart_service)):
    result = svc.clear_cart()
    return _cart_body(svc, result.warning)


@router.post("/replace", summary="Replace cart contents")
def replace_cart(payload: ReplaceCartIn, svc: CartService = Depends(get_cart_service)):
    lines = [
        CartItem(
            id=new_line_id(),
            item_id=line.item.id,
            name=line.item.name,
            unit_price=line.item.price,
            quantity=line.quantity,
            portion=line.item.portion,
            image=line.item.image,
        )
        for line in payload.items
    ]
    result = svc.replace_cart(lines, payload.restaurant)
    return _cart_body(svc, result.warning)


@router.post("/login", summary="Switch the guest cart to the signed-in user's cart")
def login(
    local_store: LocalCartStore = Depends(get_local_store),
    remote_store: Optional[CartStore] = Depends(get_remote_store),
):
    if remote_store is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    svc = CartService(local_store)
    svc.refresh()
    result = svc.login(remote_store)
    body = result.model_dump(mode="json")
    body["cart"] = _cart_body(svc)
    return body

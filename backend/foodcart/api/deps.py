from typing import Optional
from uuid import UUID, uuid4

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from foodcart.adapters.cart_api import CartApiClient
from foodcart.adapters.geocoding_api import GeocodingClient
from foodcart.adapters.mock_payment import MockPaymentAdapter
from foodcart.adapters.order_api import OrderApiClient
from foodcart.adapters.payment_api import PaymentApiClient
from foodcart.config import settings
from foodcart.db import get_db
from foodcart.repositories.cart_store import CartStore
from foodcart.repositories.local_cart_store import LocalCartStore
from foodcart.repositories.remote_cart_store import RemoteCartStore
from foodcart.services.cart_service import CartService
from foodcart.services.checkout_service import CheckoutService

CART_COOKIE = "cart_uuid"


def get_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization") or ""
    if auth.lower().startswith("bearer "):
        token = auth[7:].strip()
        return token or None
    return None


def _valid_cart_uuid(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return UUID(value).hex
    except ValueError:
        return None


def get_local_store(request: Request, response: Response, db: Session = Depends(get_db)) -> LocalCartStore:
    # anything that is not a uuid gets a fresh guest cart
    cart_uuid = _valid_cart_uuid(request.cookies.get(CART_COOKIE)) or uuid4().hex
    response.set_cookie(CART_COOKIE, cart_uuid, httponly=False, samesite="Lax")
    return LocalCartStore(db, cart_uuid)


def get_remote_store(token: Optional[str] = Depends(get_bearer_token)) -> Optional[CartStore]:
    if not token:
        return None
    return RemoteCartStore(CartApiClient(token, settings.CART_API_URL))


def get_cart_service(
    local_store: LocalCartStore = Depends(get_local_store),
    remote_store: Optional[CartStore] = Depends(get_remote_store),
) -> CartService:
    svc = CartService(local_store, remote_store)
    svc.refresh()
    return svc


def get_order_client(token: Optional[str] = Depends(get_bearer_token)):
    return OrderApiClient(token, settings.ORDER_API_URL)


def get_payment_client():
    if settings.PAYMENT_API_URL:
        return PaymentApiClient(settings.PAYMENT_API_URL)
    return MockPaymentAdapter(delay_ms=settings.PAYMENT_MOCK_DELAY_MS)


def get_geocoder():
    if settings.GEOCODING_API_URL:
        return GeocodingClient(settings.GEOCODING_API_URL)
    return None


def get_checkout_service(
    cart: CartService = Depends(get_cart_service),
    order_client=Depends(get_order_client),
    payment_client=Depends(get_payment_client),
    geocoder=Depends(get_geocoder),
) -> CheckoutService:
    return CheckoutService(cart, order_client, payment_client, geocoder=geocoder)

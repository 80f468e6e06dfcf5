import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_foodcart.db")
os.environ.setdefault("PAYMENT_API_URL", "")
os.environ.setdefault("GEOCODING_API_URL", "")
os.environ.setdefault("PAYMENT_MOCK_DELAY_MS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from foodcart.adapters.cart_api import CartApiClient
from foodcart.adapters.http_client import ServiceError
from foodcart.db import init_db
from foodcart.repositories.local_cart_store import LocalCartStore
from foodcart.repositories.remote_cart_store import RemoteCartStore
from foodcart.schemas.cart_schema import (
    Coordinates,
    MenuItemIn,
    Portion,
    Restaurant,
    RestaurantAddress,
)

COLOMBO = (6.9271, 79.8612)

RESTAURANTS = {
    "rest-a": {
        "_id": "rest-a",
        "name": "Pizza Place",
        "coverImage": "pizza.jpg",
        "deliveryFee": 80,
        "deliveryTime": "25-35 min",
        "address": {"coordinates": {"lat": COLOMBO[0], "lng": COLOMBO[1]}},
    },
    "rest-b": {
        "_id": "rest-b",
        "name": "Kottu Corner",
        "deliveryFee": 100,
        "address": {"coordinates": {"lat": 6.9000, "lng": 79.8500}},
    },
}


class FakeCartServer:
    """
    In-memory Cart service speaking the same JSON as the real one. Stands in
    for ApiClient underneath CartApiClient.
    """

    base_url = "http://cart.test/api/cart"

    def __init__(self, names=None):
        self.lines = []
        self.calls = []
        self.fail_on = set()
        self.names = names or {}
        self._seq = 0

    def _call(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise ServiceError("Network Error")

    def get(self, path="", params=None):
        self._call("GET")
        if not self.lines:
            return {"restaurantDetails": None, "items": [], "totalCount": 0}
        rid = self.lines[0]["restaurantId"]
        items = []
        for line in self.lines:
            raw = {
                "_id": line["_id"],
                "itemId": line["itemId"],
                "item": {"name": self.names.get(line["itemId"], f"Dish {line['itemId']}")},
                "quantity": line["quantity"],
                "itemPrice": line["itemPrice"],
                "totalPrice": line["itemPrice"] * line["quantity"],
            }
            if line.get("portionId"):
                raw["portionId"] = line["portionId"]
                raw["portionName"] = line["portionName"]
                raw["isPortionItem"] = True
            items.append(raw)
        return {"restaurantDetails": RESTAURANTS.get(rid), "items": items, "totalCount": len(items)}

    def post(self, path="", json=None):
        if path == "reset":
            self._call("RESET")
            self.lines = []
            return {"message": "Cart reset"}
        self._call("POST")
        if self.lines and self.lines[0]["restaurantId"] != json["restaurantId"]:
            raise ServiceError(
                "Cannot add items from different restaurants. Please clear your cart first.",
                status_code=400,
                server_message=True,
            )
        existing = next(
            (
                l
                for l in self.lines
                if l["itemId"] == json["itemId"] and l.get("portionId") == json.get("portionId")
            ),
            None,
        )
        if existing:
            existing["quantity"] += json.get("quantity") or 1
            return {"cartItem": existing}
        self._seq += 1
        line = dict(json)
        line["_id"] = f"srv-{self._seq}"
        line["quantity"] = json.get("quantity") or 1
        self.lines.append(line)
        return {"cartItem": line}

    def put(self, path="", json=None):
        self._call("PUT")
        line = next((l for l in self.lines if l["_id"] == path), None)
        if line is None:
            raise ServiceError("Cart item not found", status_code=404, server_message=True)
        line["quantity"] = json["quantity"]
        return {"cartItem": line}

    def delete(self, path=""):
        self._call("DELETE")
        self.lines = [l for l in self.lines if l["_id"] != path]
        return {"message": "Cart item deleted"}


class FakeOrderClient:
    def __init__(self, fail_with=None):
        self.payloads = []
        self.fail_with = fail_with

    def create_order(self, payload):
        self.payloads.append(payload)
        if self.fail_with:
            raise self.fail_with
        return {"orderId": f"ORD-{len(self.payloads)}", "restaurantOrder": {"status": "PENDING"}}


class FakeGeocoder:
    def __init__(self, result=None, fail=False):
        self.result = result or {"street": "12 Galle Rd", "city": "Colombo", "state": "Western"}
        self.fail = fail
        self.calls = []

    def reverse(self, lat, lng):
        self.calls.append((lat, lng))
        if self.fail:
            raise ServiceError("Geocoder unavailable")
        return self.result


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    s = Session()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def local_store(db):
    return LocalCartStore(db, "guest-1")


@pytest.fixture
def cart_server():
    return FakeCartServer(names={"pizza": "Margherita Pizza", "garlic": "Garlic Bread"})


@pytest.fixture
def remote_store(cart_server):
    return RemoteCartStore(CartApiClient("tok", cart_server.base_url, api=cart_server))


@pytest.fixture
def restaurant_a():
    return Restaurant(
        id="rest-a",
        name="Pizza Place",
        image="pizza.jpg",
        delivery_fee=Decimal("80"),
        delivery_time="25-35 min",
        address=RestaurantAddress(coordinates=Coordinates(lat=COLOMBO[0], lng=COLOMBO[1])),
    )


@pytest.fixture
def restaurant_b():
    return Restaurant(
        id="rest-b",
        name="Kottu Corner",
        delivery_fee=Decimal("100"),
        address=RestaurantAddress(coordinates=Coordinates(lat=6.9000, lng=79.8500)),
    )


@pytest.fixture
def pizza():
    return MenuItemIn(id="pizza", name="Margherita Pizza", price=Decimal("12.99"))


@pytest.fixture
def garlic_bread():
    return MenuItemIn(id="garlic", name="Garlic Bread", price=Decimal("4.50"))


@pytest.fixture
def large_pizza():
    return MenuItemIn(
        id="pizza",
        name="Margherita Pizza",
        price=Decimal("18.00"),
        portion=Portion(portion_id="p-large", portion_name="Large"),
    )


@pytest.fixture
def kottu():
    return MenuItemIn(id="kottu", name="Chicken Kottu", price=Decimal("950"))

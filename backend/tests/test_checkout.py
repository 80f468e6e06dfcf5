from decimal import Decimal

import pytest

from conftest import COLOMBO, FakeGeocoder, FakeOrderClient
from foodcart.adapters.http_client import ServiceError
from foodcart.adapters.mock_payment import MockPaymentAdapter, PaymentDeclined
from foodcart.schemas.cart_schema import Coordinates, MenuItemIn
from foodcart.schemas.checkout_schema import BlockReason, CheckoutState
from foodcart.schemas.order_schema import DeliveryAddress, OrderType, PaymentMethod
from foodcart.services.cart_service import CartService
from foodcart.services.checkout_service import PAYMENT_FAILED_MESSAGE, CheckoutService
from foodcart.utils.money import to_minor_units

# ~5.5 km north of the restaurant
NEAR = Coordinates(lat=COLOMBO[0] + 0.0495, lng=COLOMBO[1])
FAR = Coordinates(lat=COLOMBO[0] + 0.25, lng=COLOMBO[1])


def home(coords=NEAR, **kw):
    fields = {"street": "1 Main St", "city": "Colombo", "state": "Western"}
    fields.update(kw)
    return DeliveryAddress(coordinates=coords, **fields)


@pytest.fixture
def rice():
    return MenuItemIn(id="rice", name="Rice & Curry", price=Decimal("500"))


@pytest.fixture
def cart(local_store, rice, restaurant_a):
    svc = CartService(local_store)
    svc.add_item(rice, restaurant_a, quantity=2)
    return svc


@pytest.fixture
def orders():
    return FakeOrderClient()


@pytest.fixture
def payments():
    return MockPaymentAdapter(delay_ms=0)


@pytest.fixture
def checkout(cart, orders, payments):
    return CheckoutService(cart, orders, payments, currency="LKR")


def test_delivery_order_pricing(checkout):
    checkout.select_address(home())
    step = checkout.review()

    assert step.ok
    assert checkout.state == CheckoutState.SUMMARY_REVIEW
    draft = step.draft
    assert draft.subtotal == Decimal("1000")
    assert draft.delivery_fee == Decimal("110")
    assert draft.tax == Decimal("55.50")
    assert draft.total == Decimal("1165.50")
    assert draft.distance_km == pytest.approx(5.504, abs=0.01)
    assert draft.fee_estimated is False


def test_card_payment_flow(checkout, cart, orders, payments):
    checkout.select_address(home())
    checkout.review()

    result = checkout.place_order(PaymentMethod.CARD)

    assert result.success
    assert result.state == CheckoutState.ORDER_CREATED
    assert result.order_id == "ORD-1"
    assert result.client_secret.startswith("pi_mock_")
    assert payments.initiated[0]["amount"] == 116550
    assert payments.initiated[0]["currency"] == "lkr"
    assert payments.initiated[0]["order_id"] == "ORD-1"

    payload = orders.payloads[0]
    assert payload["type"] == "DELIVERY"
    assert payload["paymentMethod"] == "CARD"
    assert payload["deliveryFee"] == 110.0
    assert payload["tax"] == 55.5
    assert payload["subtotal"] == 1000.0
    assert payload["deliveryAddress"]["city"] == "Colombo"

    # acknowledged, so the cart is cleared
    assert cart.items == []


def test_cash_order_skips_payment(checkout, cart, orders, payments):
    checkout.select_address(home())
    checkout.review()

    result = checkout.place_order(PaymentMethod.CASH)

    assert result.success
    assert result.client_secret is None
    assert payments.initiated == []
    assert orders.payloads[0]["paymentMethod"] == "CASH"
    assert cart.items == []


def test_pickup_has_no_delivery_fee(checkout):
    checkout.select_order_type(OrderType.PICKUP)
    step = checkout.review()

    assert step.ok
    assert step.draft.delivery_fee == 0
    assert step.draft.delivery_address is None
    assert step.draft.tax == Decimal("50.00")
    assert step.draft.total == Decimal("1050.00")


def test_pickup_does_not_need_an_address(checkout, orders):
    checkout.select_order_type(OrderType.PICKUP)
    checkout.review()
    result = checkout.place_order(PaymentMethod.CASH)
    assert result.success
    assert orders.payloads[0]["deliveryAddress"] is None


def test_empty_cart_is_blocked(local_store, orders, payments):
    checkout = CheckoutService(CartService(local_store), orders, payments)
    checkout.select_address(home())
    step = checkout.review()
    assert not step.ok
    assert step.reason == BlockReason.EMPTY_CART
    assert checkout.state == CheckoutState.ORDER_TYPE_SELECTION


def test_delivery_without_address_is_blocked(checkout):
    step = checkout.review()
    assert not step.ok
    assert step.reason == BlockReason.NO_ADDRESS
    assert checkout.state == CheckoutState.ADDRESS_SELECTION


def test_out_of_range_blocks_delivery_but_not_pickup(checkout):
    checkout.select_address(home(FAR))
    step = checkout.review()

    assert not step.ok
    assert step.reason == BlockReason.OUT_OF_RANGE
    assert step.draft.delivery_available is False
    # no delivery fee in the tax base while delivery is unavailable
    assert step.draft.tax == Decimal("50.00")

    checkout.select_order_type(OrderType.PICKUP)
    assert checkout.review().ok


def test_missing_coordinates_use_base_fee(checkout):
    checkout.select_address(home(coords=None))
    step = checkout.review()
    assert step.ok
    assert step.draft.delivery_fee == Decimal("80.00")
    assert step.draft.distance_km is None
    assert step.draft.fee_estimated is True


def test_place_order_requires_review(checkout, orders):
    checkout.select_address(home())
    result = checkout.place_order()
    assert not result.success
    assert result.reason == BlockReason.INVALID_STATE
    assert orders.payloads == []


def test_cart_emptied_after_review_is_caught(checkout, cart, orders):
    checkout.select_address(home())
    checkout.review()
    cart.clear_cart()

    result = checkout.place_order()

    assert result.reason == BlockReason.EMPTY_CART
    assert checkout.state == CheckoutState.ORDER_TYPE_SELECTION
    assert orders.payloads == []


def test_declined_card_keeps_cart_and_message(cart, orders):
    checkout = CheckoutService(cart, orders, MockPaymentAdapter(delay_ms=0, force_decline=True))
    checkout.select_address(home())
    checkout.review()

    result = checkout.place_order()

    assert not result.success
    assert result.state == CheckoutState.FAILED
    assert result.error == PaymentDeclined().message
    # the order exists, only payment failed
    assert result.order_id == "ORD-1"
    assert cart.item_count == 2


def test_transport_failure_gives_generic_message(cart, payments):
    orders = FakeOrderClient(fail_with=ServiceError("connection reset"))
    checkout = CheckoutService(cart, orders, payments)
    checkout.select_address(home())
    checkout.review()

    result = checkout.place_order()

    assert result.state == CheckoutState.FAILED
    assert result.error == PAYMENT_FAILED_MESSAGE
    assert result.order_id is None
    assert payments.initiated == []
    assert cart.item_count == 2


def test_server_message_is_passed_through(cart, payments):
    orders = FakeOrderClient(
        fail_with=ServiceError("Restaurant is closed", status_code=400, server_message=True)
    )
    checkout = CheckoutService(cart, orders, payments)
    checkout.select_address(home())
    checkout.review()

    assert checkout.place_order().error == "Restaurant is closed"


def test_retry_after_failure(cart, payments):
    orders = FakeOrderClient(fail_with=ServiceError("boom"))
    checkout = CheckoutService(cart, orders, payments)
    checkout.select_address(home())
    checkout.review()
    checkout.place_order()
    assert checkout.state == CheckoutState.FAILED

    orders.fail_with = None
    step = checkout.retry()
    assert step.ok
    assert checkout.state == CheckoutState.SUMMARY_REVIEW
    assert checkout.place_order().success


def test_draft_is_locked_after_order_created(checkout):
    checkout.select_address(home())
    checkout.review()
    checkout.place_order()

    step = checkout.select_order_type(OrderType.PICKUP)
    assert not step.ok
    assert step.reason == BlockReason.INVALID_STATE
    assert checkout.state == CheckoutState.ORDER_CREATED


def test_geocoder_fills_blank_fields(cart, orders, payments):
    geocoder = FakeGeocoder()
    checkout = CheckoutService(cart, orders, payments, geocoder=geocoder)
    checkout.select_address(DeliveryAddress(coordinates=NEAR, zip_code="00300"))

    assert geocoder.calls == [(NEAR.lat, NEAR.lng)]
    assert checkout.address.street == "12 Galle Rd"
    assert checkout.address.city == "Colombo"
    assert checkout.address.zip_code == "00300"


def test_geocoder_not_called_for_complete_address(cart, orders, payments):
    geocoder = FakeGeocoder()
    checkout = CheckoutService(cart, orders, payments, geocoder=geocoder)
    checkout.select_address(home())
    assert geocoder.calls == []


def test_geocoder_failure_is_not_fatal(cart, orders, payments):
    checkout = CheckoutService(cart, orders, payments, geocoder=FakeGeocoder(fail=True))
    step = checkout.select_address(DeliveryAddress(coordinates=NEAR))
    assert step.ok
    assert checkout.address.street == ""
    assert checkout.review().ok


def test_retry_after_declined_card_pays_for_the_same_order(cart, orders):
    payments = MockPaymentAdapter(delay_ms=0, force_decline=True)
    checkout = CheckoutService(cart, orders, payments)
    checkout.select_address(home())
    checkout.review()
    assert checkout.place_order().order_id == "ORD-1"

    payments.force_decline = False
    assert checkout.retry().ok
    result = checkout.place_order()

    assert result.success
    assert result.order_id == "ORD-1"
    assert len(orders.payloads) == 1
    assert [p["order_id"] for p in payments.initiated] == ["ORD-1"]
    assert checkout.pending_order is None


def test_changed_cart_after_declined_card_creates_new_order(cart, orders, rice, restaurant_a):
    payments = MockPaymentAdapter(delay_ms=0, force_decline=True)
    checkout = CheckoutService(cart, orders, payments)
    checkout.select_address(home())
    checkout.review()
    checkout.place_order()

    payments.force_decline = False
    cart.add_item(rice, restaurant_a)
    checkout.retry()
    result = checkout.place_order()

    assert result.success
    assert result.order_id == "ORD-2"
    assert payments.initiated[0]["amount"] == to_minor_units(result.draft.total)


def test_resume_order_skips_order_creation(cart, orders, payments):
    checkout = CheckoutService(cart, orders, payments)
    checkout.select_address(home())
    checkout.review()
    checkout.resume_order("ORD-7", PaymentMethod.CARD)

    result = checkout.place_order(PaymentMethod.CARD)

    assert result.order_id == "ORD-7"
    assert orders.payloads == []
    assert payments.initiated[0]["order_id"] == "ORD-7"

from typing import Optional

from foodcart.adapters.http_client import ServiceError
from foodcart.config import settings
from foodcart.schemas.checkout_schema import (
    BLOCK_MESSAGES,
    BlockReason,
    CheckoutResult,
    CheckoutState,
    CheckoutStep,
)
from foodcart.schemas.order_schema import DeliveryAddress, OrderDraft, OrderType, PaymentMethod
from foodcart.services.cart_service import CartService
from foodcart.services.delivery_fee_service import quote_for
from foodcart.services.tax_service import calculate_total_with_tax
from foodcart.utils.geo import distance_between
from foodcart.utils.log import get_logger
from foodcart.utils.money import ZERO, to_minor_units

log = get_logger("checkout")

PAYMENT_FAILED_MESSAGE = "There was a problem processing your payment. Please try again."

# states in which the draft has been handed off and can no longer be edited
_LOCKED_STATES = (CheckoutState.PAYMENT_HANDOFF, CheckoutState.ORDER_CREATED)


class CheckoutService:
    """
    Checkout flow for the current cart:

        ADDRESS_SELECTION -> ORDER_TYPE_SELECTION -> SUMMARY_REVIEW
            -> PAYMENT_HANDOFF -> ORDER_CREATED | FAILED

    Every entry point returns a CheckoutStep/CheckoutResult; collaborator
    failures are reported in the result and never raised. The cart is only
    cleared once the Order service (and, for card payments, the Payment
    service) has acknowledged the order.
    """

    def __init__(
        self,
        cart: CartService,
        order_client,
        payment_client,
        geocoder=None,
        currency: Optional[str] = None,
    ):
        self.cart = cart
        self.order_client = order_client
        self.payment_client = payment_client
        self.geocoder = geocoder
        self.currency = currency or settings.CURRENCY
        self.state = CheckoutState.ADDRESS_SELECTION
        self.order_type = OrderType.DELIVERY
        self.address: Optional[DeliveryAddress] = None
        self.draft: Optional[OrderDraft] = None
        # order acknowledged by the Order service but not yet paid for
        self.pending_order: Optional[dict] = None
        self._pending_method: Optional[PaymentMethod] = None
        self._pending_draft: Optional[OrderDraft] = None

    @property
    def distance_km(self) -> Optional[float]:
        restaurant = self.cart.restaurant
        if restaurant is None or self.address is None:
            return None
        return distance_between(restaurant.coordinates, self.address.coordinates)

    def _fill_address(self, address: DeliveryAddress) -> DeliveryAddress:
        """Best-effort reverse geocoding of blank street/city/state fields."""
        coords = address.coordinates
        if self.geocoder is None or coords is None or coords.lat is None or coords.lng is None:
            return address
        if address.street and address.city and address.state:
            return address
        try:
            found = self.geocoder.reverse(coords.lat, coords.lng)
        except Exception as e:
            log.warning("Reverse geocoding failed for (%s, %s): %s", coords.lat, coords.lng, e)
            return address
        return address.model_copy(
            update={
                "street": address.street or found.get("street", ""),
                "city": address.city or found.get("city", ""),
                "state": address.state or found.get("state", ""),
            }
        )

    def select_address(self, address: DeliveryAddress) -> CheckoutStep:
        if self.state in _LOCKED_STATES:
            return CheckoutStep.blocked(self.state, BlockReason.INVALID_STATE)
        self.address = self._fill_address(address)
        self.draft = None
        self.state = CheckoutState.ORDER_TYPE_SELECTION
        return CheckoutStep(state=self.state)

    def select_order_type(self, order_type: OrderType) -> CheckoutStep:
        if self.state in _LOCKED_STATES:
            return CheckoutStep.blocked(self.state, BlockReason.INVALID_STATE)
        self.order_type = OrderType(order_type)
        self.draft = None
        self.state = CheckoutState.ORDER_TYPE_SELECTION
        return CheckoutStep(state=self.state)

    def build_draft(self) -> OrderDraft:
        """Price the current cart for the selected order type and address."""
        subtotal = self.cart.subtotal
        distance = None
        available = True
        estimated = False
        fee = ZERO
        if self.order_type == OrderType.DELIVERY:
            destination = self.address.coordinates if self.address else None
            quote = quote_for(self.cart.restaurant, destination)
            distance = self.distance_km
            if quote.ok:
                fee = quote.fee
                # no distance to price by, so the base fee is only an estimate
                estimated = distance is None
            else:
                available = False
        include_delivery = self.order_type == OrderType.DELIVERY and available
        tax, total = calculate_total_with_tax(subtotal, fee, include_delivery)
        return OrderDraft(
            type=self.order_type,
            delivery_address=self.address if self.order_type == OrderType.DELIVERY else None,
            subtotal=subtotal,
            delivery_fee=fee,
            tax=tax,
            total=total,
            delivery_available=available,
            distance_km=distance,
            fee_estimated=estimated,
            currency=self.currency,
        )

    def _validate(self, draft: OrderDraft) -> Optional[BlockReason]:
        if not self.cart.items:
            return BlockReason.EMPTY_CART
        if self.order_type == OrderType.DELIVERY:
            if self.address is None:
                return BlockReason.NO_ADDRESS
            if not draft.delivery_available:
                return BlockReason.OUT_OF_RANGE
        return None

    def review(self) -> CheckoutStep:
        """Enter SUMMARY_REVIEW, or report why the order cannot be reviewed yet."""
        if self.state in _LOCKED_STATES:
            return CheckoutStep.blocked(self.state, BlockReason.INVALID_STATE)
        draft = self.build_draft()
        reason = self._validate(draft)
        if reason:
            step = CheckoutStep.blocked(self.state, reason)
            step.draft = draft
            return step
        self.draft = draft
        self.state = CheckoutState.SUMMARY_REVIEW
        return CheckoutStep(state=self.state, draft=draft)

    def _reusable_order(self, draft: OrderDraft, method: PaymentMethod) -> Optional[dict]:
        """
        The acknowledged but unpaid order from an earlier attempt, if it still
        matches what is being placed. A changed draft or payment method
        abandons it and a new order is created.
        """
        if self.pending_order is None:
            return None
        if self._pending_method == method and self._pending_draft == draft:
            log.info("Reusing unpaid order %s", self.pending_order["orderId"])
            return self.pending_order
        log.warning("Abandoning unpaid order %s, the order changed", self.pending_order["orderId"])
        self.pending_order = None
        return None

    def resume_order(self, order_id: str, payment_method: PaymentMethod = PaymentMethod.CARD):
        """
        Adopt an order created by an earlier, failed attempt so the next
        place_order only pays for it. Call after review().
        """
        self.pending_order = {"orderId": order_id}
        self._pending_method = PaymentMethod(payment_method)
        self._pending_draft = self.draft

    def place_order(self, payment_method: PaymentMethod = PaymentMethod.CARD) -> CheckoutResult:
        """
        Hand the reviewed draft to the Order service and, for card payments,
        open a payment intent. Returns the client secret for the payment
        sheet. No automatic retry on failure.
        """
        if self.state != CheckoutState.SUMMARY_REVIEW:
            return CheckoutResult(
                state=self.state,
                reason=BlockReason.INVALID_STATE,
                error=BLOCK_MESSAGES[BlockReason.INVALID_STATE],
            )

        # the cart may have changed since review
        draft = self.build_draft()
        reason = self._validate(draft)
        if reason:
            self.state = CheckoutState.ORDER_TYPE_SELECTION
            return CheckoutResult(state=self.state, draft=draft, reason=reason, error=BLOCK_MESSAGES[reason])

        self.draft = draft
        self.state = CheckoutState.PAYMENT_HANDOFF
        method = PaymentMethod(payment_method)
        order_id = None
        client_secret = None
        order = self._reusable_order(draft, method)
        try:
            if order is None:
                order = self.order_client.create_order(draft.to_order_payload(method))
                self.pending_order = order
                self._pending_method = method
                self._pending_draft = draft
                log.info(
                    "Order %s created (%s, total=%s %s)",
                    order["orderId"], draft.type.value, draft.total, draft.currency,
                )
            order_id = order["orderId"]
            if method == PaymentMethod.CARD:
                payment = self.payment_client.initiate(order_id, to_minor_units(draft.total), draft.currency)
                client_secret = payment["client_secret"]
        except Exception as e:
            log.error("Checkout failed at payment handoff (order_id=%s): %s", order_id, e)
            self.state = CheckoutState.FAILED
            return CheckoutResult(
                state=self.state,
                order_id=order_id,
                draft=draft,
                error=e.message if isinstance(e, ServiceError) and e.server_message else PAYMENT_FAILED_MESSAGE,
            )

        self.pending_order = None
        self._pending_method = None
        self._pending_draft = None
        self.state = CheckoutState.ORDER_CREATED
        cleared = self.cart.clear_cart()
        if cleared.warning:
            log.warning("Order %s created but cart clear failed: %s", order_id, cleared.warning)
        return CheckoutResult(
            state=self.state,
            success=True,
            order_id=order_id,
            client_secret=client_secret,
            draft=draft,
            order=order,
        )

    def retry(self) -> CheckoutStep:
        """Leave FAILED and review again; nothing is retried automatically."""
        if self.state == CheckoutState.FAILED:
            self.state = CheckoutState.ORDER_TYPE_SELECTION
        return self.review()

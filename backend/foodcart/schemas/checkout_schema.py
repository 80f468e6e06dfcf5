# backend/foodcart/schemas/checkout_schema.py
import enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from foodcart.schemas.order_schema import OrderDraft


class CheckoutState(str, enum.Enum):
    ADDRESS_SELECTION = "ADDRESS_SELECTION"
    ORDER_TYPE_SELECTION = "ORDER_TYPE_SELECTION"
    SUMMARY_REVIEW = "SUMMARY_REVIEW"
    PAYMENT_HANDOFF = "PAYMENT_HANDOFF"
    ORDER_CREATED = "ORDER_CREATED"
    FAILED = "FAILED"


class BlockReason(str, enum.Enum):
    EMPTY_CART = "EMPTY_CART"
    NO_ADDRESS = "NO_ADDRESS"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    INVALID_STATE = "INVALID_STATE"


BLOCK_MESSAGES = {
    BlockReason.EMPTY_CART: "Your cart is empty",
    BlockReason.NO_ADDRESS: "Please select a delivery address",
    BlockReason.OUT_OF_RANGE: "Delivery is not available to this address. Choose pickup or another address.",
    BlockReason.INVALID_STATE: "Review your order before paying",
}


class CheckoutStep(BaseModel):
    """Outcome of a checkout transition; `ok=False` means it was blocked."""

    state: CheckoutState
    ok: bool = True
    reason: Optional[BlockReason] = None
    message: Optional[str] = None
    draft: Optional[OrderDraft] = None

    @classmethod
    def blocked(cls, state: CheckoutState, reason: BlockReason) -> "CheckoutStep":
        return cls(state=state, ok=False, reason=reason, message=BLOCK_MESSAGES[reason])


class CheckoutResult(BaseModel):
    state: CheckoutState
    success: bool = False
    order_id: Optional[str] = None
    client_secret: Optional[str] = None
    draft: Optional[OrderDraft] = None
    order: Optional[Dict[str, Any]] = None
    reason: Optional[BlockReason] = None
    error: Optional[str] = None

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from foodcart.api.deps import get_checkout_service
from foodcart.schemas.checkout_schema import CheckoutStep
from foodcart.schemas.order_schema import DeliveryAddress, OrderType, PaymentMethod
from foodcart.services.checkout_service import CheckoutService

router = APIRouter(tags=["checkout"])


class CheckoutIn(BaseModel):
    order_type: OrderType = OrderType.DELIVERY
    address: Optional[DeliveryAddress] = None


class PlaceOrderIn(CheckoutIn):
    payment_method: PaymentMethod = PaymentMethod.CARD
    # set when retrying payment for an order a failed attempt already created
    order_id: Optional[str] = None


def _review(svc: CheckoutService, payload: CheckoutIn) -> CheckoutStep:
    if payload.address is not None:
        svc.select_address(payload.address)
    svc.select_order_type(payload.order_type)
    step = svc.review()
    if not step.ok:
        raise HTTPException(
            status_code=400,
            detail={
                "reason": step.reason.value,
                "message": step.message,
                "draft": step.draft.model_dump(mode="json") if step.draft else None,
            },
        )
    return step


@router.post("/quote", summary="Price the cart for checkout")
def quote(payload: CheckoutIn, svc: CheckoutService = Depends(get_checkout_service)):
    step = _review(svc, payload)
    return step.model_dump(mode="json")


@router.post("/orders", summary="Create order and hand off to payment")
def place_order(payload: PlaceOrderIn, svc: CheckoutService = Depends(get_checkout_service)):
    _review(svc, payload)
    if payload.order_id:
        svc.resume_order(payload.order_id, payload.payment_method)
    result = svc.place_order(payload.payment_method)
    if not result.success:
        raise HTTPException(
            status_code=400,
            detail={
                "state": result.state.value,
                "reason": result.reason.value if result.reason else None,
                "error": result.error,
                "order_id": result.order_id,
            },
        )
    return result.model_dump(mode="json")

# backend/foodcart/schemas/order_schema.py
import enum
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel

from foodcart.schemas.cart_schema import Coordinates

OUT_OF_RANGE = "OUT_OF_RANGE"


class OrderType(str, enum.Enum):
    DELIVERY = "DELIVERY"
    PICKUP = "PICKUP"


class PaymentMethod(str, enum.Enum):
    CARD = "CARD"
    CASH = "CASH"  # cash on delivery, no payment intent


class DeliveryAddress(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    coordinates: Optional[Coordinates] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }
        if self.coordinates and self.coordinates.lat is not None:
            payload["coordinates"] = {
                "lat": self.coordinates.lat,
                "lng": self.coordinates.lng,
            }
        return payload


class DeliveryFeeQuote(BaseModel):
    """Either ok with a fee, or not ok with a reason (e.g. OUT_OF_RANGE)."""

    ok: bool
    fee: Optional[Decimal] = None
    reason: Optional[str] = None

    @classmethod
    def available(cls, fee: Decimal) -> "DeliveryFeeQuote":
        return cls(ok=True, fee=fee)

    @classmethod
    def unavailable(cls, reason: str = OUT_OF_RANGE) -> "DeliveryFeeQuote":
        return cls(ok=False, reason=reason)


class OrderDraft(BaseModel):
    type: OrderType
    delivery_address: Optional[DeliveryAddress] = None
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    total: Decimal
    delivery_available: bool = True
    distance_km: Optional[float] = None
    fee_estimated: bool = False  # delivery address had no coordinates, base fee applied
    currency: str = "LKR"

    def to_order_payload(self, payment_method: PaymentMethod) -> Dict[str, Any]:
        """Body for POST /orders."""
        return {
            "type": self.type.value,
            "deliveryAddress": (
                self.delivery_address.to_payload()
                if self.type == OrderType.DELIVERY and self.delivery_address
                else None
            ),
            "paymentMethod": payment_method.value,
            "tax": float(self.tax),
            "deliveryFee": float(self.delivery_fee),
            "subtotal": float(self.subtotal),
        }

import math
from decimal import Decimal
from typing import Optional

from foodcart.schemas.order_schema import OUT_OF_RANGE, DeliveryFeeQuote
from foodcart.utils.geo import distance_between
from foodcart.utils.money import Number, to_decimal

BASE_RADIUS_KM = Decimal("5")
MAX_DELIVERY_RADIUS_KM = Decimal("20")
SURCHARGE_PER_KM = Decimal("30")


def delivery_fee(distance_km: Optional[float], base_fee: Number) -> DeliveryFeeQuote:
    """
    Distance-tiered delivery fee.

    - no distance (coordinates missing): flat base fee
    - beyond 20 km: unavailable
    - up to 5 km: flat base fee
    - otherwise: base fee + 30 per started km beyond 5 km
    """
    base = to_decimal(base_fee)
    if distance_km is None:
        return DeliveryFeeQuote.available(base)

    # str() first so 5.01 - 5 is exactly 0.01 and not 0.00999...
    distance = to_decimal(distance_km)
    if distance > MAX_DELIVERY_RADIUS_KM:
        return DeliveryFeeQuote.unavailable(OUT_OF_RANGE)
    if distance <= BASE_RADIUS_KM:
        return DeliveryFeeQuote.available(base)

    surcharge_units = math.ceil(distance - BASE_RADIUS_KM)
    return DeliveryFeeQuote.available(base + surcharge_units * SURCHARGE_PER_KM)


def quote_for(restaurant, destination) -> DeliveryFeeQuote:
    """Fee for delivering from `restaurant` to the `destination` coordinates."""
    origin = restaurant.coordinates if restaurant else None
    base_fee = restaurant.delivery_fee if restaurant else 0
    return delivery_fee(distance_between(origin, destination), base_fee)

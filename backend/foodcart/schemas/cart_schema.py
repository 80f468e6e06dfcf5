# backend/foodcart/schemas/cart_schema.py
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from foodcart.services.tax_service import calculate_total_with_tax
from foodcart.utils.money import round2

DEFAULT_DELIVERY_FEE = Decimal("2.99")
DEFAULT_DELIVERY_TIME = "30-45 min"


class Portion(BaseModel):
    portion_id: str
    portion_name: str = ""


class Coordinates(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class RestaurantAddress(BaseModel):
    coordinates: Optional[Coordinates] = None


class Restaurant(BaseModel):
    """Cart-scoped projection of the restaurant whose items fill the cart."""

    id: str
    name: str = ""
    image: Optional[str] = None
    delivery_fee: Decimal = Field(DEFAULT_DELIVERY_FEE, ge=0)  # base fee
    delivery_time: str = DEFAULT_DELIVERY_TIME
    address: Optional[RestaurantAddress] = None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return self.address.coordinates if self.address else None


class MenuItemIn(BaseModel):
    """A menu item as the UI hands it to the cart."""

    id: str
    name: str = ""
    price: Decimal = Field(..., ge=0)
    image: Optional[str] = None
    portion: Optional[Portion] = None

    @field_validator("price")
    @classmethod
    def _whole_cents(cls, v: Decimal) -> Decimal:
        # guest carts store prices in integer cents
        if v != round2(v):
            raise ValueError("price must not have more than 2 decimal places")
        return v


class CartItem(BaseModel):
    id: str  # cart line id, not the menu item id
    item_id: str
    name: str = ""
    display_name: Optional[str] = None
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    portion: Optional[Portion] = None
    image: Optional[str] = None

    @model_validator(mode="after")
    def _default_display_name(self):
        if not self.display_name:
            label = self.name
            if self.portion and self.portion.portion_name:
                label = f"{self.name} ({self.portion.portion_name})"
            self.display_name = label
        return self

    @computed_field
    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def portion_id(self) -> Optional[str]:
        return self.portion.portion_id if self.portion else None

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.item_id, self.portion_id)

    def with_quantity(self, quantity: int) -> "CartItem":
        return self.model_copy(update={"quantity": quantity})


class CartSnapshot(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    restaurant: Optional[Restaurant] = None

    @model_validator(mode="after")
    def _empty_cart_has_no_restaurant(self):
        if not self.items:
            self.restaurant = None
        return self

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return sum((it.total_price for it in self.items), Decimal("0"))

    @computed_field
    @property
    def item_count(self) -> int:
        return sum(it.quantity for it in self.items)

    @property
    def base_delivery_fee(self) -> Decimal:
        return self.restaurant.delivery_fee if self.restaurant else Decimal("0")

    @computed_field
    @property
    def tax(self) -> Decimal:
        tax, _ = calculate_total_with_tax(self.subtotal, self.base_delivery_fee, True)
        return tax

    @computed_field
    @property
    def total(self) -> Decimal:
        _, total = calculate_total_with_tax(self.subtotal, self.base_delivery_fee, True)
        return total

    def find(self, cart_id: str) -> Optional[CartItem]:
        return next((it for it in self.items if it.id == cart_id), None)

    def find_by_key(self, key) -> Optional[CartItem]:
        return next((it for it in self.items if it.key == key), None)


class AddItemResult(BaseModel):
    success: bool = False
    requires_confirmation: bool = False
    current_restaurant: Optional[Restaurant] = None
    error: Optional[str] = None
    warning: Optional[str] = None  # set when a remote failure fell back to local state


class CartActionResult(BaseModel):
    success: bool = True
    warning: Optional[str] = None


class LoginResult(BaseModel):
    merged_items: int = 0
    discarded_items: int = 0
    warning: Optional[str] = None

from foodcart.db import Base
from sqlalchemy import Column, DateTime, Float, Integer, String, func
from sqlalchemy.orm import relationship


class GuestCart(Base):
    __tablename__ = "guest_carts"
    id = Column(Integer, primary_key=True, index=True)
    cart_uuid = Column(
        String(64), unique=True, index=True, nullable=False
    )  # guest identifier (cookie)
    # restaurant projection; all null while the cart is empty
    restaurant_id = Column(String(64), nullable=True)
    restaurant_name = Column(String(256), nullable=True)
    restaurant_image = Column(String(512), nullable=True)
    delivery_fee_cents = Column(Integer, nullable=True)
    delivery_time = Column(String(64), nullable=True)
    restaurant_lat = Column(Float, nullable=True)
    restaurant_lng = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    items = relationship(
        "GuestCartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="GuestCartItem.id",
    )

    def __repr__(self):
        return f"<GuestCart uuid={self.cart_uuid} restaurant={self.restaurant_id}>"

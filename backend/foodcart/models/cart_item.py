from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from foodcart.db import Base


class GuestCartItem(Base):
    __tablename__ = "guest_cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "line_id", name="uq_guest_cart_line"),
    )
    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(
        Integer, ForeignKey("guest_carts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_id = Column(String(32), nullable=False, index=True)  # client-generated token
    item_id = Column(String(64), nullable=False)
    name = Column(String(256), nullable=False, default="")
    display_name = Column(String(256), nullable=True)
    image = Column(String(512), nullable=True)
    portion_id = Column(String(64), nullable=True)
    portion_name = Column(String(128), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price_cents = Column(
        Integer, nullable=False, default=0
    )  # price at time of add, in cents

    cart = relationship("GuestCart", back_populates="items")

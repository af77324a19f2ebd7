"""Cart item model"""

from sqlalchemy import Column, String, Numeric, Integer, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from .base import BaseModel, UUIDModel, JSONType, utcnow


class CartItem(BaseModel, UUIDModel):
    """One purchasable line per (user, type key)"""

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_cart_items_user_type"),
    )

    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(255), nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)

    # size label -> quantity
    sizes = Column(JSONType, nullable=False, default=dict)

    draft_id = Column(String(36), nullable=True, index=True)
    item_data = Column(JSONType, nullable=False, default=dict)

    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)

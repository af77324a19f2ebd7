"""Order model"""

from sqlalchemy import Column, String, Numeric, Enum, DateTime
import enum

from .base import BaseModel, TimestampedModel, UUIDModel, JSONType


class OrderStatus(str, enum.Enum):
    AWAITING_VERIFICATION = "awaiting_verification"
    VERIFIED = "verified"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Order(BaseModel, TimestampedModel, UUIDModel):
    """Placed order; items are a snapshot taken at checkout"""

    __tablename__ = "orders"

    # Order identification
    order_id = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    items = Column(JSONType, nullable=False, default=list)

    # Status
    status = Column(
        Enum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=32,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=OrderStatus.AWAITING_VERIFICATION,
        nullable=False,
        index=True,
    )

    # Amounts
    amount = Column(Numeric(10, 2), nullable=False)
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)

    payment_method = Column(String(50), nullable=True)
    shipping_address = Column(JSONType, nullable=False)
    manifesto = Column(String(100), nullable=True)

    # Delivery
    tracking_number = Column(String(100), nullable=True)
    courier = Column(String(100), nullable=True)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)

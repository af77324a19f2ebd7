"""
Order service layer
Handles order placement, cancellation and shipment tracking
"""

from typing import Any, Dict, List
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import json
import logging
import random
import string

from manifesto.core.exceptions import (
    BadRequestException,
    DuplicateResourceException,
    ForbiddenException,
    NotFoundException,
    OrderNotCancellableException,
)
from manifesto.models import Order, OrderStatus
from manifesto.models.base import utcnow
from .schemas import OrderCreate, TrackingUpdate
from .state_machine import OrderStateMachine

logger = logging.getLogger(__name__)


def normalize_items(items: Any) -> List[Any]:
    """Order items as a list, whether stored as JSON text or already decoded"""
    if isinstance(items, str):
        try:
            items = json.loads(items)
        except ValueError:
            return []
    return items if isinstance(items, list) else []


def serialize_order(order: Order) -> Dict[str, Any]:
    data = order.to_dict()
    data["items"] = normalize_items(order.items)
    return data


class OrderService:
    """Order service for business logic"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.state_machine = OrderStateMachine()

    def generate_order_number(self) -> str:
        """Generate unique order number"""
        timestamp = utcnow().strftime('%Y%m%d%H%M%S')
        random_suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=4))
        return f"ORD{timestamp}{random_suffix}"

    async def create_order(self, user: dict, data: OrderCreate) -> Dict[str, Any]:
        """
        Place an order for the authenticated user

        Args:
            user: Identity of the caller
            data: Order payload; items are stored as given

        Returns:
            The stored order

        Raises:
            ForbiddenException: If the payload names another user
            DuplicateResourceException: If the order id is already taken
        """
        if data.user_id and data.user_id != user["id"]:
            raise ForbiddenException("User ID mismatch", error_code="USER_MISMATCH")

        order = Order(
            order_id=data.order_id or self.generate_order_number(),
            user_id=user["id"],
            items=data.items,
            amount=data.amount,
            shipping_cost=data.shipping_cost,
            tax_amount=data.tax_amount,
            payment_method=data.payment_method,
            shipping_address=data.shipping_address,
            manifesto=data.manifesto,
            status=OrderStatus.AWAITING_VERIFICATION,
        )
        self.db.add(order)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateResourceException("Order", "order_id", order.order_id)

        logger.info(f"Order {order.order_id} placed by user {user['id']}")
        return serialize_order(order)

    async def get_order(self, user_id: str, order_id: str) -> Order:
        result = await self.db.execute(
            select(Order).where(Order.order_id == order_id, Order.user_id == user_id)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException("Order not found")
        return order

    async def list_orders(self, user_id: str) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
        )
        return [serialize_order(order) for order in result.scalars().all()]

    async def cancel_order(self, user_id: str, order_id: str) -> Dict[str, Any]:
        """
        Cancel order

        Raises:
            OrderNotCancellableException: If order cannot be cancelled
        """
        order = await self.get_order(user_id, order_id)

        if not self.state_machine.is_cancellable(order.status):
            raise OrderNotCancellableException(current_status=OrderStatus(order.status).value)

        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utcnow()
        await self.db.commit()

        logger.info(f"Order {order_id} cancelled by user {user_id}")
        return {
            "success": True,
            "message": "Order cancelled successfully",
            "orderId": order.order_id,
            "status": OrderStatus.CANCELLED.value,
            "cancelledAt": order.cancelled_at.isoformat(),
        }

    async def update_tracking(self, user_id: str, order_id: str, data: TrackingUpdate) -> Dict[str, Any]:
        order = await self.get_order(user_id, order_id)

        if data.status is not None and data.status != order.status:
            if not self.state_machine.can_transition(order.status, data.status):
                raise BadRequestException(
                    f"Cannot change order status from {OrderStatus(order.status).value} to {data.status.value}",
                    error_code="INVALID_STATUS_TRANSITION",
                    extra={"currentStatus": OrderStatus(order.status).value},
                )
            order.status = data.status

        order.tracking_number = data.tracking_number
        order.courier = data.courier
        await self.db.commit()

        return {
            "success": True,
            "orderId": order.order_id,
            "tracking_number": order.tracking_number,
            "courier": order.courier,
            "status": OrderStatus(order.status).value,
        }

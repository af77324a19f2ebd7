"""Order router"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from manifesto.core.database import get_db
from manifesto.api.auth.dependencies import get_current_user
from .schemas import OrderCreate, TrackingUpdate
from .services import OrderService, serialize_order

router = APIRouter()


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    current_user: dict = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Place a new order"""
    order = await service.create_order(current_user, payload)
    return {"success": True, "order": order}


@router.get("")
async def list_orders(
    current_user: dict = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.list_orders(current_user["id"])


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: dict = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = await service.get_order(current_user["id"], order_id)
    return serialize_order(order)


@router.patch("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    current_user: dict = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Cancel an order that has not shipped yet"""
    return await service.cancel_order(current_user["id"], order_id)


@router.patch("/{order_id}/tracking")
async def update_tracking(
    order_id: str,
    payload: TrackingUpdate,
    current_user: dict = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.update_tracking(current_user["id"], order_id, payload)

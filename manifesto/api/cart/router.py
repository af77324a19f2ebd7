"""Cart router"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from manifesto.core.config import Settings
from manifesto.core.context import get_settings_dep
from manifesto.core.database import get_db
from manifesto.api.auth.dependencies import get_current_user
from .schemas import AddToCartRequest, UpdateSizesRequest
from .services import CartService

router = APIRouter()


def get_cart_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> CartService:
    return CartService(db, settings.CART_UNIT_PRICE)


@router.post("/add")
async def add_to_cart(
    payload: AddToCartRequest,
    current_user: dict = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    """Add item to cart, merging sizes into an existing line"""
    return await service.add_to_cart(current_user["id"], payload)


@router.get("/count")
async def get_cart_count(
    current_user: dict = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return {"count": await service.count(current_user["id"])}


@router.get("/items")
async def get_cart_items(
    current_user: dict = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return await service.list_items(current_user["id"])


@router.get("/total")
async def get_cart_total(
    current_user: dict = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return {"total": float(await service.total(current_user["id"]))}


@router.delete("/items/{item_id}")
async def remove_cart_item(
    item_id: str,
    current_user: dict = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return await service.remove_item(current_user["id"], item_id)


@router.patch("/items/{item_id}")
async def update_cart_item_sizes(
    item_id: str,
    payload: UpdateSizesRequest,
    current_user: dict = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    """Replace an item's sizes; an empty map removes it"""
    return await service.update_sizes(current_user["id"], item_id, payload.new_sizes)


@router.delete("/clear")
async def clear_cart(
    current_user: dict = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return await service.clear(current_user["id"])

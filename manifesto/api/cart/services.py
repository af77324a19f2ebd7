"""
Cart service layer
Handles shopping cart business logic
"""

from typing import Any, Dict, List, Optional
from decimal import Decimal
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from manifesto.core.exceptions import BadRequestException, NotFoundException
from manifesto.models import CartItem, Draft
from manifesto.models.base import utcnow
from .item_kind import CartItemKind, CustomDesign
from .schemas import MAX_SIZE_LABELS, MAX_SIZE_QUANTITY, AddToCartRequest, SizeMap, total_quantity

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def merge_sizes(existing: SizeMap, incoming: SizeMap) -> Dict[str, int]:
    """Sum quantities per size label"""
    merged = dict(existing or {})
    for size, quantity in incoming.items():
        merged[size] = merged.get(size, 0) + quantity
    return {size: quantity for size, quantity in merged.items() if quantity > 0}


def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return (Decimal(unit_price) * quantity).quantize(CENTS)


class CartService:
    """Shopping cart service"""

    def __init__(self, db: AsyncSession, unit_price: Decimal):
        self.db = db
        self.unit_price = Decimal(unit_price)

    async def get_item(self, user_id: str, item_id: str) -> Optional[CartItem]:
        result = await self.db.execute(
            select(CartItem).where(CartItem.id == item_id, CartItem.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_item_by_type(self, user_id: str, type_key: str) -> Optional[CartItem]:
        result = await self.db.execute(
            select(CartItem).where(CartItem.user_id == user_id, CartItem.type == type_key)
        )
        return result.scalar_one_or_none()

    async def _describe(self, user_id: str, kind: CartItemKind) -> Dict[str, Any]:
        item_data = kind.describe()
        if isinstance(kind, CustomDesign):
            draft = await self.db.get(Draft, kind.draft_id)
            if draft is None or draft.user_id != user_id:
                raise NotFoundException("Draft not found")
            item_data.update({
                "title": draft.title,
                "draftType": draft.type,
                "frontPreviewImage": draft.front_preview_image,
                "backPreviewImage": draft.back_preview_image,
            })
        return item_data

    def _apply_sizes(self, item: CartItem, sizes: Dict[str, int]) -> None:
        item.sizes = sizes
        item.quantity = total_quantity(sizes)
        item.total_price = line_total(item.price, item.quantity)
        item.updated_at = utcnow()

    async def add_to_cart(self, user_id: str, request: AddToCartRequest) -> Dict[str, Any]:
        """
        Add sizes to the user's line for this item, creating it if needed.
        Repeat adds of the same item merge into one line by summing per size.
        """
        if total_quantity(request.size_quantities) == 0:
            raise BadRequestException("Select at least one size and quantity")

        kind = request.kind
        type_key = kind.type_key
        item_data = await self._describe(user_id, kind)

        item = await self.get_item_by_type(user_id, type_key)
        action = "updated"
        if item is None:
            item = CartItem(
                user_id=user_id,
                type=type_key,
                price=self.unit_price,
                draft_id=kind.draft_id if isinstance(kind, CustomDesign) else None,
                item_data=item_data,
            )
            self._apply_sizes(item, merge_sizes({}, request.size_quantities))
            self.db.add(item)
            action = "added"
            try:
                await self.db.commit()
            except IntegrityError:
                # A concurrent add created the line first; merge into it
                await self.db.rollback()
                item = await self.get_item_by_type(user_id, type_key)
                if item is None:
                    raise
                action = "updated"

        if action == "updated":
            merged = merge_sizes(item.sizes, request.size_quantities)
            over = [size for size, quantity in merged.items() if quantity > MAX_SIZE_QUANTITY]
            if over:
                raise BadRequestException(
                    f"Quantity for size {over[0]} cannot exceed {MAX_SIZE_QUANTITY}",
                    error_code="QUANTITY_LIMIT",
                )
            if len(merged) > MAX_SIZE_LABELS:
                raise BadRequestException(f"A cart item can hold at most {MAX_SIZE_LABELS} sizes", error_code="QUANTITY_LIMIT")
            item.item_data = {**(item.item_data or {}), **item_data}
            self._apply_sizes(item, merged)
            await self.db.commit()

        logger.info(f"Cart {action} {type_key} for user {user_id}: quantity {item.quantity}")
        return {
            "success": True,
            "action": action,
            "itemId": item.id,
            "quantity": item.quantity,
            "totalPrice": float(item.total_price),
        }

    async def list_items(self, user_id: str) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.added_at.desc())
        )
        return [item.to_dict() for item in result.scalars().all()]

    async def count(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.sum(CartItem.quantity), 0)).where(CartItem.user_id == user_id)
        )
        return int(result.scalar_one())

    async def total(self, user_id: str) -> Decimal:
        result = await self.db.execute(
            select(CartItem.total_price).where(CartItem.user_id == user_id)
        )
        return sum((Decimal(price) for price in result.scalars().all()), Decimal("0.00"))

    async def remove_item(self, user_id: str, item_id: str) -> Dict[str, Any]:
        item = await self.get_item(user_id, item_id)
        if item is None:
            raise NotFoundException("Cart item not found")
        await self.db.delete(item)
        await self.db.commit()
        return {"success": True, "message": "Item removed from cart", "itemId": item_id}

    async def update_sizes(self, user_id: str, item_id: str, new_sizes: SizeMap) -> Dict[str, Any]:
        """Replace the size map; an all-zero map removes the line"""
        item = await self.get_item(user_id, item_id)

        if total_quantity(new_sizes) == 0:
            if item is not None:
                await self.db.delete(item)
                await self.db.commit()
                logger.info(f"Cart item {item_id} removed by empty size update")
            return {"success": True, "action": "removed", "itemId": item_id}

        if item is None:
            raise NotFoundException("Cart item not found")

        self._apply_sizes(item, {size: qty for size, qty in new_sizes.items() if qty > 0})
        await self.db.commit()
        return {
            "success": True,
            "action": "updated",
            "data": item.to_dict(),
            "totalQuantity": item.quantity,
            "totalPrice": float(item.total_price),
        }

    async def clear(self, user_id: str) -> Dict[str, Any]:
        await self.db.execute(delete(CartItem).where(CartItem.user_id == user_id))
        await self.db.commit()
        return {"success": True, "message": "Cart cleared"}

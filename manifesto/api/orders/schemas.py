"""
Order schemas for request/response validation
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from decimal import Decimal

from manifesto.models.order import OrderStatus


class OrderCreate(BaseModel):
    """Schema for creating order"""
    order_id: Optional[str] = Field(None, max_length=64)
    items: List[Dict[str, Any]]
    amount: Decimal = Field(..., ge=0)
    shipping_address: Dict[str, Any]
    shipping_cost: Decimal = Field(Decimal("0"), ge=0)
    tax_amount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: Optional[str] = Field(None, max_length=50)
    manifesto: Optional[str] = Field(None, max_length=100)
    user_id: Optional[str] = None

    @field_validator("items")
    @classmethod
    def validate_items(cls, v):
        if not v:
            raise ValueError("Order must contain at least one item")
        return v

    @field_validator("shipping_address")
    @classmethod
    def validate_shipping_address(cls, v):
        if not v:
            raise ValueError("Shipping address is required")
        return v


class TrackingUpdate(BaseModel):
    """Schema for attaching shipment tracking to an order"""
    tracking_number: str = Field(..., min_length=1, max_length=100)
    courier: str = Field(..., min_length=1, max_length=100)
    status: Optional[OrderStatus] = None

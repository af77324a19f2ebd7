"""
Draft schemas for request/response validation
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any

from manifesto.models.draft import DraftType
from manifesto.api.cart.schemas import SizeMap


class DraftCreate(BaseModel):
    """Schema for saving a new draft"""
    type: DraftType
    title: str = Field(..., min_length=1, max_length=255)
    data: Dict[str, Any] = Field(default_factory=dict)
    front_preview_image: Optional[str] = None
    back_preview_image: Optional[str] = None
    sizes: Dict[str, Any] = Field(default_factory=dict)


class DraftUpdate(BaseModel):
    """Partial update; only fields present in the body are written"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    data: Optional[Dict[str, Any]] = None
    front_preview_image: Optional[str] = None
    back_preview_image: Optional[str] = None
    sizes: Optional[Dict[str, Any]] = None


class DraftSizesUpdate(BaseModel):
    size_quantities: SizeMap = Field(..., alias="sizeQuantities")

    model_config = {"populate_by_name": True}

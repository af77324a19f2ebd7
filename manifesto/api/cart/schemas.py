"""
Cart schemas for request/response validation
"""

from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Dict

from .item_kind import CartItemKind, parse_item_kind

# Per size label; keeps line totals inside the Numeric(10, 2) price columns
MAX_SIZE_QUANTITY = 999
MAX_SIZE_LABELS = 20

SizeQuantity = Annotated[int, Field(ge=0, le=MAX_SIZE_QUANTITY)]
SizeMap = Dict[str, SizeQuantity]


def total_quantity(sizes: SizeMap) -> int:
    return sum(sizes.values())


class AddToCartRequest(BaseModel):
    """Schema for adding item to cart"""
    draft_id: str = Field(..., alias="draftId", min_length=1)
    size_quantities: SizeMap = Field(..., alias="sizeQuantities", max_length=MAX_SIZE_LABELS)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "draftId": "blank-red",
                "sizeQuantities": {"M": 2, "L": 1}
            }
        }
    }

    @field_validator("draft_id")
    @classmethod
    def validate_reference(cls, v):
        parse_item_kind(v)
        return v.strip()

    @property
    def kind(self) -> CartItemKind:
        return parse_item_kind(self.draft_id)


class UpdateSizesRequest(BaseModel):
    """Schema for replacing a cart item's size map"""
    new_sizes: SizeMap = Field(..., alias="newSizes", max_length=MAX_SIZE_LABELS)

    model_config = {"populate_by_name": True}

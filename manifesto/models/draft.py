"""Saved design drafts"""

from sqlalchemy import Column, String, Text
import enum

from .base import BaseModel, TimestampedModel, UUIDModel, JSONType


class DraftType(str, enum.Enum):
    SVG = "svg"
    TSHIRT = "tshirt"


class Draft(BaseModel, TimestampedModel, UUIDModel):
    __tablename__ = "drafts"

    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)

    # Type-specific payload, including references to uploaded files
    data = Column(JSONType, nullable=False, default=dict)

    front_preview_image = Column(Text, nullable=True)
    back_preview_image = Column(Text, nullable=True)
    sizes = Column(JSONType, nullable=False, default=dict)

"""User profile model"""

from sqlalchemy import Column, String

from .base import BaseModel, TimestampedModel, JSONType


class Profile(BaseModel, TimestampedModel):
    """Per-user profile keyed by the identity service's user id"""

    __tablename__ = "profiles"

    user_id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    manifesto = Column(String(100), nullable=True, unique=True, index=True)
    barcode = Column(String(64), nullable=True)

    # Ordered list of address dicts; exactly one carries isDefault when non-empty
    shipping_addresses = Column(JSONType, nullable=False, default=list)

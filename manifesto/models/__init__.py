"""Database models"""

from .base import Base, BaseModel
from .profile import Profile
from .cart import CartItem
from .draft import Draft, DraftType
from .order import Order, OrderStatus
from .library import BookNote, NoteAnnotation, BookWant, BookReading

__all__ = [
    "Base",
    "BaseModel",
    "Profile",
    "CartItem",
    "Draft",
    "DraftType",
    "Order",
    "OrderStatus",
    "BookNote",
    "NoteAnnotation",
    "BookWant",
    "BookReading",
]

"""Reading library: notes, annotations and want/reading lists"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, UniqueConstraint

from .base import BaseModel, CreatedModel, TimestampedModel, UUIDModel


class BookNote(BaseModel, TimestampedModel, UUIDModel):
    __tablename__ = "book_notes"

    user_id = Column(String(36), nullable=False, index=True)
    book_id = Column(String(64), nullable=False, index=True)
    content = Column(Text, nullable=False)
    page_start = Column(Integer, nullable=False)
    page_end = Column(Integer, nullable=True)


class NoteAnnotation(BaseModel, CreatedModel, UUIDModel):
    __tablename__ = "note_annotations"

    note_id = Column(String(36), ForeignKey("book_notes.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    annotation_type = Column(String(32), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)


class BookWant(BaseModel, CreatedModel, UUIDModel):
    __tablename__ = "book_wants"
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_book_wants_user_book"),)

    user_id = Column(String(36), nullable=False, index=True)
    book_id = Column(String(64), nullable=False, index=True)


class BookReading(BaseModel, CreatedModel, UUIDModel):
    __tablename__ = "book_readings"
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_book_readings_user_book"),)

    user_id = Column(String(36), nullable=False, index=True)
    book_id = Column(String(64), nullable=False, index=True)

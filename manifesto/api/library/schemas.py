"""
Library schemas for request/response validation
"""

from pydantic import BaseModel, Field, NonNegativeInt, model_validator
from typing import Optional, List


class AnnotationIn(BaseModel):
    content: str = Field(..., min_length=1)
    annotation_type: Optional[str] = Field(None, max_length=32)


class NoteCreate(BaseModel):
    """Schema for creating a book note"""
    book_id: str = Field(..., min_length=1, max_length=64)
    content: str = Field(..., min_length=1)
    page_start: NonNegativeInt
    page_end: Optional[NonNegativeInt] = None
    annotations: List[AnnotationIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_page_range(self):
        if self.page_end is not None and self.page_end < self.page_start:
            raise ValueError("page_end must not be before page_start")
        return self


class NoteUpdate(BaseModel):
    """Partial note update; annotations, when given, replace the existing ones"""
    content: Optional[str] = Field(None, min_length=1)
    page_start: Optional[NonNegativeInt] = None
    page_end: Optional[NonNegativeInt] = None
    annotations: Optional[List[AnnotationIn]] = None


class BookReference(BaseModel):
    book_id: str = Field(..., min_length=1, max_length=64)


class BookToggle(BaseModel):
    book_id: str = Field(..., alias="bookId", min_length=1, max_length=64)

    model_config = {"populate_by_name": True}


class BookIdsRequest(BaseModel):
    book_ids: List[str] = Field(..., alias="bookIds", max_length=500)

    model_config = {"populate_by_name": True}

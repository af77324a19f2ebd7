"""Library router: notes, annotations and reading lists"""

from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from manifesto.core.context import get_database
from manifesto.core.database import Database, get_db
from manifesto.api.auth.dependencies import get_current_user, get_current_user_optional
from manifesto.models import BookWant, BookReading
from .schemas import BookIdsRequest, BookReference, BookToggle, NoteCreate, NoteUpdate
from .services import LibraryService

router = APIRouter()


def get_library_service(
    db: AsyncSession = Depends(get_db),
    database: Database = Depends(get_database),
) -> LibraryService:
    return LibraryService(db, database)


@router.get("")
async def get_library(
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    """Want list, reading list and notes grouped by book"""
    return await service.get_library(current_user["id"])


@router.post("/notes", status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteCreate,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    note = await service.create_note(current_user["id"], payload)
    return {"success": True, "note": note}


@router.get("/notes/{note_id}")
async def get_note(
    note_id: str,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.get_note_detail(current_user["id"], note_id)


@router.patch("/notes/{note_id}")
async def update_note(
    note_id: str,
    payload: NoteUpdate,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.update_note(current_user["id"], note_id, payload)


@router.delete("/notes/{note_id}")
async def delete_note(
    note_id: str,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.delete_note(current_user["id"], note_id)


@router.post("/book-wants")
async def add_book_want(
    payload: BookReference,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.add_to_list(BookWant, current_user["id"], payload.book_id)


@router.delete("/book-wants/{book_id}")
async def remove_book_want(
    book_id: str,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.remove_from_list(BookWant, current_user["id"], book_id)


@router.post("/book-readings")
async def add_book_reading(
    payload: BookReference,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.add_to_list(BookReading, current_user["id"], payload.book_id)


@router.delete("/book-readings/{book_id}")
async def remove_book_reading(
    book_id: str,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.remove_from_list(BookReading, current_user["id"], book_id)


@router.post("/books-stats")
async def get_books_stats(
    payload: BookIdsRequest,
    current_user: Optional[dict] = Depends(get_current_user_optional),
    service: LibraryService = Depends(get_library_service),
):
    """Public counts per book; membership flags when the caller is signed in"""
    user_id = current_user["id"] if current_user else None
    book_ids = list(dict.fromkeys(book_id for book_id in payload.book_ids if book_id))
    return await service.book_stats(book_ids, user_id)


@router.post("/toggle-want")
async def toggle_want(
    payload: BookToggle,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.toggle(BookWant, current_user["id"], payload.book_id)


@router.post("/toggle-reading")
async def toggle_reading(
    payload: BookToggle,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return await service.toggle(BookReading, current_user["id"], payload.book_id)


@router.get("/books/{book_id}/notes-with-annotations")
async def get_book_notes(
    book_id: str,
    service: LibraryService = Depends(get_library_service),
):
    return {"notes": await service.notes_for_book(book_id)}


@router.get("/books/{book_id}/user-notes")
async def get_user_book_notes(
    book_id: str,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return {"notes": await service.notes_for_book(book_id, current_user["id"])}

"""Books router: batched counts, caller status and notes for many books"""

from fastapi import APIRouter, Depends

from manifesto.api.auth.dependencies import get_current_user
from manifesto.api.library.router import get_library_service
from manifesto.api.library.schemas import BookIdsRequest
from manifesto.api.library.services import LibraryService

router = APIRouter()


def _unique(book_ids):
    return list(dict.fromkeys(book_id for book_id in book_ids if book_id))


@router.post("/counts")
async def get_book_counts(
    payload: BookIdsRequest,
    service: LibraryService = Depends(get_library_service),
):
    return {"counts": await service.book_counts(_unique(payload.book_ids))}


@router.post("/user-status")
async def get_user_status(
    payload: BookIdsRequest,
    current_user: dict = Depends(get_current_user),
    service: LibraryService = Depends(get_library_service),
):
    return {"userStatus": await service.user_status(current_user["id"], _unique(payload.book_ids))}


@router.post("/notes/batch")
async def get_notes_batch(
    payload: BookIdsRequest,
    service: LibraryService = Depends(get_library_service),
):
    return {"notes": await service.notes_for_books(_unique(payload.book_ids))}

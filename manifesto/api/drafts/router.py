"""Draft router"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from manifesto.core.context import get_storage
from manifesto.core.database import get_db
from manifesto.api.auth.dependencies import get_current_user
from manifesto.services.storage import StorageClient
from .schemas import DraftCreate, DraftSizesUpdate, DraftUpdate
from .services import DraftService

router = APIRouter()


def get_draft_service(
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
) -> DraftService:
    return DraftService(db, storage)


@router.get("")
async def list_drafts(
    current_user: dict = Depends(get_current_user),
    service: DraftService = Depends(get_draft_service),
):
    return await service.list_drafts(current_user["id"])


@router.get("/batch")
async def get_drafts_batch(
    ids: str = Query("", description="Comma separated draft ids"),
    current_user: dict = Depends(get_current_user),
    service: DraftService = Depends(get_draft_service),
):
    draft_ids = [draft_id.strip() for draft_id in ids.split(",") if draft_id.strip()]
    return await service.get_batch(current_user["id"], draft_ids)


@router.get("/{draft_id}")
async def get_draft(
    draft_id: str,
    current_user: dict = Depends(get_current_user),
    service: DraftService = Depends(get_draft_service),
):
    draft = await service.get_draft(current_user["id"], draft_id)
    return draft.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_draft(
    payload: DraftCreate,
    current_user: dict = Depends(get_current_user),
    service: DraftService = Depends(get_draft_service),
):
    draft = await service.create_draft(current_user["id"], payload)
    return {"success": True, "draft": draft}


@router.patch("/{draft_id}")
async def update_draft(
    draft_id: str,
    payload: DraftUpdate,
    current_user: dict = Depends(get_current_user),
    service: DraftService = Depends(get_draft_service),
):
    return await service.update_draft(current_user["id"], draft_id, payload)


@router.patch("/{draft_id}/update-sizes")
async def update_draft_sizes(
    draft_id: str,
    payload: DraftSizesUpdate,
    current_user: dict = Depends(get_current_user),
    service: DraftService = Depends(get_draft_service),
):
    return await service.update_sizes(current_user["id"], draft_id, payload.size_quantities)


@router.delete("/{draft_id}")
async def delete_draft(
    draft_id: str,
    current_user: dict = Depends(get_current_user),
    service: DraftService = Depends(get_draft_service),
):
    """Delete a draft along with its stored files"""
    return await service.delete_draft(current_user["id"], draft_id)

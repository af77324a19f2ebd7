"""
Draft service layer
Stores saved designs and cleans up their uploaded files on deletion
"""

from typing import Any, Callable, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from manifesto.core.exceptions import NotFoundException
from manifesto.models import Draft, DraftType
from manifesto.models.base import utcnow
from manifesto.services.storage import StorageClient, StorageError
from .schemas import DraftCreate, DraftUpdate

logger = logging.getLogger(__name__)


def _image_files(images: Any, object_path: Callable[[str], Optional[str]]) -> List[str]:
    files = []
    if not isinstance(images, list):
        return files
    for image in images:
        storage_file = image.get("storageFile") if isinstance(image, dict) else None
        if not isinstance(storage_file, dict):
            continue
        if storage_file.get("fileName"):
            files.append(storage_file["fileName"])
        elif storage_file.get("publicUrl"):
            path = object_path(storage_file["publicUrl"])
            if path:
                files.append(path)
    return files


def collect_draft_files(draft: Draft, object_path: Callable[[str], Optional[str]]) -> List[str]:
    """
    Names of every stored object a draft references, without duplicates.
    object_path maps a public URL to its object name, or None for foreign URLs.
    """
    files: List[str] = []
    data = draft.data if isinstance(draft.data, dict) else {}

    if draft.type == DraftType.SVG.value:
        if data.get("storageUrl"):
            path = object_path(data["storageUrl"])
            if path:
                files.append(path)
        if data.get("fileName"):
            files.append(data["fileName"])
        previews = [draft.front_preview_image]

    elif draft.type == DraftType.TSHIRT.value:
        files.extend(_image_files(data.get("frontImages"), object_path))
        files.extend(_image_files(data.get("backImages"), object_path))
        for key in ("frontPreviewFile", "backPreviewFile"):
            preview_file = data.get(key)
            if isinstance(preview_file, dict) and preview_file.get("fileName"):
                files.append(preview_file["fileName"])
        previews = [draft.front_preview_image, draft.back_preview_image]

    else:
        previews = []

    for url in previews:
        path = object_path(url) if url else None
        if path:
            files.append(path)

    return list(dict.fromkeys(files))


class DraftService:
    """Saved design drafts"""

    def __init__(self, db: AsyncSession, storage: Optional[StorageClient] = None):
        self.db = db
        self.storage = storage

    async def get_draft(self, user_id: str, draft_id: str) -> Draft:
        result = await self.db.execute(
            select(Draft).where(Draft.id == draft_id, Draft.user_id == user_id)
        )
        draft = result.scalar_one_or_none()
        if draft is None:
            raise NotFoundException("Draft not found")
        return draft

    async def list_drafts(self, user_id: str) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Draft)
            .where(Draft.user_id == user_id)
            .order_by(Draft.created_at.desc())
        )
        return [draft.to_dict() for draft in result.scalars().all()]

    async def get_batch(self, user_id: str, draft_ids: List[str]) -> List[Dict[str, Any]]:
        if not draft_ids:
            return []
        result = await self.db.execute(
            select(Draft).where(Draft.user_id == user_id, Draft.id.in_(draft_ids))
        )
        return [draft.to_dict() for draft in result.scalars().all()]

    async def create_draft(self, user_id: str, data: DraftCreate) -> Dict[str, Any]:
        draft = Draft(
            user_id=user_id,
            type=data.type.value,
            title=data.title,
            data=data.data,
            front_preview_image=data.front_preview_image,
            back_preview_image=data.back_preview_image,
            sizes=data.sizes,
        )
        self.db.add(draft)
        await self.db.commit()
        logger.info(f"Draft {draft.id} ({draft.type}) created for user {user_id}")
        return draft.to_dict()

    async def update_draft(self, user_id: str, draft_id: str, data: DraftUpdate) -> Dict[str, Any]:
        draft = await self.get_draft(user_id, draft_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("title", "data", "sizes"):
                continue
            setattr(draft, field, value)
        draft.updated_at = utcnow()
        await self.db.commit()
        return {"success": True, "draftId": draft.id}

    async def update_sizes(self, user_id: str, draft_id: str, size_quantities: Dict[str, int]) -> Dict[str, Any]:
        draft = await self.get_draft(user_id, draft_id)
        draft.data = {**(draft.data or {}), "sizeQuantities": size_quantities}
        draft.sizes = dict(size_quantities)
        draft.updated_at = utcnow()
        await self.db.commit()
        return {"success": True, "draftId": draft.id}

    async def delete_draft(self, user_id: str, draft_id: str) -> Dict[str, Any]:
        """
        Delete a draft and, best-effort, the files it references.
        A storage failure is logged and the row is deleted anyway.
        """
        draft = await self.get_draft(user_id, draft_id)

        files: List[str] = []
        deleted = 0
        if self.storage is not None:
            files = collect_draft_files(draft, self.storage.object_path)
            if files:
                try:
                    await self.storage.remove(files)
                    deleted = len(files)
                except StorageError as e:
                    logger.error(f"Failed to delete files for draft {draft_id}: {e}")

        await self.db.delete(draft)
        await self.db.commit()
        logger.info(f"Draft {draft_id} deleted, {deleted} of {len(files)} file(s) removed")
        return {"success": True, "message": "Draft deleted", "filesDeleted": deleted}

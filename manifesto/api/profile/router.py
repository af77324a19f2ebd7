"""Profile router"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from manifesto.core.database import get_db
from manifesto.api.auth.dependencies import get_current_user
from .schemas import AddressIn, ManifestoUpdate
from .services import ProfileService

router = APIRouter()


def get_profile_service(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


@router.get("/info")
async def get_profile_info(
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.get_info(current_user["id"])


@router.patch("/manifesto")
async def update_manifesto(
    payload: ManifestoUpdate,
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.update_manifesto(current_user, payload.manifesto)


@router.post("/address")
async def add_address(
    payload: AddressIn,
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    """Append an address; the first one saved becomes the default"""
    return await service.add_address(current_user, payload)


@router.patch("/address/{index}")
async def update_address(
    index: int,
    payload: AddressIn,
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.update_address(current_user, index, payload)


@router.patch("/address/{index}/default")
async def set_default_address(
    index: int,
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.set_default_address(current_user, index)


@router.delete("/address/{index}")
async def delete_address(
    index: int,
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.delete_address(current_user, index)

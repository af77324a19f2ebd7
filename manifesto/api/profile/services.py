"""
Profile service layer
The address list lives on the profile row as JSON; every write keeps
exactly one default entry while the list is non-empty.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from manifesto.core.exceptions import ConflictException, NotFoundException
from manifesto.models import Profile
from manifesto.models.base import utcnow
from .schemas import AddressIn

logger = logging.getLogger(__name__)


def normalize_defaults(addresses: List[Dict[str, Any]], preferred: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Return a copy of the list with a single default.
    `preferred` wins when given; otherwise the first flagged entry is kept,
    falling back to the first address.
    """
    if not addresses:
        return []
    if preferred is None:
        flagged = [i for i, address in enumerate(addresses) if address.get("isDefault")]
        preferred = flagged[0] if flagged else 0
    return [{**address, "isDefault": i == preferred} for i, address in enumerate(addresses)]


class ProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.user_id == user_id))
        return result.scalar_one_or_none()

    async def _get_or_create(self, user: dict) -> Profile:
        profile = await self.get_profile(user["id"])
        if profile is None:
            profile = Profile(user_id=user["id"], email=user.get("email"), shipping_addresses=[])
            self.db.add(profile)
            await self.db.flush()
            logger.info(f"Created profile for user {user['id']}")
        return profile

    async def get_info(self, user_id: str) -> Dict[str, Any]:
        profile = await self.get_profile(user_id)
        if profile is None:
            return {}
        return {
            "manifesto": profile.manifesto,
            "shipping_addresses": profile.shipping_addresses or [],
        }

    async def update_manifesto(self, user: dict, manifesto: str) -> Dict[str, Any]:
        result = await self.db.execute(
            select(Profile.user_id).where(Profile.manifesto == manifesto, Profile.user_id != user["id"])
        )
        if result.first() is not None:
            raise ConflictException("Manifesto already taken", error_code="MANIFESTO_TAKEN")

        profile = await self._get_or_create(user)
        profile.manifesto = manifesto
        profile.updated_at = utcnow()
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("Manifesto already taken", error_code="MANIFESTO_TAKEN")
        return {"success": True, "manifesto": manifesto}

    async def _save_addresses(self, profile: Profile, addresses: List[Dict[str, Any]]) -> Dict[str, Any]:
        # assign a new list so the JSON column is flagged dirty
        profile.shipping_addresses = addresses
        profile.updated_at = utcnow()
        await self.db.commit()
        return {"success": True, "addresses": addresses}

    @staticmethod
    def _check_index(addresses: List[Dict[str, Any]], index: int) -> None:
        if index < 0 or index >= len(addresses):
            raise NotFoundException("Address not found", error_code="ADDRESS_NOT_FOUND")

    async def add_address(self, user: dict, address: AddressIn) -> Dict[str, Any]:
        profile = await self._get_or_create(user)
        addresses = list(profile.shipping_addresses or [])
        addresses.append(address.to_record())
        preferred = len(addresses) - 1 if address.is_default else None
        return await self._save_addresses(profile, normalize_defaults(addresses, preferred))

    async def update_address(self, user: dict, index: int, address: AddressIn) -> Dict[str, Any]:
        profile = await self._get_or_create(user)
        addresses = list(profile.shipping_addresses or [])
        self._check_index(addresses, index)

        was_default = bool(addresses[index].get("isDefault"))
        addresses[index] = address.to_record()
        if address.is_default:
            preferred = index
        elif was_default:
            # the old default gave up its flag; hand it to the first other address
            preferred = next((i for i in range(len(addresses)) if i != index), index)
        else:
            preferred = None
        return await self._save_addresses(profile, normalize_defaults(addresses, preferred))

    async def set_default_address(self, user: dict, index: int) -> Dict[str, Any]:
        profile = await self._get_or_create(user)
        addresses = list(profile.shipping_addresses or [])
        self._check_index(addresses, index)
        return await self._save_addresses(profile, normalize_defaults(addresses, index))

    async def delete_address(self, user: dict, index: int) -> Dict[str, Any]:
        profile = await self._get_or_create(user)
        addresses = list(profile.shipping_addresses or [])
        self._check_index(addresses, index)
        addresses.pop(index)
        return await self._save_addresses(profile, normalize_defaults(addresses))

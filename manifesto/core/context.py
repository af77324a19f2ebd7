"""
Application context
Long-lived resources built once per process and handed to request handlers
"""

from dataclasses import dataclass
from fastapi import Depends, Request
import logging

from .config import Settings
from .database import Database
from manifesto.services.identity import IdentityClient
from manifesto.services.storage import StorageClient

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    database: Database
    identity: IdentityClient
    storage: StorageClient

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        logger.info("Building application context")
        return cls(
            settings=settings,
            database=Database.from_settings(settings),
            identity=IdentityClient(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_ROLE_KEY,
                anon_key=settings.SUPABASE_ANON_KEY,
                timeout=settings.IDENTITY_TIMEOUT,
            ),
            storage=StorageClient(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_ROLE_KEY,
                bucket=settings.STORAGE_BUCKET,
                timeout=settings.IDENTITY_TIMEOUT,
            ),
        )

    async def close(self) -> None:
        await self.identity.aclose()
        await self.storage.aclose()
        await self.database.dispose()


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_settings_dep(context: AppContext = Depends(get_context)) -> Settings:
    return context.settings


def get_identity(context: AppContext = Depends(get_context)) -> IdentityClient:
    return context.identity


def get_storage(context: AppContext = Depends(get_context)) -> StorageClient:
    return context.storage


def get_database(context: AppContext = Depends(get_context)) -> Database:
    return context.database

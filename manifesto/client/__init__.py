"""
Python client for the Manifesto API: persisted sessions, authentication
and session restore.
"""

from .api import ApiClient, ApiError
from .auth_client import (
    AuthClient,
    AuthClientError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    ManifestoNotFoundError,
    barcode_for,
)
from .events import AuthEvents
from .session_restore import RestoreState, SessionRestorer
from .storage import FileStorage, KeyValueStorage, MemoryStorage
from .token_store import Session, TokenStore

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthClient",
    "AuthClientError",
    "AuthEvents",
    "EmailNotVerifiedError",
    "FileStorage",
    "InvalidCredentialsError",
    "KeyValueStorage",
    "ManifestoNotFoundError",
    "MemoryStorage",
    "RestoreState",
    "Session",
    "SessionRestorer",
    "TokenStore",
    "barcode_for",
]

"""
Persisted authentication record

The record is a JSON object {user, token, refreshToken, expiresAt, savedAt}
kept under a single storage key. Records older than seven days are purged on
read, whatever their expiry says.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
import json
import logging
import time

from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

AUTH_STORAGE_KEY = "manifesto-auth-data"
MAX_RECORD_AGE = 7 * 24 * 60 * 60

# Keys matching any of these are treated as auth leftovers by clear()
AUTH_KEY_MARKERS = ("auth", "token", "supabase")


def is_auth_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in AUTH_KEY_MARKERS)


@dataclass
class Session:
    user: Dict[str, Any]
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None
    issued_at: float = field(default_factory=time.time)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id")

    def is_valid(self, now: float, skew: float) -> bool:
        """True while more than `skew` seconds remain before expiry"""
        return self.expires_at is not None and self.expires_at - now > skew

    def to_record(self, saved_at: float) -> Dict[str, Any]:
        return {
            "user": self.user,
            "token": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": self.expires_at,
            "savedAt": saved_at,
        }

    @classmethod
    def from_record(cls, record: Any) -> "Session":
        """Raises ValueError for anything that is not a complete record"""
        if not isinstance(record, dict):
            raise ValueError("auth record is not an object")
        user, token, saved_at = record.get("user"), record.get("token"), record.get("savedAt")
        if not isinstance(user, dict) or not isinstance(token, str) or not token:
            raise ValueError("auth record lacks user or token")
        if not isinstance(saved_at, (int, float)):
            raise ValueError("auth record lacks savedAt")
        expires_at = record.get("expiresAt")
        if expires_at is not None and not isinstance(expires_at, (int, float)):
            raise ValueError("auth record has a non-numeric expiresAt")
        return cls(
            user=user,
            access_token=token,
            refresh_token=record.get("refreshToken"),
            expires_at=expires_at,
            issued_at=saved_at,
        )


class TokenStore:
    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = AUTH_STORAGE_KEY,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.key = key
        self.clock = clock

    def load(self) -> Optional[Session]:
        try:
            raw = self.storage.get_item(self.key)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read auth data: {e}")
            return None
        if raw is None:
            return None

        try:
            record = json.loads(raw)
            session = Session.from_record(record)
        except ValueError as e:
            logger.warning(f"Discarding malformed auth data: {e}")
            self._remove(self.key)
            return None

        if self.clock() - record["savedAt"] > MAX_RECORD_AGE:
            logger.info("Discarding auth data older than 7 days")
            self._remove(self.key)
            return None

        return session

    def save(self, session: Session) -> bool:
        saved_at = self.clock()
        try:
            self.storage.set_item(self.key, json.dumps(session.to_record(saved_at)))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save auth data: {e}")
            return False
        session.issued_at = saved_at
        return True

    def clear(self) -> None:
        """Remove the auth record and any other auth-looking keys"""
        self._remove(self.key)
        try:
            keys = self.storage.keys()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to list storage keys: {e}")
            return
        for key in keys:
            if key != self.key and is_auth_key(key):
                self._remove(key)

    def _remove(self, key: str) -> None:
        try:
            self.storage.remove_item(key)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to remove {key}: {e}")

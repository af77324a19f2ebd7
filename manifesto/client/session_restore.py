"""
Session restore with bounded retries

Keeps a data client's bearer token in step with the persisted auth record.
A restore reads the stored token, installs it on the data client and
verifies it against the API, refreshing it once when the API rejects it.
Failed attempts back off exponentially; after the last retry the stored
auth data is purged and the data client is signed out.

    IDLE -> RESTORING -> VERIFIED
                      -> FAILED
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import logging
import time

from .api import ApiClient, ApiError
from .events import AuthEvents, LOGIN_SUCCESS, LOGOUT, TOKEN_REFRESHED
from .token_store import Session, TokenStore, is_auth_key

logger = logging.getLogger(__name__)


class RestoreState(str, Enum):
    IDLE = "idle"
    RESTORING = "restoring"
    VERIFIED = "verified"
    FAILED = "failed"


class _Attempt(Enum):
    OK = "ok"
    RETRY = "retry"
    FATAL = "fatal"


class SessionRestorer:
    def __init__(
        self,
        store: TokenStore,
        data_client: ApiClient,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        cooldown: float = 5.0,
        verified_ttl: float = 30.0,
        expiry_skew: float = 30.0,
        monitor_interval: Optional[float] = 300.0,
        claims_authenticated: Optional[Callable[[], bool]] = None,
    ):
        self.store = store
        self.data_client = data_client
        self.clock = clock
        self.sleep = sleep
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.cooldown = cooldown
        self.verified_ttl = verified_ttl
        self.expiry_skew = expiry_skew
        self.monitor_interval = monitor_interval
        self.claims_authenticated = claims_authenticated or (lambda: self.store.load() is not None)

        self.state = RestoreState.IDLE
        self.retry_count = 0
        self.hidden = False
        self.last_attempt_at: Optional[float] = None
        self.last_verified_at: Optional[float] = None
        self._in_flight = False
        self._monitor_task: Optional[asyncio.Task] = None
        self.events: Optional[AuthEvents] = None

    def backoff_delay(self, attempt: int) -> float:
        return min(self.base_delay * 2 ** attempt, self.max_delay)

    async def restore(self, force: bool = False) -> RestoreState:
        """
        Run one restore cycle unless another is running, the last one ended
        within the cooldown, or the session was verified moments ago.
        `force` skips the last two checks.
        """
        if self._in_flight:
            return self.state

        now = self.clock()
        if not force:
            if (
                self.state == RestoreState.VERIFIED
                and self.last_verified_at is not None
                and now - self.last_verified_at < self.verified_ttl
            ):
                return self.state
            if self.last_attempt_at is not None and now - self.last_attempt_at < self.cooldown:
                logger.debug("Restore suppressed by cooldown")
                return self.state

        self._in_flight = True
        try:
            await self._run()
        finally:
            self._in_flight = False
            self.last_attempt_at = self.clock()
        return self.state

    async def _run(self) -> None:
        self.state = RestoreState.RESTORING
        self.retry_count = 0

        while True:
            outcome = await self._attempt()
            if outcome is _Attempt.OK:
                self.state = RestoreState.VERIFIED
                self.retry_count = 0
                self.last_verified_at = self.clock()
                self.start_monitor()
                return
            if outcome is _Attempt.FATAL:
                break

            self.retry_count += 1
            if self.retry_count > self.max_retries:
                break
            delay = self.backoff_delay(self.retry_count)
            logger.info(f"Session restore attempt {self.retry_count} failed, retrying in {delay}s")
            await self.sleep(delay)

        self._fail()

    async def _attempt(self) -> _Attempt:
        session = self.store.load()
        if session is None or not session.is_valid(self.clock(), self.expiry_skew):
            logger.info("No usable stored session")
            return _Attempt.FATAL

        self.data_client.set_session(session.access_token)
        try:
            await self.data_client.verify_session()
            return _Attempt.OK
        except ApiError as e:
            logger.info(f"Stored session not accepted: {e.message}")
            if e.status_code != 401 or not session.refresh_token:
                return _Attempt.RETRY

        return _Attempt.OK if await self._refresh(session) else _Attempt.RETRY

    async def _refresh(self, session: Session) -> bool:
        try:
            tokens = await self.data_client.refresh_session(session.refresh_token)
        except ApiError as e:
            logger.info(f"Session refresh failed: {e.message}")
            return False

        refreshed = Session(
            user=session.user,
            access_token=tokens["token"],
            refresh_token=tokens.get("refreshToken") or session.refresh_token,
            expires_at=tokens.get("expiresAt"),
        )
        self.store.save(refreshed)
        self.data_client.set_session(refreshed.access_token)
        if self.events is not None:
            # the refresh token was rotated; the auth client must drop the old one
            self.events.emit(TOKEN_REFRESHED, session=refreshed)
        return True

    def _fail(self) -> None:
        logger.warning("Session restore failed, clearing stored auth data")
        self.state = RestoreState.FAILED
        self.stop_monitor()
        self.store.clear()
        self.data_client.clear_session()

    # Entry points

    async def on_page_load(self) -> RestoreState:
        return await self.restore()

    async def on_visibility_change(self, hidden: bool) -> RestoreState:
        self.hidden = hidden
        if hidden:
            return self.state
        return await self.restore()

    async def on_storage_change(self, key: Optional[str]) -> RestoreState:
        # key is None when the whole storage was cleared
        if key is not None and not is_auth_key(key):
            return self.state
        return await self.restore()

    # Connectivity monitor

    async def check_connectivity(self) -> RestoreState:
        """One monitor tick: re-verify if the API is unreachable while signed in"""
        if self.hidden:
            return self.state
        if not await self.data_client.ping() and self.claims_authenticated():
            logger.info("Connectivity check failed, forcing session restore")
            return await self.restore(force=True)
        return self.state

    async def _monitor(self) -> None:
        while True:
            await self.sleep(self.monitor_interval)
            await self.check_connectivity()
            # stopped, or replaced, during the tick
            if self._monitor_task is not asyncio.current_task():
                return

    def start_monitor(self) -> None:
        if self.monitor_interval is None:
            return
        if self._monitor_task is not None and not self._monitor_task.done():
            return
        self._monitor_task = asyncio.get_running_loop().create_task(self._monitor())

    def stop_monitor(self) -> None:
        if self._monitor_task is not None and self._monitor_task is not asyncio.current_task():
            self._monitor_task.cancel()
        self._monitor_task = None

    # Auth notifications

    def bind(self, events: AuthEvents) -> None:
        """Follow login, refresh and logout notifications from an AuthClient"""
        self.events = events
        events.on(LOGIN_SUCCESS, self._on_signed_in)
        events.on(TOKEN_REFRESHED, self._on_signed_in)
        events.on(LOGOUT, self._on_logout)

    def _on_signed_in(self, payload: Dict[str, Any]) -> None:
        session: Session = payload["session"]
        self.data_client.set_session(session.access_token)
        self.state = RestoreState.VERIFIED
        self.retry_count = 0
        self.last_verified_at = self.clock()

    def _on_logout(self, payload: Dict[str, Any]) -> None:
        self.stop_monitor()
        self.data_client.clear_session()
        self.state = RestoreState.IDLE
        self.last_verified_at = None

    async def close(self) -> None:
        self.stop_monitor()

"""
Client-side authentication

Drives the login, signup, logout and refresh endpoints and keeps the token
store and listeners in step with the result.
"""

from typing import Any, Callable, Dict, Optional
import hashlib
import logging
import time

from .api import ApiClient, ApiError
from .events import (
    AuthEvents,
    AUTH_READY,
    AUTH_STATE_CHANGED,
    LOGIN_SUCCESS,
    LOGOUT,
    SIGNUP_SUCCESS,
    TOKEN_REFRESHED,
)
from .token_store import Session, TokenStore

logger = logging.getLogger(__name__)

EXPIRY_BUFFER = 60


class AuthClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ManifestoNotFoundError(AuthClientError):
    pass


class InvalidCredentialsError(AuthClientError):
    pass


class EmailNotVerifiedError(AuthClientError):
    pass


LOGIN_ERRORS = {
    404: ManifestoNotFoundError,
    401: InvalidCredentialsError,
    403: EmailNotVerifiedError,
}


def barcode_for(manifesto: str) -> str:
    """Stable 15 character barcode derived from a manifesto handle"""
    return hashlib.sha256(manifesto.encode("utf-8")).hexdigest()[:15]


class AuthClient:
    def __init__(
        self,
        api: ApiClient,
        store: TokenStore,
        events: Optional[AuthEvents] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.api = api
        self.store = store
        self.events = events or AuthEvents()
        self.clock = clock
        self.session: Optional[Session] = None
        self.pending_verification: Optional[str] = None
        self.events.on(TOKEN_REFRESHED, self._adopt_session)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.session.user if self.session else None

    def _adopt_session(self, payload: Dict[str, Any]) -> None:
        """Take over a session refreshed by another component, such as a SessionRestorer"""
        session = payload.get("session")
        if session is None or session is self.session:
            return
        if self.session is not None and session.user_id != self.session.user_id:
            return
        self.session = session
        self.api.set_session(session.access_token)

    def _establish(self, user: Dict[str, Any], tokens: Dict[str, Any]) -> Session:
        session = Session(
            user=user,
            access_token=tokens["token"],
            refresh_token=tokens.get("refreshToken"),
            expires_at=tokens.get("expiresAt"),
            issued_at=self.clock(),
        )
        self.session = session
        self.pending_verification = None
        self.api.set_session(session.access_token)
        if not self.store.save(session):
            logger.warning("Signed in but the session could not be persisted")
        return session

    async def login(self, identifier: str, password: str) -> Session:
        """Sign in with an email address or a manifesto handle"""
        try:
            data = await self.api.post(
                "/api/auth/login",
                {"emailOrManifesto": identifier.strip(), "password": password},
                auth=False,
            )
        except ApiError as e:
            error_class = LOGIN_ERRORS.get(e.status_code, AuthClientError)
            raise error_class(e.message, e.status_code)

        session = self._establish(data["user"], data)
        self.events.emit(AUTH_STATE_CHANGED, user=session.user)
        self.events.emit(LOGIN_SUCCESS, user=session.user, session=session)
        return session

    async def signup(
        self,
        email: str,
        password: str,
        manifesto: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        extra = dict(extra or {})
        barcode = extra.pop("barcode", None) or barcode_for(manifesto)
        payload = {"email": email, "password": password, "manifesto": manifesto, "barcode": barcode, **extra}
        try:
            data = await self.api.post("/api/auth/signup", payload, auth=False)
        except ApiError as e:
            raise AuthClientError(e.message, e.status_code)

        tokens = data.get("session")
        if tokens and tokens.get("token"):
            # auto-confirmed account: signed in straight away
            session = self._establish(data["user"], tokens)
            self.events.emit(AUTH_STATE_CHANGED, user=session.user)
            self.events.emit(SIGNUP_SUCCESS, user=session.user, pending=False)
            self.events.emit(LOGIN_SUCCESS, user=session.user, session=session)
        else:
            self.pending_verification = email
            self.events.emit(SIGNUP_SUCCESS, user=data.get("user"), pending=True)
        return data

    async def resend_verification(self, email: Optional[str] = None) -> Dict[str, Any]:
        """Ask for another confirmation email for a signup awaiting verification"""
        email = email or self.pending_verification
        if not email:
            raise AuthClientError("No signup is awaiting verification")
        try:
            return await self.api.post("/api/auth/resend-verification", {"email": email}, auth=False)
        except ApiError as e:
            raise AuthClientError(e.message, e.status_code)

    async def logout(self) -> None:
        old_user = self.user
        token = self.session.access_token if self.session else None

        if token:
            try:
                await self.api.post("/api/auth/logout")
            except ApiError as e:
                logger.info(f"Server logout failed: {e.message}")

        self.session = None
        self.pending_verification = None
        self.store.clear()
        self.api.clear_session()

        self.events.emit(AUTH_STATE_CHANGED, user=None, old_user=old_user)
        self.events.emit(LOGOUT, old_user=old_user)

    async def refresh_access_token(self) -> bool:
        """
        Exchange the refresh token for a new pair.
        A rejected refresh token signs the user out; a transient failure keeps state.
        """
        if not self.session or not self.session.refresh_token:
            return False
        try:
            data = await self.api.refresh_session(self.session.refresh_token)
        except ApiError as e:
            if e.status_code in (400, 401):
                logger.info("Refresh token rejected, signing out")
                await self.logout()
            else:
                logger.warning(f"Token refresh failed: {e.message}")
            return False

        session = self._establish(self.session.user, data)
        self.events.emit(TOKEN_REFRESHED, session=session)
        return True

    def is_token_expired(self) -> bool:
        if not self.session or self.session.expires_at is None:
            return True
        return self.session.expires_at - EXPIRY_BUFFER <= self.clock()

    def is_authenticated(self) -> bool:
        return bool(self.session and self.session.access_token) and not self.is_token_expired()

    async def initialize(self) -> bool:
        """Pick up a persisted session, refreshing it if it has expired"""
        self.session = self.store.load()
        if self.session is not None:
            self.api.set_session(self.session.access_token)
            if self.is_token_expired() and not await self.refresh_access_token():
                if self.session is not None:
                    await self.logout()

        self.events.emit(AUTH_READY, user=self.user, authenticated=self.is_authenticated())
        return self.is_authenticated()

    def auth_headers(self) -> Dict[str, str]:
        if self.session and self.session.access_token:
            return {"Authorization": f"Bearer {self.session.access_token}"}
        return {}

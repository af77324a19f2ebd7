"""
Authentication service layer
Identity checks are delegated to the identity service; profiles live in our database
"""

from typing import Any, Dict, Optional
from urllib.parse import urlencode
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from manifesto.core.config import Settings
from manifesto.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    InternalServerException,
    InvalidTokenException,
    ManifestoNotFoundException,
    UnauthorizedException,
    UpstreamException,
)
from manifesto.models import Profile
from manifesto.services.identity import IdentityClient, IdentityError, session_expiry
from .schemas import LoginRequest, SignupRequest

logger = logging.getLogger(__name__)

RESET_MESSAGE = "If the email exists, a reset link has been sent"
RESEND_MESSAGE = "If the account is awaiting verification, a new confirmation email has been sent"


def _session_tokens(session: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "token": session["access_token"],
        "refresh_token": session.get("refresh_token"),
        "expires_at": session_expiry(session),
    }


class AuthService:
    """Login, signup and credential management"""

    def __init__(self, db: AsyncSession, identity: IdentityClient, settings: Settings):
        self.db = db
        self.identity = identity
        self.settings = settings

    async def get_profile_by_manifesto(self, manifesto: str) -> Optional[Profile]:
        result = await self.db.execute(select(Profile).where(Profile.manifesto == manifesto))
        return result.scalar_one_or_none()

    async def get_profile_by_email(self, email: str) -> Optional[Profile]:
        result = await self.db.execute(
            select(Profile).where(func.lower(Profile.email) == email.lower())
        )
        return result.scalars().first()

    async def resolve_email(self, identifier: str) -> str:
        """Turn a login identifier into an email, looking up manifesto handles"""
        if "@" in identifier:
            return identifier
        profile = await self.get_profile_by_manifesto(identifier)
        if not profile or not profile.email:
            raise ManifestoNotFoundException()
        return profile.email

    async def login(self, request: LoginRequest) -> Dict[str, Any]:
        email = await self.resolve_email(request.email_or_manifesto)

        try:
            session = await self.identity.sign_in_with_password(email, request.password)
        except IdentityError as e:
            if "Invalid login credentials" in e.message:
                raise UnauthorizedException("Invalid email or password", error_code="INVALID_CREDENTIALS")
            if "Email not confirmed" in e.message:
                raise ForbiddenException("Email not verified", error_code="EMAIL_NOT_VERIFIED")
            if e.is_rejection:
                raise UnauthorizedException(e.message, error_code="LOGIN_FAILED")
            raise UpstreamException(e.message, status_code=500)

        user = session.get("user") or {}
        profile = await self.db.get(Profile, user.get("id"))
        if profile is None:
            logger.error(f"Signed in user {user.get('id')} has no profile row")
            raise InternalServerException("Failed to fetch user profile")

        logger.info(f"User {profile.user_id} logged in")
        return {
            **_session_tokens(session),
            "user": {
                "id": profile.user_id,
                "email": profile.email or user.get("email"),
                "manifesto": profile.manifesto,
                "barcode": profile.barcode,
            },
        }

    async def signup(self, request: SignupRequest) -> Dict[str, Any]:
        if len(request.password) < self.settings.PASSWORD_MIN_LENGTH:
            raise BadRequestException(
                f"Password must be at least {self.settings.PASSWORD_MIN_LENGTH} characters"
            )
        if await self.get_profile_by_manifesto(request.manifesto):
            raise BadRequestException("Manifesto already taken", error_code="MANIFESTO_TAKEN")

        try:
            result = await self.identity.sign_up(
                request.email,
                request.password,
                data={"manifesto": request.manifesto, "barcode": request.barcode},
            )
        except IdentityError as e:
            raise UpstreamException(e.message)

        # Auto-confirmed projects answer with a session, others with the bare user
        user = result.get("user") or result
        user_id = user.get("id")
        if not user_id:
            raise UpstreamException("Signup did not return a user", status_code=500)

        profile = await self.db.get(Profile, user_id)
        if profile is None:
            profile = Profile(user_id=user_id, shipping_addresses=[])
            self.db.add(profile)
        profile.email = request.email
        profile.manifesto = request.manifesto
        profile.barcode = request.barcode
        await self.db.commit()

        logger.info(f"Signed up user {user_id}")
        response: Dict[str, Any] = {
            "message": "Signup successful",
            "user": {"id": user_id, "email": request.email, "manifesto": request.manifesto, "barcode": request.barcode},
        }
        if result.get("access_token"):
            response["session"] = _session_tokens(result)
        else:
            response["message"] = "Signup successful, please verify your email"
        return response

    async def check_availability(self, email: Optional[str], manifesto: Optional[str]) -> Dict[str, bool]:
        availability: Dict[str, bool] = {}
        if email is not None:
            availability["emailAvailable"] = await self.get_profile_by_email(email.strip()) is None
        if manifesto is not None:
            manifesto = manifesto.strip()
            availability["manifestoAvailable"] = bool(manifesto) and await self.get_profile_by_manifesto(manifesto) is None
        return availability

    async def request_password_reset(self, email: str) -> Dict[str, str]:
        """Send a reset link when the account exists; the answer never says which"""
        profile = await self.get_profile_by_email(email)
        if profile is None:
            logger.info("Password reset requested for unknown email")
            return {"message": RESET_MESSAGE}

        query = urlencode({"type": "password_update", "email": email})
        redirect_to = f"{self.settings.FRONTEND_URL.rstrip('/')}/?{query}"
        try:
            await self.identity.reset_password_for_email(email, redirect_to=redirect_to)
        except IdentityError as e:
            logger.error(f"Failed to send reset email: {e.message}")
        return {"message": RESET_MESSAGE}

    async def resend_verification(self, email: str) -> Dict[str, str]:
        """Resend the signup confirmation; like password reset, the answer never says whether it went out"""
        try:
            await self.identity.resend_signup(email, redirect_to=self.settings.FRONTEND_URL)
        except IdentityError as e:
            logger.warning(f"Failed to resend verification email: {e.message}")
        return {"message": RESEND_MESSAGE}

    async def update_password(self, user: dict, password: str) -> Dict[str, str]:
        if len(password or "") < self.settings.PASSWORD_MIN_LENGTH:
            raise BadRequestException(
                f"Password must be at least {self.settings.PASSWORD_MIN_LENGTH} characters"
            )
        try:
            await self.identity.admin_update_user(user["id"], {"password": password})
        except IdentityError as e:
            raise UpstreamException(e.message)
        logger.info(f"Password updated for user {user['id']}")
        return {"message": "Password updated successfully"}

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        try:
            session = await self.identity.refresh_session(refresh_token)
        except IdentityError as e:
            if e.is_rejection:
                raise InvalidTokenException("Invalid refresh token")
            raise UpstreamException(e.message, status_code=500)
        return _session_tokens(session)

    async def logout(self, token: str) -> Dict[str, str]:
        try:
            await self.identity.sign_out(token)
        except IdentityError as e:
            logger.warning(f"Session revocation failed: {e.message}")
        return {"message": "Logged out successfully"}

"""
Authentication API routes
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from manifesto.core.config import Settings
from manifesto.core.context import get_identity, get_settings_dep
from manifesto.core.database import get_db
from manifesto.core.rate_limit import auth_limiter
from manifesto.services.identity import IdentityClient
from .dependencies import get_bearer_token, get_current_user
from .schemas import (
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    RefreshTokenRequest,
    ResendVerificationRequest,
    SessionTokens,
    SignupRequest,
    SignupResponse,
    UpdatePasswordRequest,
    VerifyTokenResponse,
)
from .services import AuthService

router = APIRouter()


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    identity: IdentityClient = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
) -> AuthService:
    return AuthService(db, identity, settings)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in with email or manifesto",
)
@auth_limiter
async def login(
    request: Request,
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Resolve a manifesto handle to its email, then sign in"""
    return await service.login(payload)


@router.post(
    "/signup",
    response_model=SignupResponse,
    response_model_exclude_none=True,
    summary="Create an account",
)
@auth_limiter
async def signup(
    request: Request,
    payload: SignupRequest,
    service: AuthService = Depends(get_auth_service),
):
    return await service.signup(payload)


@router.get("/check-availability", summary="Check whether an email or manifesto is free")
async def check_availability(
    email: Optional[str] = Query(None),
    manifesto: Optional[str] = Query(None),
    service: AuthService = Depends(get_auth_service),
):
    return await service.check_availability(email, manifesto)


@router.post("/password-reset", summary="Request a password reset email")
@auth_limiter
async def password_reset(
    request: Request,
    payload: PasswordResetRequest,
    service: AuthService = Depends(get_auth_service),
):
    return await service.request_password_reset(payload.email)


@router.post("/resend-verification", summary="Resend the signup confirmation email")
@auth_limiter
async def resend_verification(
    request: Request,
    payload: ResendVerificationRequest,
    service: AuthService = Depends(get_auth_service),
):
    return await service.resend_verification(payload.email)


@router.post("/update-password", summary="Set a new password for the current user")
async def update_password(
    payload: UpdatePasswordRequest,
    current_user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await service.update_password(current_user, payload.password)


@router.get("/verify-token", response_model=VerifyTokenResponse)
async def verify_token(current_user: dict = Depends(get_current_user)):
    return {"valid": True, "user": current_user}


@router.post("/refresh", response_model=SessionTokens, status_code=status.HTTP_200_OK)
async def refresh_token(
    payload: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Exchange a refresh token for a new token pair"""
    return await service.refresh(payload.refresh_token)


@router.post("/logout")
async def logout(
    token: str = Depends(get_bearer_token),
    current_user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await service.logout(token)

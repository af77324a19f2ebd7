"""
Authentication schemas for request/response validation
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, Dict, Any


def normalize_manifesto(v: str) -> str:
    """Trim a manifesto handle and reject blank ones"""
    v = (v or "").strip()
    if not v:
        raise ValueError("Manifesto must not be empty")
    return v


class LoginRequest(BaseModel):
    """Login with either an email address or a manifesto handle"""
    email_or_manifesto: str = Field(..., alias="emailOrManifesto", min_length=1)
    password: str = Field(..., min_length=1)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "emailOrManifesto": "night_owl",
                "password": "correct horse battery"
            }
        }
    }

    @field_validator("email_or_manifesto")
    @classmethod
    def strip_identifier(cls, v):
        return v.strip()

    @property
    def is_email(self) -> bool:
        return "@" in self.email_or_manifesto


class SignupRequest(BaseModel):
    """User registration request"""
    email: EmailStr
    password: str = Field(..., min_length=1)
    manifesto: str = Field(..., max_length=100)
    barcode: str = Field(..., min_length=1, max_length=64)

    @field_validator("manifesto")
    @classmethod
    def validate_manifesto(cls, v):
        return normalize_manifesto(v)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class UpdatePasswordRequest(BaseModel):
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)

    model_config = {"populate_by_name": True}


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    manifesto: Optional[str] = None
    barcode: Optional[str] = None


class SessionTokens(BaseModel):
    token: str
    refresh_token: Optional[str] = Field(None, serialization_alias="refreshToken")
    expires_at: Optional[int] = Field(None, serialization_alias="expiresAt")


class LoginResponse(SessionTokens):
    user: AuthUser


class SignupResponse(BaseModel):
    message: str
    user: AuthUser
    session: Optional[SessionTokens] = None


class VerifyTokenResponse(BaseModel):
    valid: bool = True
    user: Dict[str, Any]

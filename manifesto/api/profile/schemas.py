"""
Profile schemas for request/response validation
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from manifesto.api.auth.schemas import normalize_manifesto


class ManifestoUpdate(BaseModel):
    manifesto: str = Field(..., max_length=100)

    @field_validator("manifesto")
    @classmethod
    def check_manifesto(cls, v):
        return normalize_manifesto(v)


class AddressIn(BaseModel):
    """Shipping address as stored in the profile's address list"""
    full_name: str = Field(..., alias="fullName", min_length=1)
    phone: str = Field(..., min_length=1, max_length=32)
    email: EmailStr
    address1: str = Field(..., min_length=1)
    address2: str = ""
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., alias="zipCode", min_length=1, max_length=20)
    country: str = Field(..., min_length=1)
    is_default: bool = Field(False, alias="isDefault")

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    @field_validator("address2", mode="before")
    @classmethod
    def blank_address2(cls, v):
        return v or ""

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

from spotted.core.constants import PayoutMethod


def _password_fits_bcrypt(v: str) -> str:
    # bcrypt's limit is in bytes, not characters
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes when UTF-8 encoded")
    return v


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    full_name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]] = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v):
        return _password_fits_bcrypt(v)

    @field_validator("full_name")
    @classmethod
    def empty_str_to_none(cls, v):
        if v == "":
            return None
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)
    remember: bool = False

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v):
        return _password_fits_bcrypt(v)


class ProfileOut(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    bank_last4: Optional[str] = None
    payout_method: str
    notifications_report_updates: bool
    notifications_payment_received: bool
    notifications_weekly_digest: bool
    notifications_new_features: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]] = None
    phone: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=20)]] = None
    bank_last4: Optional[Annotated[str, StringConstraints(pattern=r"^\d{4}$")]] = None
    payout_method: Optional[PayoutMethod] = None
    notifications_report_updates: Optional[bool] = None
    notifications_payment_received: Optional[bool] = None
    notifications_weekly_digest: Optional[bool] = None
    notifications_new_features: Optional[bool] = None


class AuthResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    profile: ProfileOut


class CurrentUserResponse(BaseModel):
    authenticated: bool
    user_id: str
    profile: ProfileOut

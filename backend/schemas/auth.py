from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from schemas.validation import FullNameStr, NormalizedEmail, PhoneStr


class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class ProfileIn(BaseModel):
    # Unknown keys, including the feedback-owned wellness snapshot, are dropped.
    model_config = ConfigDict(extra="ignore")

    date_of_birth: date | None = None
    gender: Literal["male", "female", "other"] | None = None
    address: Address | None = None
    medical_history: list[str] | None = None
    preferences: dict[str, Any] | None = None


class SignupRequest(BaseModel):
    full_name: FullNameStr
    email: NormalizedEmail
    password: str = Field(..., min_length=6)
    phone: PhoneStr
    account_type: Literal["patient", "practitioner"] = "patient"
    profile: ProfileIn | None = None
    practitioner_info: dict[str, Any] | None = None


class LoginRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., min_length=6)
    remember_me: bool = False


class ProfileUpdate(BaseModel):
    # Extra keys are accepted so the service can report which were ignored.
    model_config = ConfigDict(extra="allow")

    full_name: FullNameStr | None = None
    phone: PhoneStr | None = None
    profile: ProfileIn | None = None
    practitioner_info: dict[str, Any] | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class WellnessMetrics(BaseModel):
    sleep_quality: int = 0
    energy_level: int = 0
    overall_wellness: int = 0
    last_updated: str | None = None


class AccountOut(BaseModel):
    id: str
    email: str
    full_name: str
    phone: str
    account_type: str  # patient | practitioner
    is_active: bool
    is_email_verified: bool
    last_login: str | None = None
    profile: dict[str, Any]
    practitioner_info: dict[str, Any] | None = None
    created_at: str
    updated_at: str


class AuthResponse(BaseModel):
    message: str
    account: AccountOut
    token: str


class AccountResponse(BaseModel):
    account: AccountOut


class ProfileUpdateResponse(BaseModel):
    message: str
    account: AccountOut


class MessageResponse(BaseModel):
    message: str

"""Authentication and account schemas."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, EmailStr, Field

from telemed.schemas.common import CamelModel, DateStr
from telemed.schemas.doctors import DoctorResponse


class UserRole(str, Enum):
    """User role enumeration."""

    USER = "user"
    DOCTOR = "doctor"
    ADMIN = "admin"


class RegisterRole(str, Enum):
    """Roles open to self-registration."""

    USER = "user"
    DOCTOR = "doctor"


class RegisterRequest(CamelModel):
    """Registration payload."""

    email: EmailStr
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
    phone: str | None = Field(None, max_length=20)
    role: RegisterRole = RegisterRole.USER
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    date_of_birth: DateStr | None = None
    gender: str | None = Field(None, max_length=20)


class LoginRequest(CamelModel):
    """Login payload."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(CamelModel):
    """Partial update of the caller's profile."""

    first_name: str | None = Field(None, min_length=1)
    last_name: str | None = Field(None, min_length=1)
    date_of_birth: DateStr | None = None
    gender: str | None = Field(None, max_length=20)
    address: str | None = None
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    pincode: str | None = Field(None, max_length=20)
    profile_image_url: AnyHttpUrl | None = None


class UserStatusUpdate(CamelModel):
    """Admin activation toggle."""

    is_active: bool


class AuthUser(BaseModel):
    """User summary returned with a token."""

    id: UUID
    email: str
    role: UserRole


class AuthPayload(BaseModel):
    """Register/login result."""

    user: AuthUser
    token: str


class ProfileResponse(BaseModel):
    """Profile fields of a user."""

    first_name: str
    last_name: str
    date_of_birth: date | None = None
    gender: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    profile_image_url: str | None = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    """User account without credentials."""

    id: UUID
    email: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    email_verified: bool
    phone_verified: bool
    last_login: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MeResponse(UserResponse):
    """Caller's account with profile and, for doctors, doctor record."""

    profile: ProfileResponse | None = None
    doctor_info: DoctorResponse | None = None

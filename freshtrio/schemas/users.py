"""User schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class Role(str, Enum):
    """User role. Every sign-up path creates customers."""

    CUSTOMER = "CUSTOMER"
    DRIVER = "DRIVER"
    ADMIN = "ADMIN"


class AuthProvider(str, Enum):
    """Identity provider linked to a user."""

    EMAIL = "EMAIL"
    GOOGLE = "GOOGLE"
    FACEBOOK = "FACEBOOK"
    APPLE = "APPLE"


class UserCreate(BaseModel):
    """Schema for inserting a new user row."""

    email: str
    password_hash: str | None = None
    phone: str | None = Field(None, max_length=20)
    first_name: str | None = None
    last_name: str | None = None
    auth_provider: AuthProvider = AuthProvider.EMAIL
    provider_subject_id: str | None = None
    role: Role = Role.CUSTOMER
    is_verified: bool = False
    gdpr_consent: bool = False
    gdpr_consent_date: datetime | None = None


class UserUpdate(BaseModel):
    """Schema for updating the user's own profile."""

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=20)


class UserResponse(BaseModel):
    """Full user profile for API responses."""

    id: UUID
    email: EmailStr
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: Role
    auth_provider: AuthProvider
    is_verified: bool
    gdpr_consent: bool
    gdpr_consent_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

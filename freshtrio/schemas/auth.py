"""Authentication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, validate_email

from freshtrio.schemas.users import Role


class RegisterRequest(BaseModel):
    """Email/password registration request."""

    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=20)
    gdpr_consent: bool = False


class LoginRequest(BaseModel):
    """Email/password login request."""

    email: EmailStr
    password: str


class GoogleAuthRequest(BaseModel):
    """Google ID token sign-in request."""

    id_token: str = Field(..., min_length=1, description="Google ID token from the client")
    first_name: str | None = None
    last_name: str | None = None
    picture_url: str | None = None


class FirebaseAuthRequest(BaseModel):
    """Firebase ID token sign-in request."""

    id_token: str = Field(..., min_length=1, description="Firebase ID token from the mobile app")


class ClientProfile(BaseModel):
    """Profile fields the client sends alongside a federated token."""

    first_name: str | None = None
    last_name: str | None = None
    picture_url: str | None = None


class ClaimSet(BaseModel):
    """Verified identity facts extracted from a federated identity token."""

    subject_id: str
    email: str | None = None
    display_name: str | None = None
    phone_number: str | None = None
    # "google.com", "facebook.com", "apple.com" or the "email" fallback
    provider_name: str = "email"

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        """Normalise like `EmailStr` so claims and registrations share one key."""
        if value is None or not value.strip():
            return None
        try:
            return validate_email(value.strip())[1]
        except ValueError:
            # Provider-asserted but not RFC-valid; matched as given
            return value.strip()


class TokenClaims(BaseModel):
    """Decoded session token."""

    subject: str
    role: Role
    expires_at: datetime
    provider_subject_id: str | None = None


class UserSummary(BaseModel):
    """User summary returned with every auth response."""

    id: UUID
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    role: str


class AuthResponse(BaseModel):
    """Session token and the user it belongs to."""

    access_token: str
    token_type: str = "bearer"
    user: UserSummary

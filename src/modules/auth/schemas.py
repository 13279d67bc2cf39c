"""
Auth Module - Pydantic Schemas (DTOs)
NEVER expose SQLAlchemy models directly in API responses.
Always map them to Pydantic Schemas using model_validate.
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ============== Token Schemas ==============

class Token(BaseModel):
    """JWT Token response."""
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# ============== User Schemas ==============

class UserBase(BaseModel):
    """Base user schema."""
    email: EmailStr
    full_name: str | None = None
    phone: str | None = None


class RegisterRequest(UserBase):
    """Self-service registration."""
    password: str = Field(..., min_length=8, max_length=100)
    language: str = Field(default="en", max_length=10)


class ProfileUpdateRequest(BaseModel):
    """Fields a user may change on their own profile."""
    full_name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    language: str | None = Field(None, max_length=10, examples=["en", "zh-TW"])


class UserResponse(UserBase):
    """User response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    language: str
    is_active: bool
    is_admin: bool
    created_at: datetime
    last_login: datetime | None = None


class UserSummary(BaseModel):
    """Compact user reference embedded in other responses."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: EmailStr
    full_name: str | None = None

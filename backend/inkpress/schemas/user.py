"""
Inkpress Backend — User & Auth Schemas
=======================================

What:  Request bodies for register/login/profile/password and the public
       user representations returned by the API.
Why:   Validation rules live next to the fields they guard; error messages
       are phrased for direct display in the client's forms.

Password policy (register and change-password):
    at least 6 characters, with one upper-case letter, one lower-case
    letter and one digit.
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, field_validator
from pydantic_core import PydanticCustomError

from inkpress.schemas.common import CamelModel

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def check_password_strength(value: str) -> str:
    if len(value) < 6:
        raise PydanticCustomError(
            "password_length", "Password must be at least 6 characters long"
        )
    if not (
        re.search(r"[a-z]", value)
        and re.search(r"[A-Z]", value)
        and re.search(r"\d", value)
    ):
        raise PydanticCustomError(
            "password_strength",
            "Password must contain at least one uppercase letter, one lowercase letter, and one number",
        )
    return value


def check_name(value: str, label: str) -> str:
    value = value.strip()
    if not 1 <= len(value) <= 50:
        raise PydanticCustomError("name_length", f"{label} must be between 1 and 50 characters")
    return value


def check_username(value: str) -> str:
    value = value.strip()
    if not 3 <= len(value) <= 30:
        raise PydanticCustomError(
            "username_length", "Username must be between 3 and 30 characters"
        )
    if not USERNAME_RE.match(value):
        raise PydanticCustomError(
            "username_chars", "Username can only contain letters, numbers, and underscores"
        )
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(CamelModel):
    username: str
    email: EmailStr
    password: str
    first_name: str
    last_name: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str) -> str:
        return check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str) -> str:
        return check_name(v, "Last name")


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def require_password(cls, v: str) -> str:
        if not v:
            raise PydanticCustomError("password_required", "Password is required")
        return v


class ProfileUpdateRequest(CamelModel):
    """All fields optional; only the ones sent are changed."""

    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        return check_username(v) if v is not None else v

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: Optional[str]) -> Optional[str]:
        return check_name(v, "First name") if v is not None else v

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: Optional[str]) -> Optional[str]:
        return check_name(v, "Last name") if v is not None else v

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v.strip()) > 500:
            raise PydanticCustomError("bio_length", "Bio cannot be more than 500 characters")
        return v.strip() if v is not None else v


class PasswordChangeRequest(CamelModel):
    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def require_current(cls, v: str) -> str:
        if not v:
            raise PydanticCustomError("password_required", "Current password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AuthorSummary(CamelModel):
    """Compact user shown on posts and comments (no email, no role)."""

    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    avatar: str


class UserOut(CamelModel):
    """The caller's own account, as returned by the auth endpoints."""

    id: uuid.UUID
    username: str
    email: str
    first_name: str
    last_name: str
    bio: Optional[str] = None
    avatar: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class AuthPayload(CamelModel):
    token: str
    user: UserOut

"""
Inkpress Backend — Category Schemas
====================================

Create requires a name; update treats every field as optional and only
changes what is sent.
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import field_validator
from pydantic_core import PydanticCustomError

from inkpress.schemas.common import CamelModel

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _check_name(v: str) -> str:
    v = v.strip()
    if not 1 <= len(v) <= 50:
        raise PydanticCustomError(
            "category_name", "Category name must be between 1 and 50 characters"
        )
    return v


def _check_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if len(v) > 200:
        raise PydanticCustomError(
            "description_length", "Description cannot be more than 200 characters"
        )
    return v


def _check_color(v: Optional[str]) -> Optional[str]:
    if v is not None and not HEX_COLOR_RE.match(v):
        raise PydanticCustomError("color", "Color must be a valid hex color code")
    return v


class CategoryCreate(CamelModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _check_description(v)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        return _check_color(v)


class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _check_name(v) if v is not None else v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _check_description(v)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        return _check_color(v)


class CategorySummary(CamelModel):
    """Category as embedded in a post."""

    id: uuid.UUID
    name: str
    slug: str
    color: str
    icon: Optional[str] = None


class CategoryOut(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    color: str
    icon: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

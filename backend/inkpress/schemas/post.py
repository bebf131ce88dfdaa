"""
Inkpress Backend — Post & Comment Schemas
==========================================

What:  Form/body models for creating and updating posts and comments, and
       the post document returned by every post endpoint.
Why:   Posts arrive as multipart form data (so an image can ride along);
       every form value is a string, so these models do the coercion:
       - `tags`: JSON array string (`["python","web"]`) or comma-separated text
       - `isPublished`: "true"/"false"
       - `category`: UUID string

Response document:
    PostOut mirrors the shape the client expects: populated `author` and
    `category`, `tags` as plain strings, embedded `comments`, plus the
    derived `imageUrl` and `commentCount`.
"""

import json
import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, computed_field, field_validator
from pydantic_core import PydanticCustomError

from inkpress.models.post import DEFAULT_FEATURED_IMAGE
from inkpress.schemas.category import CategoryOut, CategorySummary
from inkpress.schemas.common import CamelModel, Pagination
from inkpress.schemas.user import AuthorSummary

MAX_TAG_LENGTH = 20


def parse_tags(value: Any) -> List[str]:
    """Normalizes the tag input into a de-duplicated list of trimmed strings."""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                value = json.loads(text)
            except json.JSONDecodeError:
                raise PydanticCustomError("tags_array", "Tags must be an array")
        else:
            value = text.split(",")
    if not isinstance(value, list):
        raise PydanticCustomError("tags_array", "Tags must be an array")

    tags: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise PydanticCustomError(
                "tag_length", "Each tag must be between 1 and 20 characters"
            )
        item = item.strip()
        if not item:
            continue
        if len(item) > MAX_TAG_LENGTH:
            raise PydanticCustomError(
                "tag_length", "Each tag must be between 1 and 20 characters"
            )
        if item not in tags:
            tags.append(item)
    return tags


def _check_title(v: str) -> str:
    v = v.strip()
    if not 1 <= len(v) <= 100:
        raise PydanticCustomError("title_length", "Title must be between 1 and 100 characters")
    return v


def _check_content(v: str) -> str:
    v = v.strip()
    if len(v) < 10:
        raise PydanticCustomError(
            "content_length", "Content must be at least 10 characters long"
        )
    return v


def _check_excerpt(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if len(v) > 200:
        raise PydanticCustomError(
            "excerpt_length", "Excerpt cannot be more than 200 characters"
        )
    return v or None


def _check_category(v: Any) -> uuid.UUID:
    if isinstance(v, uuid.UUID):
        return v
    try:
        return uuid.UUID(str(v).strip())
    except (TypeError, ValueError):
        raise PydanticCustomError("category_id", "Please provide a valid category ID")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostCreate(CamelModel):
    title: str
    content: str
    excerpt: Optional[str] = None
    category: uuid.UUID
    tags: List[str] = Field(default_factory=list)
    is_published: bool = False

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _check_title(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _check_content(v)

    @field_validator("excerpt")
    @classmethod
    def validate_excerpt(cls, v: Optional[str]) -> Optional[str]:
        return _check_excerpt(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> uuid.UUID:
        return _check_category(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> List[str]:
        return parse_tags(v)


class PostUpdate(CamelModel):
    """Partial update: fields left as None are not touched."""

    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    category: Optional[uuid.UUID] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _check_title(v) if v is not None else v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> Optional[str]:
        return _check_content(v) if v is not None else v

    @field_validator("excerpt")
    @classmethod
    def validate_excerpt(cls, v: Optional[str]) -> Optional[str]:
        # An explicit empty excerpt clears it, so keep "" distinguishable from None
        if v is None:
            return None
        return _check_excerpt(v) or ""

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Optional[uuid.UUID]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return _check_category(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> Optional[List[str]]:
        return parse_tags(v) if v is not None else None


class CommentCreate(CamelModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not 1 <= len(v) <= 1000:
            raise PydanticCustomError(
                "comment_length", "Comment must be between 1 and 1000 characters"
            )
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CommentOut(CamelModel):
    id: uuid.UUID
    content: str
    user: AuthorSummary
    created_at: datetime


class PostOut(CamelModel):
    id: uuid.UUID
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    featured_image: str
    is_published: bool
    view_count: int
    tags: List[str] = Field(default_factory=list)
    author: AuthorSummary
    category: CategorySummary
    comments: List[CommentOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def flatten_tags(cls, v: Any) -> Any:
        # ORM side holds PostTag rows; the API exposes their names
        if isinstance(v, list):
            return [getattr(tag, "name", tag) for tag in v]
        return v

    @computed_field(alias="imageUrl")
    @property
    def image_url(self) -> Optional[str]:
        if not self.featured_image or self.featured_image == DEFAULT_FEATURED_IMAGE:
            return None
        return f"/uploads/{self.featured_image}"

    @computed_field(alias="commentCount")
    @property
    def comment_count(self) -> int:
        return len(self.comments)


class PostListResponse(CamelModel):
    success: bool = True
    data: List[PostOut]
    pagination: Pagination


class CategoryPostsData(CamelModel):
    category: CategoryOut
    posts: List[PostOut]
    pagination: Pagination

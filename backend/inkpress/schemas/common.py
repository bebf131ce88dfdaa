"""
Inkpress Backend — Shared Pydantic Schemas
===========================================

What:  Base model, response envelopes, pagination and error schemas shared
       by every resource.
Why:   The client consumes camelCase JSON wrapped in `{success, data}`;
       defining that shape once keeps every endpoint consistent.

Envelope shapes:
    Success:  {"success": true, "data": ..., "pagination": {...}?}
    Message:  {"success": true, "message": "Post deleted successfully"}
    Error:    {"success": false, "error": "...", "errors": [...]?, "requestId": "..."}
"""

import math
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    Base for all API schemas.

    - Serializes snake_case attributes as camelCase (`is_published` → `isPublished`)
    - Accepts either spelling on input
    - Reads ORM objects directly (`from_attributes`)
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DataResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class Pagination(CamelModel):
    """
    Page-number pagination metadata.

    total_pages = ceil(total / limit); a page past the end yields an empty
    list with has_next_page = False.
    """

    current_page: int
    total_pages: int
    total_posts: int
    posts_per_page: int
    has_next_page: bool
    has_prev_page: bool
    query: Optional[str] = Field(default=None, description="Echoed search text (search only)")

    @classmethod
    def build(cls, page: int, limit: int, total: int, query: Optional[str] = None) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_posts=total,
            posts_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
            query=query,
        )


class FieldError(CamelModel):
    field: str
    message: str
    value: Optional[Any] = None


class ErrorResponse(CamelModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "success": false,
            "error": "Not authorized to update this post",
            "requestId": "1f3c9a2b"
        }
    """

    success: bool = False
    error: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldError]] = Field(default=None, description="Per-field validation errors")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


def error_body(
    message: str,
    request_id: str = "",
    errors: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Builds the JSON error envelope used by exception handlers and middleware."""
    body = ErrorResponse(
        error=message,
        errors=[FieldError(**e) for e in errors] if errors else None,
        request_id=request_id or None,
    )
    return body.model_dump(by_alias=True, exclude_none=True, mode="json")

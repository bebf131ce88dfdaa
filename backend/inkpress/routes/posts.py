"""
Inkpress Backend — Post Route Handlers
=======================================

What:  Public listing/search/reading of posts, authoring for signed-in users,
       and comments.
How:   Create and update accept multipart form data so an `image` file can
       travel with the fields. Form values are collected into PostCreate /
       PostUpdate; their validation errors reach the global handler and
       become the 400 `errors` envelope.

Route order matters: `/search` and `/my-posts` are declared before
`/{id_or_slug}` so they are not captured as slugs.
"""

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.database import get_db_session
from inkpress.dependencies import get_current_user
from inkpress.models.user import User
from inkpress.schemas.common import DataResponse, ErrorResponse, MessageResponse
from inkpress.schemas.post import (
    CommentCreate,
    PostCreate,
    PostListResponse,
    PostOut,
    PostUpdate,
)
from inkpress.services.file_service import ImageUpload, file_service
from inkpress.services.post_service import post_service

router = APIRouter(prefix="/api/posts", tags=["Posts"])


async def _read_image(image: Optional[UploadFile]) -> Optional[ImageUpload]:
    """
    Reads the optional `image` part; an empty file input counts as no image.
    An upload reporting more than MAX_FILE_SIZE is refused unread.
    """
    if image is None or not image.filename:
        return None
    file_service.check_declared_size(image.size)
    content = await image.read()
    return ImageUpload(filename=image.filename, content=content, content_length=image.size)


def _form_fields(**fields: Optional[str]) -> Dict[str, Any]:
    """Drops form fields the client did not send."""
    return {name: value for name, value in fields.items() if value is not None}


# ══════════════════════════════════════════════════════════════════════════
# Reading
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "",
    response_model=PostListResponse,
    responses={400: {"description": "Invalid query parameters", "model": ErrorResponse}},
    summary="List published posts",
)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    category: Optional[uuid.UUID] = Query(default=None, description="Category id"),
    author: Optional[uuid.UUID] = Query(default=None, description="Author id"),
    search: Optional[str] = Query(default=None, max_length=100),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    return await post_service.list_posts(
        db,
        page=page,
        limit=limit,
        category=category,
        author=author,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/search",
    response_model=PostListResponse,
    responses={400: {"description": "Missing search query", "model": ErrorResponse}},
    summary="Full-text search over published posts",
)
async def search_posts(
    q: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    return await post_service.search_posts(db, q, page=page, limit=limit)


@router.get(
    "/my-posts",
    response_model=PostListResponse,
    responses={401: {"description": "Not signed in", "model": ErrorResponse}},
    summary="The signed-in user's posts, drafts included",
)
async def my_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    return await post_service.list_user_posts(db, user, page=page, limit=limit)


@router.get(
    "/{id_or_slug}",
    response_model=DataResponse[PostOut],
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Read a post by id or slug",
)
async def get_post(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[PostOut]:
    post = await post_service.get_post(db, id_or_slug)
    return DataResponse[PostOut](data=post)


# ══════════════════════════════════════════════════════════════════════════
# Authoring
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[PostOut],
    responses={
        400: {"description": "Invalid fields or image", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
    },
    summary="Create a post (multipart form)",
)
async def create_post(
    title: Optional[str] = Form(default=None),
    content: Optional[str] = Form(default=None),
    excerpt: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None, description='JSON array or "a,b,c"'),
    is_published: Optional[str] = Form(default=None, alias="isPublished"),
    image: Optional[UploadFile] = File(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[PostOut]:
    data = PostCreate.model_validate(
        _form_fields(
            title=title,
            content=content,
            excerpt=excerpt,
            category=category,
            tags=tags,
            isPublished=is_published,
        )
    )
    post = await post_service.create_post(db, user, data, image=await _read_image(image))
    return DataResponse[PostOut](data=post)


@router.put(
    "/{post_id}",
    response_model=DataResponse[PostOut],
    responses={
        400: {"description": "Invalid fields or image", "model": ErrorResponse},
        403: {"description": "Not the author or an admin", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Update a post (multipart form, partial)",
)
async def update_post(
    post_id: uuid.UUID,
    title: Optional[str] = Form(default=None),
    content: Optional[str] = Form(default=None),
    excerpt: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    is_published: Optional[str] = Form(default=None, alias="isPublished"),
    image: Optional[UploadFile] = File(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[PostOut]:
    data = PostUpdate.model_validate(
        _form_fields(
            title=title,
            content=content,
            excerpt=excerpt,
            category=category,
            tags=tags,
            isPublished=is_published,
        )
    )
    post = await post_service.update_post(
        db, user, post_id, data, image=await _read_image(image)
    )
    return DataResponse[PostOut](data=post)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the author or an admin", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Delete a post",
)
async def delete_post(
    post_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await post_service.delete_post(db, user, post_id)
    return MessageResponse(message="Post deleted successfully")


@router.post(
    "/{post_id}/comments",
    response_model=DataResponse[PostOut],
    responses={
        400: {"description": "Invalid comment", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Comment on a post",
)
async def add_comment(
    post_id: uuid.UUID,
    body: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[PostOut]:
    post = await post_service.add_comment(db, user, post_id, body)
    return DataResponse[PostOut](data=post)

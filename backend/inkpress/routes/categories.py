"""
Inkpress Backend — Category Route Handlers
===========================================

What:  Public category listing/lookup and the per-category post feed;
       admin-only create, update and delete.

Endpoints:
    GET    /api/categories                    → active categories
    GET    /api/categories/{id_or_slug}       → one category
    GET    /api/categories/{id_or_slug}/posts → {category, posts, pagination}
    POST   /api/categories                    → 201 (admin)
    PUT    /api/categories/{category_id}      → (admin)
    DELETE /api/categories/{category_id}      → (admin; 400 while posts use it)
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.database import get_db_session
from inkpress.dependencies import require_roles
from inkpress.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from inkpress.schemas.common import DataResponse, ErrorResponse, MessageResponse
from inkpress.schemas.post import CategoryPostsData
from inkpress.services.category_service import category_service

router = APIRouter(prefix="/api/categories", tags=["Categories"])

admin_only = [Depends(require_roles("admin"))]

ADMIN_ERRORS = {
    401: {"description": "Not signed in", "model": ErrorResponse},
    403: {"description": "Admin role required", "model": ErrorResponse},
}


@router.get("", response_model=DataResponse[List[CategoryOut]], summary="List active categories")
async def list_categories(
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[List[CategoryOut]]:
    categories = await category_service.list_categories(db)
    return DataResponse[List[CategoryOut]](data=categories)


@router.get(
    "/{id_or_slug}",
    response_model=DataResponse[CategoryOut],
    responses={404: {"description": "Category not found", "model": ErrorResponse}},
    summary="Read a category by id or slug",
)
async def get_category(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[CategoryOut]:
    category = await category_service.get_category(db, id_or_slug)
    return DataResponse[CategoryOut](data=category)


@router.get(
    "/{id_or_slug}/posts",
    response_model=DataResponse[CategoryPostsData],
    responses={404: {"description": "Category not found", "model": ErrorResponse}},
    summary="Published posts in a category",
)
async def list_category_posts(
    id_or_slug: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[CategoryPostsData]:
    result = await category_service.list_posts_by_category(db, id_or_slug, page=page, limit=limit)
    return DataResponse[CategoryPostsData](data=result)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[CategoryOut],
    dependencies=admin_only,
    responses={**ADMIN_ERRORS, 409: {"description": "Name taken", "model": ErrorResponse}},
    summary="Create a category",
)
async def create_category(
    body: CategoryCreate,
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[CategoryOut]:
    category = await category_service.create_category(db, body)
    return DataResponse[CategoryOut](data=category)


@router.put(
    "/{category_id}",
    response_model=DataResponse[CategoryOut],
    dependencies=admin_only,
    responses={
        **ADMIN_ERRORS,
        404: {"description": "Category not found", "model": ErrorResponse},
        409: {"description": "Name taken", "model": ErrorResponse},
    },
    summary="Update a category",
)
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[CategoryOut]:
    category = await category_service.update_category(db, category_id, body)
    return DataResponse[CategoryOut](data=category)


@router.delete(
    "/{category_id}",
    response_model=MessageResponse,
    dependencies=admin_only,
    responses={
        **ADMIN_ERRORS,
        400: {"description": "Category still has posts", "model": ErrorResponse},
        404: {"description": "Category not found", "model": ErrorResponse},
    },
    summary="Delete an unused category",
)
async def delete_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await category_service.delete_category(db, category_id)
    return MessageResponse(message="Category deleted successfully")

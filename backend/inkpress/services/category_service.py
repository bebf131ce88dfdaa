"""
Inkpress Backend — Category Service
====================================

What:  CRUD for categories plus the paginated "posts in this category" view.
Who:   Called by routes/categories.py. Create/update/delete are admin-only;
       the route layer enforces the role, this layer enforces data rules.

Data rules:
    - names are unique (case-insensitive) → ConflictError, also when the
      unique index rejects a concurrent insert
    - the slug follows the name
    - a category referenced by any post cannot be deleted → ValidationError
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.exceptions import ConflictError, NotFoundError, ValidationError
from inkpress.models.category import Category, DEFAULT_CATEGORY_COLOR
from inkpress.models.post import Post
from inkpress.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from inkpress.schemas.post import CategoryPostsData
from inkpress.services.post_service import post_service
from inkpress.services.slugs import parse_uuid, unique_slug

logger = logging.getLogger(__name__)


class CategoryService:

    async def _get_by_id_or_slug(self, db: AsyncSession, id_or_slug: str) -> Category:
        category_id = parse_uuid(id_or_slug)
        if category_id is not None:
            query = select(Category).where(Category.id == category_id)
        else:
            query = select(Category).where(Category.slug == id_or_slug.lower())
        result = await db.execute(query)
        category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundError(resource="category", resource_id=id_or_slug)
        return category

    async def _get_by_id(self, db: AsyncSession, category_id: uuid.UUID) -> Category:
        category = await db.get(Category, category_id)
        if category is None:
            raise NotFoundError(resource="category", resource_id=str(category_id))
        return category

    async def _ensure_name_free(
        self, db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        query = select(Category.id).where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        result = await db.execute(query)
        if result.first() is not None:
            raise ConflictError(message="Category with this name already exists", field="name")

    async def _flush_named(self, db: AsyncSession) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            logger.info("Category write hit a unique index: %s", e.orig)
            raise ConflictError(message="Category with this name already exists", field="name")

    async def list_categories(self, db: AsyncSession) -> List[CategoryOut]:
        """Active categories, alphabetical."""
        result = await db.execute(
            select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
        )
        return [CategoryOut.model_validate(c) for c in result.scalars().all()]

    async def get_category(self, db: AsyncSession, id_or_slug: str) -> CategoryOut:
        return CategoryOut.model_validate(await self._get_by_id_or_slug(db, id_or_slug))

    async def create_category(self, db: AsyncSession, data: CategoryCreate) -> CategoryOut:
        await self._ensure_name_free(db, data.name)

        category = Category(
            name=data.name,
            slug=await unique_slug(db, Category, data.name, fallback="category"),
            description=data.description,
            color=data.color or DEFAULT_CATEGORY_COLOR,
            icon=data.icon,
            is_active=True,
        )
        db.add(category)
        await self._flush_named(db)
        logger.info("Category created: %s (%s)", category.name, category.id)
        return CategoryOut.model_validate(category)

    async def update_category(
        self, db: AsyncSession, category_id: uuid.UUID, data: CategoryUpdate
    ) -> CategoryOut:
        category = await self._get_by_id(db, category_id)

        if data.name is not None and data.name != category.name:
            await self._ensure_name_free(db, data.name, exclude_id=category.id)
            category.name = data.name
            category.slug = await unique_slug(
                db, Category, data.name, fallback="category", exclude_id=category.id
            )
        if data.description is not None:
            category.description = data.description or None
        if data.color is not None:
            category.color = data.color
        if data.icon is not None:
            category.icon = data.icon or None
        if data.is_active is not None:
            category.is_active = data.is_active

        category.updated_at = datetime.now(timezone.utc)
        await self._flush_named(db)
        return CategoryOut.model_validate(category)

    async def delete_category(self, db: AsyncSession, category_id: uuid.UUID) -> None:
        """
        Raises:
            NotFoundError: no such category
            ValidationError: posts still reference it
        """
        category = await self._get_by_id(db, category_id)

        result = await db.execute(
            select(func.count(Post.id)).where(Post.category_id == category.id)
        )
        post_count = result.scalar() or 0
        if post_count > 0:
            raise ValidationError(
                message=f"Cannot delete category. It has {post_count} associated posts.",
                context={"post_count": post_count},
            )

        await db.delete(category)
        await db.flush()
        logger.info("Category deleted: %s", category_id)

    async def list_posts_by_category(
        self, db: AsyncSession, id_or_slug: str, page: int = 1, limit: int = 10
    ) -> CategoryPostsData:
        """Published posts in the category, newest first."""
        category = await self._get_by_id_or_slug(db, id_or_slug)
        posts, pagination = await post_service.paginate(
            db,
            filters=[Post.category_id == category.id, Post.is_published.is_(True)],
            page=page,
            limit=limit,
        )
        return CategoryPostsData(
            category=CategoryOut.model_validate(category),
            posts=posts,
            pagination=pagination,
        )


category_service = CategoryService()

"""
Inkpress Backend — Post Service (Business Logic)
=================================================

What:  Listing, search, retrieval, authoring and commenting for blog posts.
Why:   Encapsulates ownership rules, slugs, view counting and pagination,
       independent of HTTP concerns.
How:   Each public method takes the request's AsyncSession and returns a
       response schema; failures raise application exceptions.
Who:   Called by routes/posts.py and (for per-category listings) by
       CategoryService.

Authorization:
    update/delete require the caller to be the post's author or an admin;
    anything else raises PermissionDeniedError (403).

Text search:
    Case-insensitive substring match over title, content, excerpt and tag
    names. LIKE wildcards in the query are escaped, so user input is matched
    literally.

View counting:
    Reading a published post issues `UPDATE posts SET view_count = view_count + 1`,
    so concurrent readers never lose increments.
"""

import logging
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Any, List, Optional, Tuple

from sqlalchemy import asc, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.database import after_commit, after_rollback
from inkpress.exceptions import (
    InkpressError,
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from inkpress.models.category import Category
from inkpress.models.post import DEFAULT_FEATURED_IMAGE, Comment, Post, PostTag
from inkpress.models.user import User
from inkpress.schemas.common import Pagination
from inkpress.schemas.post import (
    CommentCreate,
    PostCreate,
    PostListResponse,
    PostOut,
    PostUpdate,
)
from inkpress.services.file_service import ImageUpload, file_service
from inkpress.services.slugs import parse_uuid, unique_slug

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "createdAt": Post.created_at,
    "updatedAt": Post.updated_at,
    "title": Post.title,
    "viewCount": Post.view_count,
}

MAX_SEARCH_LENGTH = 100


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def text_search_filter(text: str) -> Any:
    """WHERE clause matching `text` in title, content, excerpt or any tag."""
    pattern = f"%{_escape_like(text)}%"
    tagged = select(PostTag.post_id).where(PostTag.name.ilike(pattern, escape="\\"))
    return or_(
        Post.title.ilike(pattern, escape="\\"),
        Post.content.ilike(pattern, escape="\\"),
        Post.excerpt.ilike(pattern, escape="\\"),
        Post.id.in_(tagged),
    )


class PostService:
    """
    Business logic layer for post operations.

    Stateless; `post_service` below is the shared instance.
    """

    # ── Queries ───────────────────────────────────────────────────────────

    async def paginate(
        self,
        db: AsyncSession,
        filters: List[Any],
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        query: Optional[str] = None,
    ) -> Tuple[List[PostOut], Pagination]:
        """
        Runs a filtered, sorted page query plus the matching COUNT.

        A page past the end returns an empty list without running the page
        query; the pagination block still reports the real totals with
        has_next_page=False.
        """
        if sort_by not in SORT_FIELDS:
            raise ValidationError(
                message=f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORT_FIELDS)}",
                field="sortBy",
            )
        column = SORT_FIELDS[sort_by]
        direction = asc if sort_order == "asc" else desc

        try:
            count_result = await db.execute(select(func.count(Post.id)).where(*filters))
            total = count_result.scalar() or 0

            offset = (page - 1) * limit
            posts: List[Post] = []
            if offset < total:
                result = await db.execute(
                    select(Post)
                    .where(*filters)
                    .order_by(direction(column), direction(Post.id))
                    .offset(offset)
                    .limit(limit)
                )
                posts = list(result.scalars().all())
        except InkpressError:
            raise
        except Exception as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return (
            [PostOut.model_validate(p) for p in posts],
            Pagination.build(page=page, limit=limit, total=total, query=query),
        )

    async def list_posts(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        category: Optional[uuid.UUID] = None,
        author: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> PostListResponse:
        """Published posts, optionally filtered by category, author and search text."""
        filters: List[Any] = [Post.is_published.is_(True)]
        if category is not None:
            filters.append(Post.category_id == category)
        if author is not None:
            filters.append(Post.author_id == author)
        if search and search.strip():
            filters.append(text_search_filter(search.strip()))

        posts, pagination = await self.paginate(
            db, filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
        )
        return PostListResponse(data=posts, pagination=pagination)

    async def search_posts(
        self, db: AsyncSession, q: Optional[str], page: int = 1, limit: int = 10
    ) -> PostListResponse:
        """
        Same text filter as list_posts, exposed on its own.

        Raises:
            ValidationError: missing/blank query, or longer than 100 characters
        """
        text = (q or "").strip()
        if not text:
            raise ValidationError(message="Search query is required", field="q")
        if len(text) > MAX_SEARCH_LENGTH:
            raise ValidationError(
                message="Search query must be between 1 and 100 characters", field="q"
            )

        posts, pagination = await self.paginate(
            db,
            [Post.is_published.is_(True), text_search_filter(text)],
            page=page,
            limit=limit,
            query=text,
        )
        return PostListResponse(data=posts, pagination=pagination)

    async def list_user_posts(
        self, db: AsyncSession, user: User, page: int = 1, limit: int = 10
    ) -> PostListResponse:
        """All of the caller's posts, drafts included, newest first."""
        posts, pagination = await self.paginate(
            db, [Post.author_id == user.id], page=page, limit=limit
        )
        return PostListResponse(data=posts, pagination=pagination)

    async def _get_by_id(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        result = await db.execute(select(Post).where(Post.id == post_id))
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def get_post(self, db: AsyncSession, id_or_slug: str) -> PostOut:
        """
        Fetches a post by UUID or slug; a published post's view count goes up by one.

        Raises:
            NotFoundError: no post with that id/slug
        """
        post_id = parse_uuid(id_or_slug)
        if post_id is not None:
            query = select(Post).where(Post.id == post_id)
        else:
            query = select(Post).where(Post.slug == id_or_slug.lower())
        result = await db.execute(query)
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(resource="post", resource_id=id_or_slug)

        if post.is_published:
            await db.execute(
                update(Post)
                .where(Post.id == post.id)
                .values(view_count=Post.view_count + 1)
                .execution_options(synchronize_session=False)
            )
            await db.refresh(post, attribute_names=["view_count"])

        return PostOut.model_validate(post)

    # ── Mutations ─────────────────────────────────────────────────────────

    async def _require_category(self, db: AsyncSession, category_id: uuid.UUID) -> Category:
        category = await db.get(Category, category_id)
        if category is None:
            raise ValidationError(message="Category not found", field="category")
        return category

    def _require_owner_or_admin(self, post: Post, user: User, action: str) -> None:
        if not (post.is_owned_by(user) or user.is_admin):
            logger.warning("User %s denied %s on post %s", user.id, action, post.id)
            raise PermissionDeniedError(message=f"Not authorized to {action} this post")

    async def create_post(
        self,
        db: AsyncSession,
        user: User,
        data: PostCreate,
        image: Optional[ImageUpload] = None,
    ) -> PostOut:
        """
        Creates a post authored by `user`.

        Workflow:
            1. Resolve the category (unknown → ValidationError on `category`)
            2. Validate and store the image, if any
            3. Insert the post with a unique slug
            On failure after step 2 (here, or when the transaction rolls
            back later), the stored image is removed.
        """
        category = await self._require_category(db, data.category)

        stored_path: Optional[str] = None
        if image is not None:
            _, stored_path = await file_service.validate_and_store(
                filename=image.filename,
                content=image.content,
                content_length=image.content_length,
            )
            after_rollback(db, partial(file_service.cleanup_file, stored_path))

        try:
            post = Post(
                title=data.title,
                slug=await unique_slug(db, Post, data.title, fallback="post"),
                content=data.content,
                excerpt=data.excerpt,
                featured_image=stored_path or DEFAULT_FEATURED_IMAGE,
                is_published=data.is_published,
                view_count=0,
                author=user,
                category=category,
                comments=[],
            )
            post.set_tags(data.tags)
            db.add(post)
            await db.flush()
        except Exception as e:
            await file_service.cleanup_file(stored_path)
            if isinstance(e, InkpressError):
                raise
            logger.error("Unexpected error creating post: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while saving your post. Please try again.",
                context={"original_error": type(e).__name__},
            )

        logger.info("Post created: %s by %s", post.id, user.id)
        return PostOut.model_validate(post)

    async def update_post(
        self,
        db: AsyncSession,
        user: User,
        post_id: uuid.UUID,
        data: PostUpdate,
        image: Optional[ImageUpload] = None,
    ) -> PostOut:
        """
        Partially updates a post. Only the author or an admin may do this.

        A new title regenerates the slug. A new image replaces the previous
        upload, which is deleted only once the transaction commits; if it
        rolls back, the new file is deleted instead.
        """
        post = await self._get_by_id(db, post_id)
        self._require_owner_or_admin(post, user, "update")

        if data.title is not None and data.title != post.title:
            post.title = data.title
            post.slug = await unique_slug(db, Post, data.title, fallback="post", exclude_id=post.id)
        if data.content is not None:
            post.content = data.content
        if data.excerpt is not None:
            post.excerpt = data.excerpt or None
        if data.category is not None and data.category != post.category_id:
            post.category = await self._require_category(db, data.category)
        if data.tags is not None:
            post.set_tags(data.tags)
        if data.is_published is not None:
            post.is_published = data.is_published

        stored_path: Optional[str] = None
        if image is not None:
            _, stored_path = await file_service.validate_and_store(
                filename=image.filename,
                content=image.content,
                content_length=image.content_length,
            )
            after_rollback(db, partial(file_service.cleanup_file, stored_path))
            previous_image = post.featured_image
            post.featured_image = stored_path
            if previous_image and previous_image != DEFAULT_FEATURED_IMAGE:
                after_commit(db, partial(file_service.cleanup_file, previous_image))

        post.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except Exception as e:
            await file_service.cleanup_file(stored_path)
            logger.error("Unexpected error updating post %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while saving your post. Please try again.",
                context={"original_error": type(e).__name__},
            )

        logger.info("Post updated: %s by %s", post.id, user.id)
        return PostOut.model_validate(post)

    async def delete_post(self, db: AsyncSession, user: User, post_id: uuid.UUID) -> None:
        """
        Deletes the post with its tags and comments. Author or admin only.

        The uploaded image is removed after the transaction commits.
        """
        post = await self._get_by_id(db, post_id)
        self._require_owner_or_admin(post, user, "delete")

        image = post.featured_image
        await db.delete(post)
        await db.flush()

        if image != DEFAULT_FEATURED_IMAGE:
            after_commit(db, partial(file_service.cleanup_file, image))
        logger.info("Post deleted: %s by %s", post_id, user.id)

    async def add_comment(
        self, db: AsyncSession, user: User, post_id: uuid.UUID, data: CommentCreate
    ) -> PostOut:
        """Appends a comment by `user` and returns the post with all comments."""
        post = await self._get_by_id(db, post_id)

        post.comments.append(Comment(user=user, content=data.content))
        await db.flush()

        logger.info("Comment added to post %s by %s", post.id, user.id)
        return PostOut.model_validate(post)


post_service = PostService()

"""
Inkpress Backend — Post, PostTag and Comment SQLAlchemy Models
===============================================================

What:  ORM models for blog posts and the data that hangs off them.
Why:   The API exposes a post as one document (tags list, embedded comments,
       populated author and category). Relationally that is a `posts` row
       with child `post_tags` and `comments` rows.
How:   All relationships use `lazy="selectin"` so every Post query loads its
       author, category, tags and comments in a fixed number of extra
       SELECTs. Async sessions cannot lazy-load on attribute access.

Table Design Rationale:
    - slug: unique, derived from the title; alternate lookup key for URLs
    - featured_image: path relative to UPLOAD_PATH, or the default image name
    - view_count: only ever incremented with an atomic UPDATE
    - post_tags.position: preserves the author's tag order
    - comments: append-only; cascade-deleted with the post
    - category_id ON DELETE RESTRICT: a referenced category cannot be removed
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkpress.database import Base
from inkpress.models.category import Category
from inkpress.models.user import User, utcnow

DEFAULT_FEATURED_IMAGE = "default-post.jpg"


class PostTag(Base):
    """One tag on one post."""

    __tablename__ = "post_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Comment(Base):
    """A reader comment on a post. Never edited or deleted through the API."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    user: Mapped[User] = relationship(User, lazy="selectin")


class Post(Base):
    """
    A blog post.

    Lifecycle:
        1. Created by any authenticated user (draft unless isPublished is sent)
        2. Updated/deleted only by its author or an admin
        3. Each read of a published post bumps view_count by one
        4. Comments are appended by any authenticated user
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    featured_image: Mapped[str] = mapped_column(
        String(255), nullable=False, default=DEFAULT_FEATURED_IMAGE
    )
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    author: Mapped[User] = relationship(User, lazy="selectin")
    category: Mapped[Category] = relationship(Category, lazy="selectin")
    tags: Mapped[List[PostTag]] = relationship(
        PostTag,
        order_by=PostTag.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    comments: Mapped[List[Comment]] = relationship(
        Comment,
        order_by=Comment.created_at,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_posts_published_created_at", "is_published", created_at.desc()),
    )

    @property
    def tag_names(self) -> List[str]:
        return [tag.name for tag in self.tags]

    def set_tags(self, names: List[str]) -> None:
        """Replace the tag list; removed PostTag rows are deleted as orphans."""
        self.tags = [PostTag(name=name, position=i) for i, name in enumerate(names)]

    def is_owned_by(self, user: User) -> bool:
        return self.author_id == user.id

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, slug='{self.slug}', published={self.is_published})>"

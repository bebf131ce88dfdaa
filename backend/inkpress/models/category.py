"""
Inkpress Backend — Category SQLAlchemy Model
=============================================

What:  ORM model representing the `categories` table.
Why:   Every post belongs to exactly one category; categories drive the
       navigation and the per-category post listing.

A category cannot be deleted while posts reference it; CategoryService
enforces this before issuing the DELETE (the foreign key is RESTRICT as a
backstop).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from inkpress.database import Base
from inkpress.models.user import utcnow

DEFAULT_CATEGORY_COLOR = "#007bff"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)

    # Hex color code (#RRGGBB) used for category badges in the client
    color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_CATEGORY_COLOR)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, default=None)

    # Inactive categories are hidden from the public listing but keep their posts
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"

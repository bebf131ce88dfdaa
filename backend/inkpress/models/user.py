"""
Inkpress Backend — User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
Who:   Used by AuthService (register/login/profile) and as the author of
       posts and comments.

Table Design Rationale:
    - UUID primary key: non-sequential, safe to expose in URLs
    - email stored lower-cased so the unique index is case-insensitive in practice
    - password_hash only; the plain secret never reaches the database
    - role is a short string (`user`, `admin`, `moderator`) rather than a lookup table
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from inkpress.database import Base

ROLES = ("user", "admin", "moderator")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered account that can author posts and comment."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    avatar: Mapped[str] = mapped_column(String(255), nullable=False, default="default-avatar.jpg")

    # Values: see ROLES
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"

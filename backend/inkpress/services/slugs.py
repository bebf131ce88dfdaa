"""
Inkpress Backend — Slug Helpers
================================

What:  Derives URL-friendly slugs from titles/names and makes them unique
       within a table.
How:   "Hello, World!" → "hello-world"; if taken, "hello-world-2", "-3", ...
"""

import re
import uuid
from typing import Optional, Type

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.database import Base


def parse_uuid(value: str) -> Optional[uuid.UUID]:
    """Returns the UUID if `value` is one, else None (the value is then treated as a slug)."""
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError):
        return None


def slugify(text: str, fallback: str = "item") -> str:
    slug = re.sub(r"[^a-zA-Z0-9\s-]", "", text).strip().lower()
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:100] or fallback


async def unique_slug(
    db: AsyncSession,
    model: Type[Base],
    text: str,
    fallback: str = "item",
    exclude_id: Optional[uuid.UUID] = None,
) -> str:
    """
    Returns a slug for `text` not yet used by any other row of `model`.

    Args:
        exclude_id: the row being renamed, so it may keep its own slug
    """
    base = slugify(text, fallback)
    query = select(model.slug).where(
        or_(model.slug == base, model.slug.like(f"{base}-%"))
    )
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await db.execute(query)
    taken = set(result.scalars().all())

    if base not in taken:
        return base
    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"

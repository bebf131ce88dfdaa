"""
Inkpress Backend — ORM Models
==============================

Importing this package registers every table on `Base.metadata`
(used by Alembic autogenerate and by `create_all_tables`).
"""

from inkpress.models.user import User, ROLES
from inkpress.models.category import Category
from inkpress.models.post import Post, PostTag, Comment

__all__ = ["User", "ROLES", "Category", "Post", "PostTag", "Comment"]

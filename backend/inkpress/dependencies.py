"""
Inkpress Backend — Request Dependencies
========================================

What:  FastAPI dependencies that resolve the calling user from the
       `Authorization: Bearer <token>` header and gate routes by role.

Usage:
    @router.get("/me")
    async def me(user: User = Depends(get_current_user)): ...

    @router.post("", dependencies=[Depends(require_roles("admin"))])
    async def create_category(...): ...
"""

from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.database import get_db_session
from inkpress.exceptions import AuthenticationError, PermissionDeniedError
from inkpress.models.user import User
from inkpress.services.auth_service import auth_service

# auto_error=False: a missing header is reported through our own 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Raises AuthenticationError (401) when no valid token is presented."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Not authorized, no token")
    return await auth_service.get_user_for_token(db, credentials.credentials)


def require_roles(*roles: str) -> Callable:
    """Dependency factory: the current user must hold one of `roles`."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise PermissionDeniedError(
                message=f"User role {user.role} is not authorized to access this route"
            )
        return user

    return checker

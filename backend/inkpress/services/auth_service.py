"""
Inkpress Backend — Auth Service
================================

What:  Registration, login, bearer-token issuing/verification, profile and
       password management.
Why:   Keeps credential handling (hashing, token signing) out of the route
       handlers and in one testable place.
How:   - Passwords are hashed with argon2 (argon2-cffi PasswordHasher)
       - Tokens are JWTs (PyJWT, HS256) whose `sub` is the user id
Who:   Called by routes/auth.py and by the `get_current_user` dependency.

Failure mapping:
    duplicate email/username        → ConflictError (409), including a
                                      unique-index violation at flush time
    bad credentials / bad token     → AuthenticationError (401)
    deactivated account             → AuthenticationError (401)
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.config import settings
from inkpress.exceptions import AuthenticationError, ConflictError
from inkpress.models.user import User
from inkpress.schemas.user import (
    AuthPayload,
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserOut,
)

logger = logging.getLogger(__name__)

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return _hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def _identity_conflict(error: IntegrityError) -> ConflictError:
    """Names the users column behind a unique-index violation."""
    if "username" in str(error.orig).lower():
        return ConflictError(message="Username is already taken", field="username")
    return ConflictError(message="User with this email already exists", field="email")


def create_access_token(user_id: uuid.UUID, expires_minutes: Optional[int] = None) -> str:
    """Signs a JWT for `user_id` valid for JWT_EXPIRE_MINUTES (or the override)."""
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_expire_minutes
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verifies a bearer token and returns the user id it was issued for.

    Raises:
        AuthenticationError: expired, tampered, or malformed token
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired, please log in again")
    except jwt.InvalidTokenError:
        raise AuthenticationError(message="Not authorized, token failed")

    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError(message="Not authorized, token failed")


class AuthService:
    """
    Business logic for identity operations.

    Stateless: every method receives the request's AsyncSession.
    """

    async def _find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def _username_taken(
        self, db: AsyncSession, username: str, exclude_id: Optional[uuid.UUID] = None
    ) -> bool:
        query = select(User.id).where(func.lower(User.username) == username.lower())
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    async def register(self, db: AsyncSession, data: RegisterRequest) -> AuthPayload:
        """
        Creates an account and returns a session token for it.

        Raises:
            ConflictError: email or username already registered
        """
        if await self._find_by_email(db, data.email) is not None:
            raise ConflictError(message="User with this email already exists", field="email")
        if await self._username_taken(db, data.username):
            raise ConflictError(message="Username is already taken", field="username")

        user = User(
            username=data.username,
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            role="user",
            is_active=True,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.info("Registration hit a unique index: %s", e.orig)
            raise _identity_conflict(e)
        logger.info("User registered: %s (%s)", user.username, user.id)

        return AuthPayload(token=create_access_token(user.id), user=UserOut.model_validate(user))

    async def login(self, db: AsyncSession, data: LoginRequest) -> AuthPayload:
        """
        Verifies credentials and returns a fresh token.

        Raises:
            AuthenticationError: unknown email, wrong password, or inactive account
        """
        user = await self._find_by_email(db, data.email)
        if user is None or not verify_password(user.password_hash, data.password):
            logger.info("Failed login attempt for %s", data.email)
            raise AuthenticationError(message="Invalid credentials")
        if not user.is_active:
            raise AuthenticationError(message="Account is deactivated")

        user.last_login = datetime.now(timezone.utc)
        await db.flush()
        logger.info("User logged in: %s", user.id)

        return AuthPayload(token=create_access_token(user.id), user=UserOut.model_validate(user))

    async def get_user_for_token(self, db: AsyncSession, token: str) -> User:
        """
        Resolves a bearer token to an active User.

        Raises:
            AuthenticationError: bad token, user gone, or user deactivated
        """
        user_id = decode_access_token(token)
        user = await db.get(User, user_id)
        if user is None:
            raise AuthenticationError(message="Not authorized, user not found")
        if not user.is_active:
            raise AuthenticationError(message="Account is deactivated")
        return user

    async def update_profile(
        self, db: AsyncSession, user: User, data: ProfileUpdateRequest
    ) -> UserOut:
        """Applies the provided profile fields. Raises ConflictError on a taken username."""
        if data.username is not None and data.username != user.username:
            if await self._username_taken(db, data.username, exclude_id=user.id):
                raise ConflictError(message="Username is already taken", field="username")
            user.username = data.username
        if data.first_name is not None:
            user.first_name = data.first_name
        if data.last_name is not None:
            user.last_name = data.last_name
        if data.bio is not None:
            user.bio = data.bio
        if data.avatar is not None:
            user.avatar = data.avatar

        user.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.info("Profile update hit a unique index: %s", e.orig)
            raise _identity_conflict(e)
        return UserOut.model_validate(user)

    async def change_password(
        self, db: AsyncSession, user: User, data: PasswordChangeRequest
    ) -> None:
        """Raises AuthenticationError when the current password does not match."""
        if not verify_password(user.password_hash, data.current_password):
            raise AuthenticationError(message="Current password is incorrect")

        user.password_hash = hash_password(data.new_password)
        user.updated_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("Password changed for user %s", user.id)


auth_service = AuthService()

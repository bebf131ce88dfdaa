"""
Inkpress Backend — Auth Route Handlers
=======================================

What:  Registration, login and the signed-in user's own account.
How:   Bodies are validated by the request schemas; AuthService does the
       work; responses use the `{success, data}` envelope.

Endpoints:
    POST /api/auth/register   → 201 {token, user}
    POST /api/auth/login      → 200 {token, user}
    GET  /api/auth/me         → 200 user
    PUT  /api/auth/profile    → 200 user
    PUT  /api/auth/password   → 200 message
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from inkpress.database import get_db_session
from inkpress.dependencies import get_current_user
from inkpress.models.user import User
from inkpress.schemas.common import DataResponse, ErrorResponse, MessageResponse
from inkpress.schemas.user import (
    AuthPayload,
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserOut,
)
from inkpress.services.auth_service import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[AuthPayload],
    responses={
        400: {"description": "Invalid fields", "model": ErrorResponse},
        409: {"description": "Email or username taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[AuthPayload]:
    payload = await auth_service.register(db, body)
    return DataResponse[AuthPayload](data=payload)


@router.post(
    "/login",
    response_model=DataResponse[AuthPayload],
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[AuthPayload]:
    payload = await auth_service.login(db, body)
    return DataResponse[AuthPayload](data=payload)


@router.get(
    "/me",
    response_model=DataResponse[UserOut],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="The signed-in user",
)
async def me(user: User = Depends(get_current_user)) -> DataResponse[UserOut]:
    return DataResponse[UserOut](data=UserOut.model_validate(user))


@router.put(
    "/profile",
    response_model=DataResponse[UserOut],
    responses={409: {"description": "Username taken", "model": ErrorResponse}},
    summary="Update the signed-in user's profile",
)
async def update_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DataResponse[UserOut]:
    updated = await auth_service.update_profile(db, user, body)
    return DataResponse[UserOut](data=updated)


@router.put(
    "/password",
    response_model=MessageResponse,
    responses={401: {"description": "Current password is incorrect", "model": ErrorResponse}},
    summary="Change the signed-in user's password",
)
async def change_password(
    body: PasswordChangeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.change_password(db, user, body)
    return MessageResponse(message="Password updated successfully")

"""Authentication and account endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from telemed.dependencies import AdminUser, CurrentUser, DatabaseSession
from telemed.schemas.auth import (
    AuthPayload,
    LoginRequest,
    MeResponse,
    ProfileUpdate,
    RegisterRequest,
    UserResponse,
    UserStatusUpdate,
)
from telemed.schemas.common import ApiResponse
from telemed.services.auth_service import AuthService
from telemed.services.user_service import UserService

router = APIRouter()


@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(data: RegisterRequest, db: DatabaseSession) -> ApiResponse[AuthPayload]:
    """
    Register a patient or doctor account with its profile.

    Args:
        data: Registration payload
        db: Database session

    Returns:
        The new user and a session token
    """
    payload = await AuthService(db).register(data)
    return ApiResponse[AuthPayload](message="User registered successfully", data=payload)


@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    status_code=status.HTTP_200_OK,
    summary="Sign in with email and password",
)
async def login(data: LoginRequest, db: DatabaseSession) -> ApiResponse[AuthPayload]:
    """
    Exchange credentials for a session token.

    Args:
        data: Email and password
        db: Database session

    Returns:
        The user and a session token
    """
    payload = await AuthService(db).login(data)
    return ApiResponse[AuthPayload](message="Login successful", data=payload)


@router.get(
    "/me",
    response_model=ApiResponse[MeResponse],
    status_code=status.HTTP_200_OK,
    summary="Get current user",
)
async def get_me(current_user: CurrentUser, db: DatabaseSession) -> ApiResponse[MeResponse]:
    """Get the caller's account, profile and doctor record."""
    me = await UserService(db).get_me(current_user["id"])
    return ApiResponse[MeResponse](data=me)


@router.put(
    "/me",
    response_model=ApiResponse[MeResponse],
    status_code=status.HTTP_200_OK,
    summary="Update current user's profile",
)
async def update_me(
    data: ProfileUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse[MeResponse]:
    """Partially update the caller's profile."""
    me = await UserService(db).update_profile(current_user["id"], data)
    return ApiResponse[MeResponse](message="Profile updated successfully", data=me)


@router.put(
    "/users/{user_id}/status",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_200_OK,
    summary="Activate or deactivate a user",
)
async def set_user_status(
    user_id: UUID,
    data: UserStatusUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse[UserResponse]:
    """
    Activate or deactivate an account (admin only).

    Args:
        user_id: Target user ID
        data: Desired activation state
        current_user: Authenticated admin
        db: Database session

    Returns:
        Updated user
    """
    user = await UserService(db).set_active(current_user["id"], user_id, data.is_active)
    message = "User activated" if data.is_active else "User deactivated"
    return ApiResponse[UserResponse](message=message, data=user)

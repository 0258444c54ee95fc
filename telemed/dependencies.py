"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.exceptions import ForbiddenException, UnauthorizedException
from telemed.core.permissions import ROLE_ADMIN, ROLE_DOCTOR, ROLE_USER
from telemed.core.security import decode_access_token
from telemed.database import get_db
from telemed.schemas.common import Page
from telemed.services.user_service import UserService

# Security; missing headers are reported by get_current_user_id as 401
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        UnauthorizedException: If token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException(
            "No token provided. Authorization header must be Bearer <token>"
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Invalid or expired token")

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise UnauthorizedException("Invalid token payload")

    try:
        return UUID(user_id_str)
    except ValueError:
        raise UnauthorizedException("Invalid user ID format")


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, Any]:
    """
    Get current user from database.

    The role used for authorization is the one stored on the user row.

    Args:
        user_id: User ID from JWT token
        db: Database session

    Returns:
        ``id``, ``email``, ``role`` and ``is_active`` of the caller

    Raises:
        UnauthorizedException: If user not found
        ForbiddenException: If the account is deactivated
    """
    user = await UserService(db).get_user_by_id(user_id)

    if not user:
        raise UnauthorizedException("User not found")

    if not user["is_active"]:
        raise ForbiddenException("Account is deactivated")

    return {
        "id": user["id"],
        "email": user["email"],
        "role": user["role"],
        "is_active": user["is_active"],
    }


def require_roles(*roles: str) -> Callable[..., Awaitable[dict[str, Any]]]:
    """
    Build a dependency admitting only the given roles.

    Args:
        roles: Roles allowed through

    Returns:
        Dependency returning the current user
    """

    async def check_role(
        current_user: Annotated[dict[str, Any], Depends(get_current_user)],
    ) -> dict[str, Any]:
        if current_user["role"] not in roles:
            raise ForbiddenException("Insufficient permissions to access this resource")
        return current_user

    return check_role


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
PatientUser = Annotated[dict, Depends(require_roles(ROLE_USER))]
DoctorUser = Annotated[dict, Depends(require_roles(ROLE_DOCTOR))]
AdminUser = Annotated[dict, Depends(require_roles(ROLE_ADMIN))]
DoctorOrAdminUser = Annotated[dict, Depends(require_roles(ROLE_DOCTOR, ROLE_ADMIN))]


def pagination(default_limit: int = 10) -> Callable[..., Page]:
    """
    Build a dependency reading ``page`` and ``limit`` query parameters.

    Args:
        default_limit: Page size when ``limit`` is omitted

    Returns:
        Dependency returning a ``Page``
    """

    def page_params(
        page: Annotated[int, Query(ge=1)] = 1,
        limit: Annotated[int, Query(ge=1, le=100)] = default_limit,
    ) -> Page:
        return Page(page=page, limit=limit)

    return page_params

"""Authentication service for registration and login."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from telemed.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InternalServerException,
    UnauthorizedException,
)
from telemed.core.security import create_access_token, get_password_hash, verify_password
from telemed.database import transaction
from telemed.models.users import profiles, users
from telemed.schemas.auth import AuthPayload, AuthUser, LoginRequest, RegisterRequest

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Service for account registration and sign-in."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    @staticmethod
    def _auth_payload(user: Any) -> AuthPayload:
        token = create_access_token(str(user["id"]), user["email"], user["role"])
        return AuthPayload(
            user=AuthUser(id=user["id"], email=user["email"], role=user["role"]),
            token=token,
        )

    async def register(self, data: RegisterRequest) -> AuthPayload:
        """
        Register a new account with its profile.

        The user and profile rows are written in one transaction, so a failed
        profile insert leaves no user behind.

        Args:
            data: Registration payload

        Returns:
            The new user summary and a session token

        Raises:
            ConflictException: If the email is already registered
            InternalServerException: If the profile cannot be created
        """
        existing = await self.db.execute(select(users.c.id).where(users.c.email == data.email))
        if existing.first() is not None:
            raise ConflictException("User with this email already exists")

        password_hash = await run_in_threadpool(get_password_hash, data.password)

        async with transaction(self.db):
            try:
                result = await self.db.execute(
                    insert(users)
                    .values(
                        email=data.email,
                        phone=data.phone,
                        password_hash=password_hash,
                        role=data.role.value,
                    )
                    .returning(users.c.id, users.c.email, users.c.role)
                )
            except IntegrityError as e:
                raise ConflictException("User with this email already exists") from e

            user = result.mappings().one()

            try:
                await self._create_profile(user["id"], data)
            except SQLAlchemyError as e:
                logger.error("profile_creation_failed", user_id=str(user["id"]), error=str(e))
                raise InternalServerException("Failed to create user profile") from e

        logger.info("user_registered", user_id=str(user["id"]), role=user["role"])
        return self._auth_payload(user)

    async def _create_profile(self, user_id: UUID, data: RegisterRequest) -> None:
        await self.db.execute(
            insert(profiles).values(
                user_id=user_id,
                first_name=data.first_name,
                last_name=data.last_name,
                date_of_birth=data.date_of_birth,
                gender=data.gender,
            )
        )

    async def login(self, data: LoginRequest) -> AuthPayload:
        """
        Verify credentials and issue a session token.

        Unknown email and wrong password fail with the same message.

        Raises:
            UnauthorizedException: On bad credentials
            ForbiddenException: If the account is deactivated
        """
        result = await self.db.execute(
            select(
                users.c.id,
                users.c.email,
                users.c.role,
                users.c.password_hash,
                users.c.is_active,
            ).where(users.c.email == data.email)
        )
        user = result.mappings().first()

        if user is None:
            raise UnauthorizedException(INVALID_CREDENTIALS)

        if not await run_in_threadpool(verify_password, data.password, user["password_hash"]):
            raise UnauthorizedException(INVALID_CREDENTIALS)

        if not user["is_active"]:
            raise ForbiddenException("Account is deactivated")

        await self._touch_last_login(user["id"])

        logger.info("user_logged_in", user_id=str(user["id"]))
        return self._auth_payload(user)

    async def _touch_last_login(self, user_id: UUID) -> None:
        try:
            async with transaction(self.db):
                await self.db.execute(
                    update(users).where(users.c.id == user_id).values(last_login=datetime.now(UTC))
                )
        except SQLAlchemyError as e:
            logger.warning("last_login_update_failed", user_id=str(user_id), error=str(e))

"""
Account operations: register, login, profile, logout.

Bridges the credential store, password hashing and the token service.
Failures are raised as ``AccountError`` subclasses carrying the HTTP status
the routes should answer with.  Messages are fixed strings: a caller can
never tell which uniqueness key collided, or whether a failed login was an
unknown user or a wrong password.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import TokenService
from auth.models import UserOut
from auth.password import hash_password, verify_password
from database.helpers import (
    DuplicateUserError,
    find_user_by_username_or_email,
    find_user_for_login,
    get_user_by_id,
    insert_user,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AccountError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST


class UserExistsError(AccountError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self) -> None:
        super().__init__("Username or email already exists")


class InvalidCredentials(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self) -> None:
        super().__init__("Invalid username or password")


class UserNotFound(AccountError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self) -> None:
        super().__init__("User not found")


@dataclass(frozen=True)
class AuthResult:
    user: UserOut
    access_token: str


class AccountService:
    def __init__(self, tokens: TokenService) -> None:
        self.tokens = tokens

    async def register(
        self,
        session: AsyncSession,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        display_name: Optional[str] = None,
    ) -> AuthResult:
        if not username or not email or not password:
            raise ValidationFailed("Username, email, and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        if await find_user_by_username_or_email(session, username, email) is not None:
            raise UserExistsError()

        password_hash = await asyncio.to_thread(hash_password, password)
        try:
            user = await insert_user(
                session,
                username=username,
                email=email,
                password_hash=password_hash,
                display_name=display_name,
            )
        except DuplicateUserError:
            raise UserExistsError()

        logger.info("Registered user %s (%s)", user.username, user.id)
        return AuthResult(user=UserOut.model_validate(user), access_token=self.tokens.issue(user))

    async def login(
        self,
        session: AsyncSession,
        username_or_email: Optional[str],
        password: Optional[str],
    ) -> AuthResult:
        if not username_or_email or not password:
            raise ValidationFailed("Username and password are required")

        user = await find_user_for_login(session, username_or_email)
        if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
            raise InvalidCredentials()

        logger.info("Login: %s (%s)", user.username, user.id)
        return AuthResult(user=UserOut.model_validate(user), access_token=self.tokens.issue(user))

    async def get_profile(self, session: AsyncSession, user_id: int) -> UserOut:
        # user_id comes from a verified token, so a miss means the row was deleted
        user = await get_user_by_id(session, user_id)
        if user is None:
            raise UserNotFound()
        return UserOut.model_validate(user)

    async def logout(self) -> None:
        """Tokens are not revoked; the client discards its copy."""
        return None

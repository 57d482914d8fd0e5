"""
Auth Service

Registers and authenticates users against the credential store
(the ``users`` table) and issues bearer tokens.
"""

import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import ConflictError, InputValidationError, NotFoundError, UnauthorizedError
from app.core.security import create_access_token, hash_password, verify_password
from app.models import User, UserRole

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[\w\.\+-]+@[\w\.-]+\.\w+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Use cases for the user domain: register, login, lookup."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def _get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def register(self, email: str, password: str, name: Optional[str] = None) -> tuple[User, str]:
        """
        Create a user and return it with a freshly issued token.

        Raises:
            InputValidationError: Malformed email or weak password
            ConflictError: Email already registered
        """
        email = normalize_email(email)

        if not EMAIL_PATTERN.match(email):
            raise InputValidationError("Please enter a valid email")

        if len(password) < self.settings.password_min_length:
            raise InputValidationError("Please enter a strong password")

        if await self._get_by_email(email):
            raise ConflictError("User already exists")

        role = UserRole.ADMIN if email in self.settings.admin_emails_list else UserRole.USER
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            cart_data={},
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration for the same email
            await self.db.rollback()
            raise ConflictError("User already exists")
        await self.db.refresh(user)

        logger.info(f"Registered user #{user.id} ({role.value})")
        return user, create_access_token(user.id)

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """
        Authenticate and return the user with a new token.

        Raises:
            UnauthorizedError: Unknown email or wrong password
        """
        user = await self._get_by_email(normalize_email(email))

        if not user or not verify_password(user.password_hash, password):
            logger.warning("Failed login attempt")
            raise UnauthorizedError("Invalid credentials")

        return user, create_access_token(user.id)

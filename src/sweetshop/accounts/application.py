"""Registration and login."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pydantic
from pydantic import BaseModel, EmailStr, Field

from sweetshop.core.errors import AuthenticationError, ConflictError, ValidationError
from sweetshop.core.validation import field_errors
from sweetshop.ddd import Command
from sweetshop.persistence import InMemoryDatabase

from .domain import RoleName, User
from .infrastructure import IUserRepository
from .security import PasswordHasher, TokenService

logger = logging.getLogger(__name__)


@dataclass
class RegisterUser(Command):
    username: str | None = None
    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None


@dataclass
class LoginUser(Command):
    username_or_email: str | None = None
    password: str | None = None


class Registration(BaseModel):
    """Sign-up field rules, checked in declaration order."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


# field -> (message when blank, message when malformed)
_REGISTRATION_MESSAGES = {
    "username": ("Username is required", "Username must be between 3 and 50 characters"),
    "email": ("Email is required", "Invalid email format"),
    "password": ("Password must be at least 6 characters", "Password must be at least 6 characters"),
}


def _validate_registration(cmd: RegisterUser) -> None:
    values = {
        "username": (cmd.username or "").strip(),
        "email": (cmd.email or "").strip(),
        "password": cmd.password or "",
    }
    try:
        Registration.model_validate(values)
    except pydantic.ValidationError as exc:
        failed = {error["loc"][0] for error in exc.errors()}
        name = next(n for n in _REGISTRATION_MESSAGES if n in failed)
        blank, malformed = _REGISTRATION_MESSAGES[name]
        raise ValidationError(malformed if values[name] else blank, fields=field_errors(exc)) from exc


class AuthService:
    def __init__(
        self,
        database: InMemoryDatabase,
        user_repository: IUserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
    ):
        self._db = database
        self._users = user_repository
        self._hasher = hasher
        self._tokens = tokens

    async def register(self, cmd: RegisterUser, roles: set[RoleName] | None = None) -> dict[str, Any]:
        _validate_registration(cmd)
        async with self._db.transaction():
            if await self._users.find_by_username(cmd.username.strip()):
                raise ConflictError("Username already exists")
            if await self._users.find_by_email(cmd.email):
                raise ConflictError("Email already exists")
            user = User(
                None,
                cmd.username.strip(),
                cmd.email.strip(),
                self._hasher.hash(cmd.password),
                first_name=cmd.first_name,
                last_name=cmd.last_name,
                phone_number=cmd.phone_number,
                roles=roles or {RoleName.USER},
            )
            await self._users.add(user)
        logger.info("Registered user %s (%s)", user.username, user.primary_role.value)
        return {
            "message": "User registered successfully",
            "token": self._tokens.issue(user),
            "type": "Bearer",
            "user": user.to_dict(),
        }

    async def login(self, cmd: LoginUser) -> dict[str, Any]:
        login = (cmd.username_or_email or "").strip()
        if not login or not cmd.password:
            raise ValidationError("Username/email and password are required")
        user = await self._users.find_by_username_or_email(login)
        if user is None or not self._hasher.verify(cmd.password, user.password_hash):
            logger.info("Failed login for %s", login)
            raise AuthenticationError("Invalid username or password")
        if not user.is_active:
            raise AuthenticationError("Account is disabled")
        logger.info("User %s logged in", user.username)
        return {
            "message": "Login successful",
            "token": self._tokens.issue(user),
            "type": "Bearer",
            "user": user.to_dict(),
        }

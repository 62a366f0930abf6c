"""Password hashing, JWT issue/verify and the bearer-token middleware."""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import jwt
from starlette.requests import Request

from sweetshop.config import Settings
from sweetshop.core.errors import AuthenticationError

from .domain import User

logger = logging.getLogger(__name__)

PBKDF2_ALGORITHM = "pbkdf2_sha256"


class PasswordHasher:
    """Salted PBKDF2-SHA256, stored as algorithm$iterations$salt$hash."""

    def __init__(self, settings: Settings):
        self._iterations = settings.password_hash_iterations

    def hash(self, password: str) -> str:
        salt = base64.b64encode(os.urandom(16)).decode("ascii")
        digest = self._digest(password, salt, self._iterations)
        return f"{PBKDF2_ALGORITHM}${self._iterations}${salt}${digest}"

    def verify(self, password: str, encoded: str) -> bool:
        try:
            algorithm, iterations, salt, expected = encoded.split("$", 3)
            rounds = int(iterations)
        except ValueError:
            return False
        if algorithm != PBKDF2_ALGORITHM:
            return False
        actual = self._digest(password, salt, rounds)
        return hmac.compare_digest(actual, expected)

    @staticmethod
    def _digest(password: str, salt: str, iterations: int) -> str:
        raw = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), iterations)
        return base64.b64encode(raw).decode("ascii")


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, rebuilt from token claims on every request."""

    username: str
    email: str | None
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles


class TokenService:
    """HS256 JWT: sub=username, email, roles as a comma-joined string, iat, exp."""

    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._lifetime = timedelta(hours=settings.jwt_expiration_hours)

    def issue(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "sub": user.username,
            "email": user.email,
            "roles": ",".join(sorted(r.value for r in user.roles)),
            "iat": now,
            "exp": now + self._lifetime,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Principal:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired") from None
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError(f"Invalid token: {exc}") from None
        roles = frozenset(r.strip() for r in str(claims.get("roles", "")).split(",") if r.strip())
        return Principal(username=claims["sub"], email=claims.get("email"), roles=roles)


def bearer_auth(tokens: TokenService) -> Callable[[Request], None]:
    """
    Middleware: sets request.state.principal from "Authorization: Bearer <jwt>".
    A missing or bad token leaves the principal unset; protected endpoints answer 401.
    """

    def middleware(request: Request) -> None:
        request.state.principal = None
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        try:
            request.state.principal = tokens.verify(token.strip())
        except AuthenticationError as exc:
            logger.info("Rejected bearer token on %s: %s", request.url.path, exc.message)
        return None

    return middleware

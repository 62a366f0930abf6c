"""Accounts domain: users and their roles."""
from __future__ import annotations

from enum import Enum
from typing import Any

from sweetshop.domain import AggregateRoot
from sweetshop.inventory.domain import utcnow


class RoleName(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"

    @property
    def description(self) -> str:
        if self is RoleName.ADMIN:
            return "Administrator with full system access"
        return "Standard user with basic permissions"


class User(AggregateRoot):
    def __init__(
        self,
        id: int | None,
        username: str,
        email: str,
        password_hash: str,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        phone_number: str | None = None,
        roles: set[RoleName] | None = None,
        is_active: bool = True,
    ) -> None:
        super().__init__(id)
        self.username = username
        self.email = email.lower()
        self.password_hash = password_hash
        self.first_name = first_name
        self.last_name = last_name
        self.phone_number = phone_number
        self.roles = set(roles or {RoleName.USER})
        self.is_active = is_active
        self.created_at = utcnow()
        self.updated_at = self.created_at

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.username

    @property
    def primary_role(self) -> RoleName:
        return RoleName.ADMIN if RoleName.ADMIN in self.roles else RoleName.USER

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.primary_role.value,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

"""User persistence."""
from __future__ import annotations

from abc import abstractmethod
from typing import Optional

from sweetshop.domain import Repository
from sweetshop.persistence import InMemoryRepository

from .domain import User


class IUserRepository(Repository[User]):
    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        ...

    async def find_by_username_or_email(self, login: str) -> Optional[User]:
        return await self.find_by_username(login) or await self.find_by_email(login)


class UserRepositoryImpl(InMemoryRepository[User], IUserRepository):
    table = "users"

    async def find_by_username(self, username: str) -> Optional[User]:
        return next((u for u in await self.list_all() if u.username == username), None)

    async def find_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        return next((u for u in await self.list_all() if u.email == wanted), None)

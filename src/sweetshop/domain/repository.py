"""Repository: interface for aggregate persistence."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Repository interface: get by id, add new, save existing, delete, list."""

    @abstractmethod
    async def get(self, id: int) -> Optional[T]:
        ...

    @abstractmethod
    async def add(self, aggregate: T) -> None:
        ...

    @abstractmethod
    async def save(self, aggregate: T) -> None:
        ...

    @abstractmethod
    async def delete(self, aggregate: T) -> None:
        ...

    @abstractmethod
    async def list_all(self) -> list[T]:
        ...

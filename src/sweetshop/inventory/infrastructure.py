"""Sweet persistence and the stock operations every context goes through."""
from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Optional

from sweetshop.core.errors import NotFoundError, ValidationError
from sweetshop.domain import Repository
from sweetshop.persistence import InMemoryRepository

from .domain import Sweet, sweet_not_found

logger = logging.getLogger(__name__)


class ISweetRepository(Repository[Sweet]):
    """
    Sweet store. Stock mutations are plain read-modify-write steps: they give no
    rollback guarantee of their own and must run inside the caller's transaction.
    """

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[Sweet]:
        ...

    async def require(self, sweet_id: int) -> Sweet:
        sweet = await self.get(sweet_id)
        if sweet is None:
            raise NotFoundError(sweet_not_found(sweet_id))
        return sweet

    async def reduce_stock(self, sweet_id: int, amount: int) -> bool:
        """False and no mutation when stock is short; NotFoundError when the sweet is absent."""
        sweet = await self.require(sweet_id)
        if not sweet.reduce_quantity(amount):
            logger.warning(
                "Stock short for sweet %s (%s): available %d, requested %d",
                sweet.id, sweet.name, sweet.quantity, amount,
            )
            return False
        await self.save(sweet)
        return True

    async def increase_stock(self, sweet_id: int, amount: int) -> Sweet:
        sweet = await self.require(sweet_id)
        sweet.increase_quantity(amount)
        await self.save(sweet)
        return sweet

    async def update_stock(self, sweet_id: int, quantity: int) -> Sweet:
        """Absolute set, for admin corrections."""
        if quantity < 0:
            raise ValidationError(f"Invalid quantity: {quantity}")
        sweet = await self.require(sweet_id)
        sweet.set_quantity(quantity)
        await self.save(sweet)
        return sweet


class SweetRepositoryImpl(InMemoryRepository[Sweet], ISweetRepository):
    table = "sweets"

    async def find_by_name(self, name: str) -> Optional[Sweet]:
        wanted = name.strip().casefold()
        for sweet in await self.list_all():
            if sweet.name.casefold() == wanted:
                return sweet
        return None

"""Order persistence. Items live inside their order record, so deleting an order deletes its items."""
from __future__ import annotations

from abc import abstractmethod
from typing import Optional

from sweetshop.domain import Repository
from sweetshop.persistence import InMemoryRepository

from .domain import Order

ITEMS_SEQUENCE = "order_items"


class IOrderRepository(Repository[Order]):
    @abstractmethod
    async def find_by_item(self, item_id: int) -> Optional[Order]:
        """The order that owns item_id, if any."""
        ...

    @abstractmethod
    async def any_with_sweet(self, sweet_id: int) -> bool:
        ...


class OrderRepositoryImpl(InMemoryRepository[Order], IOrderRepository):
    table = "orders"

    async def save(self, aggregate: Order) -> None:
        for item in aggregate.items:
            if item.id is None:
                item.id = self._db.next_id(ITEMS_SEQUENCE)
        await super().save(aggregate)

    async def find_by_item(self, item_id: int) -> Optional[Order]:
        for order in await self.list_all():
            if order.find_item(item_id) is not None:
                return order
        return None

    async def any_with_sweet(self, sweet_id: int) -> bool:
        return any(order.item_for_sweet(sweet_id) is not None for order in await self.list_all())


class OrderSweetUsage:
    """SweetUsage port for the catalog: a sweet on any order line cannot be deleted."""

    def __init__(self, order_repository: IOrderRepository):
        self._orders = order_repository

    async def is_referenced(self, sweet_id: int) -> bool:
        return await self._orders.any_with_sweet(sweet_id)

"""Generic repository over one InMemoryDatabase table."""
from __future__ import annotations

from functools import partial
from typing import Generic, Optional, TypeVar

from sweetshop.domain import AggregateRoot, DomainEvent, EventBus, Repository
from sweetshop.persistence.database import InMemoryDatabase

A = TypeVar("A", bound=AggregateRoot)


class InMemoryRepository(Repository[A], Generic[A]):
    """Assigns ids on add, stores copies, and publishes pending events after commit."""

    table: str = ""

    def __init__(self, database: InMemoryDatabase, event_bus: EventBus) -> None:
        self._db = database
        self._event_bus = event_bus

    async def get(self, id: int) -> Optional[A]:
        return self._db.get(self.table, id)

    async def add(self, aggregate: A) -> None:
        if aggregate.id is None:
            aggregate.id = self._db.next_id(self.table)
        await self.save(aggregate)

    async def save(self, aggregate: A) -> None:
        if aggregate.id is None:
            raise ValueError(f"{type(aggregate).__name__} must be added before it is saved")
        events = aggregate.collect_pending_events()
        self._db.put(self.table, aggregate.id, aggregate)
        self._publish_after_commit(events)

    async def delete(self, aggregate: A) -> None:
        events = aggregate.collect_pending_events()
        self._db.delete(self.table, aggregate.id)
        self._publish_after_commit(events)

    async def list_all(self) -> list[A]:
        return self._db.all(self.table)

    def _publish_after_commit(self, events: list[DomainEvent]) -> None:
        for event in events:
            self._db.on_commit(partial(self._event_bus.publish, event))

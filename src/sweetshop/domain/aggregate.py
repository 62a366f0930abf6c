"""AggregateRoot: entity that records domain events while a command mutates it."""
from __future__ import annotations

from sweetshop.domain.entity import Entity
from sweetshop.domain.events import DomainEvent


class AggregateRoot(Entity):
    """
    Events stay on the instance until a repository drains them on save or delete
    and schedules them for after commit. Stored copies never carry events.
    """

    def __init__(self, id: int | None = None) -> None:
        super().__init__(id)
        self._events: list[DomainEvent] = []

    def raise_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    @property
    def has_pending_events(self) -> bool:
        return bool(self._events)

    def collect_pending_events(self) -> list[DomainEvent]:
        events, self._events = self._events, []
        return events

"""Domain events: base type, bus protocol and the in-process dispatcher."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class EventBus(Protocol):
    """Event bus protocol: publish and subscribe. Implementation by EventBusModule."""

    async def publish(self, event: object) -> None:
        ...

    def subscribe(self, event_type: type, handler: Callable[..., Any]) -> None:
        ...


@dataclass
class DomainEvent:
    """Base domain event type. Subclasses are dataclasses with fields."""


class InProcessEventDispatcher:
    """Dispatcher: subscribe by event type, publish invokes handlers in subscription order."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[..., Any]]] = {}

    def subscribe(self, event_type: type, handler: Callable[..., Any]) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    async def publish(self, event: object) -> None:
        handlers = self._handlers.get(type(event), [])
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            result = handler(event)
            if hasattr(result, "__await__"):
                await result

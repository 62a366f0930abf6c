"""
EventBusModule: building block for the event bus.
Configure via .adapter(...) or .in_memory(); register with app.register(event_bus)
before the domain modules so their on_event subscriptions land on it.
Repositories publish to it only after a transaction commits.
"""
from __future__ import annotations

import logging

from sweetshop.core.app import Application
from sweetshop.core.module import Module
from sweetshop.domain.events import EventBus, InProcessEventDispatcher

logger = logging.getLogger(__name__)


class EventBusModule(Module):
    """Event bus as object. Available in container as EventBus."""

    def __init__(self) -> None:
        self._bus: EventBus | None = None

    def adapter(self, impl: EventBus) -> EventBusModule:
        """Use another bus (anything with async publish and subscribe), e.g. a broker client."""
        if not isinstance(impl, EventBus):
            raise TypeError(f"{type(impl).__name__} does not implement publish/subscribe")
        self._bus = impl
        return self

    def in_memory(self) -> EventBusModule:
        self._bus = InProcessEventDispatcher()
        return self

    def register_into(self, app: Application) -> None:
        bus = self._bus if self._bus is not None else InProcessEventDispatcher()
        app.container.register_instance(EventBus, bus)
        if isinstance(bus, InProcessEventDispatcher):
            app.container.register_instance(InProcessEventDispatcher, bus)
        logger.debug("Event bus: %s", type(bus).__name__)

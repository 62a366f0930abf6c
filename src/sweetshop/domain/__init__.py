"""Domain layer base classes: Entity, AggregateRoot, DomainEvent, Repository."""
from sweetshop.domain.aggregate import AggregateRoot
from sweetshop.domain.entity import Entity
from sweetshop.domain.events import DomainEvent, EventBus, InProcessEventDispatcher
from sweetshop.domain.repository import Repository

__all__ = [
    "AggregateRoot",
    "Entity",
    "DomainEvent",
    "EventBus",
    "InProcessEventDispatcher",
    "Repository",
]

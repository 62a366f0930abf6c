"""CQRS markers and the handler calling convention."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

P = TypeVar("P", contravariant=True)


@dataclass
class Payload:
    """Dataclass read from a request: camelCase keys on the wire, snake_case also accepted."""

    __pydantic_config__ = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@dataclass
class Command(Payload):
    """Intent to change state; dispatched as POST {prefix}/commands/{snake_name}."""


@dataclass
class Query(Payload):
    """Intent to read; dispatched as GET or POST {prefix}/queries/{snake_name}."""


class Handler(Protocol[P]):
    """Callable taking the payload dataclass; may be sync or async."""

    def __call__(self, payload: P) -> Any:
        ...


async def call_handler(handler: Handler[Any], payload: Any) -> Any:
    result = handler(payload)
    if hasattr(result, "__await__"):
        return await result
    return result

"""Module protocol: the unit app.register() accepts."""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sweetshop.core.app import Application


@runtime_checkable
class Module(Protocol):
    """A bounded context (sweets, orders, reports, auth) or an infrastructure block (event bus)."""

    def register_into(self, app: Application) -> None:
        ...

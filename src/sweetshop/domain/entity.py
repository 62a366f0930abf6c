"""Entity: identity-bearing object; ids are assigned by the store on first save."""
from __future__ import annotations


class Entity:
    """Entity: equality by id. Two unsaved entities (id None) are equal only if identical."""

    def __init__(self, id: int | None = None) -> None:
        self.id = id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity) or type(self) is not type(other):
            return False
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id)) if self.id is not None else id(self)

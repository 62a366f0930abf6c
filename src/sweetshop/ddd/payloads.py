"""Build command/query dataclasses from JSON bodies or query strings with pydantic.

Field types and defaults come from the dataclass itself; camelCase keys are mapped by
the Payload config. Every problem is reported at once as a ValidationError whose
fields use dotted snake_case paths ("items.0.sweet_id").
"""
from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Any, TypeVar

import pydantic
from pydantic import TypeAdapter

from sweetshop.core.errors import ValidationError
from sweetshop.core.validation import invalid

T = TypeVar("T")


@lru_cache(maxsize=None)
def payload_adapter(cls: type[T]) -> TypeAdapter[T]:
    return TypeAdapter(cls)


def build_payload(cls: type[T], data: Any) -> T:
    """Instantiate dataclass cls from a mapping, validating every field."""
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")
    try:
        return payload_adapter(cls).validate_python(dict(data))
    except pydantic.ValidationError as exc:
        raise invalid(exc) from exc

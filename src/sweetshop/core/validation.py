"""pydantic glue: field rules raise our ValidationError with per-field messages."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated, Any

import pydantic
from pydantic import AfterValidator, BeforeValidator
from pydantic.alias_generators import to_snake

from sweetshop.core.errors import ValidationError

# An unencoded "+" in a query string arrives as a space: "2024-01-01T00:00:00 05:30".
_SPACED_OFFSET = re.compile(r"(T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?) (\d{2}(?::?\d{2})?)$")


def _restore_offset_sign(value: Any) -> Any:
    if isinstance(value, str):
        return _SPACED_OFFSET.sub(r"\1+\2", value.strip())
    return value


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, BeforeValidator(_restore_offset_sign), AfterValidator(_assume_utc)]
"""ISO-8601 date-time; naive values are taken as UTC."""


def field_errors(exc: pydantic.ValidationError) -> dict[str, str]:
    """First message per dotted field path, camelCase aliases folded back to field names."""
    fields: dict[str, str] = {}
    for error in exc.errors():
        path = ".".join(to_snake(part) if isinstance(part, str) else str(part) for part in error["loc"])
        fields.setdefault(path or "payload", error["msg"])
    return fields


def invalid(exc: pydantic.ValidationError, message: str = "Validation failed") -> ValidationError:
    return ValidationError(message, fields=field_errors(exc))


def check_fields(rules: type[pydantic.BaseModel], message: str, **values: Any) -> None:
    """Validate values against a rules model; every failing field is reported together."""
    try:
        rules.model_validate(values)
    except pydantic.ValidationError as exc:
        raise invalid(exc, message) from exc

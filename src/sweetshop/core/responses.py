"""JSON responses that understand domain values (Decimal, datetime, Enum, dataclasses)."""
from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from starlette.responses import JSONResponse as StarletteJSONResponse

from sweetshop.core.errors import ShopError


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JSONResponse(StarletteJSONResponse):
    """Starlette JSONResponse with domain-aware encoding."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            default=_default,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")


def error_response(exc: ShopError) -> JSONResponse:
    body = exc.to_dict()
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return JSONResponse(body, status_code=exc.status_code)

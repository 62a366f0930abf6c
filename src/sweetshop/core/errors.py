"""Error hierarchy shared by all contexts; the application maps it to HTTP responses."""
from __future__ import annotations

from typing import Any


class ShopError(Exception):
    """Base error: machine code, human message, HTTP status and optional per-field detail."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, *, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.fields = dict(fields or {})

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"error": self.message, "code": self.code, "status": self.status_code}
        if self.fields:
            data["fields"] = self.fields
        return data


class ValidationError(ShopError):
    """Malformed input or a cross-entity mismatch."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(ShopError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(ShopError):
    """Business rule rejected the operation given the current state."""

    code = "CONFLICT"
    status_code = 400


class AuthenticationError(ShopError):
    code = "UNAUTHORIZED"
    status_code = 401


class PermissionDeniedError(ShopError):
    code = "FORBIDDEN"
    status_code = 403

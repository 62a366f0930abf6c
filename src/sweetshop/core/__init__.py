from sweetshop.core.app import Application
from sweetshop.core.config import Config
from sweetshop.core.container import Container
from sweetshop.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ShopError,
    ValidationError,
)
from sweetshop.core.module import Module
from sweetshop.core.routing import HttpModule

__all__ = [
    "Application",
    "Config",
    "Container",
    "HttpModule",
    "Module",
    "ShopError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "AuthenticationError",
    "PermissionDeniedError",
]

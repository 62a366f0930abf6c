"""
Sweetshop: sweet-shop inventory and order backend.
Application is composed from bounded contexts via app.register(module).
"""
from sweetshop.core import Application, Container, Module, HttpModule, Config

__version__ = "0.1.0"

__all__ = [
    "Application",
    "Container",
    "Module",
    "HttpModule",
    "Config",
    "__version__",
]

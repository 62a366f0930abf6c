"""
App composition: everything via module objects and app.register().
uvicorn: `uvicorn sweetshop.app:create_app --factory`.
"""
from __future__ import annotations

from sweetshop import __version__
from sweetshop.accounts.module import AccountsModule
from sweetshop.bootstrap import DataSeeder
from sweetshop.config import Settings, configure_logging
from sweetshop.core.app import Application
from sweetshop.events import EventBusModule
from sweetshop.inventory.module import sweets_module
from sweetshop.orders.module import orders_module
from sweetshop.persistence import InMemoryDatabase
from sweetshop.reporting.module import reports_module

SECURITY_SCHEMES = {"bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}}


def create_app(settings: Settings | None = None) -> Application:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = Application(config=settings)
    app.container.register_instance(InMemoryDatabase, InMemoryDatabase())
    app.container.register_class(DataSeeder)

    # Event bus first: domain modules subscribe their handlers to it.
    app.register(EventBusModule().in_memory())
    app.register(AccountsModule())
    app.register(sweets_module)
    app.register(orders_module)
    app.register(reports_module)

    if settings.cors_origins:
        app.cors(settings.cors_origins)
    app.openapi(title=settings.docs_title, version=__version__, security_schemes=SECURITY_SCHEMES)

    if settings.seed_sample_data:
        app.on_startup(lambda: app.container.resolve(DataSeeder).run())
    return app

"""
DomainModule: one object per bounded context.
Describes aggregates, repositories, commands, queries, event subscriptions and who may call them.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Type

from pydantic.alias_generators import to_snake
from starlette.requests import Request
from starlette.responses import Response

from sweetshop.core.app import Application
from sweetshop.core.errors import AuthenticationError, PermissionDeniedError, ValidationError
from sweetshop.core.module import Module
from sweetshop.core.openapi import parameters_from_dataclass, schema_from_dataclass
from sweetshop.core.responses import JSONResponse
from sweetshop.ddd.commands import Command, Query, call_handler
from sweetshop.ddd.payloads import build_payload
from sweetshop.domain import Repository
from sweetshop.domain.events import EventBus, InProcessEventDispatcher

logger = logging.getLogger(__name__)

_INHERIT: Any = object()

BEARER_SECURITY = [{"bearerAuth": []}]


def _roles(value: Iterable[str] | None) -> frozenset[str] | None:
    if value is None:
        return None
    return frozenset(str(getattr(r, "value", r)) for r in value)


def authorize(request: Request, roles: frozenset[str] | None) -> None:
    """None means public; otherwise the request principal must hold one of roles."""
    if roles is None:
        return
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise AuthenticationError("Authentication required")
    if not roles & frozenset(principal.roles):
        raise PermissionDeniedError("Access denied")


async def read_json(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError:
        raise ValidationError("Malformed JSON request body") from None


class DomainModule(Module):
    """
    One object = full bounded context.
    .aggregate() .repository() .bind() .command() .query() .on_event()
    roles= on the module is the default for its endpoints; None means public.
    Register via app.register(module).
    """

    def __init__(self, name: str, prefix: str | None = None, *, roles: Iterable[str] | None = None) -> None:
        self.name = name
        self.prefix = prefix or f"/{name}"
        self.roles = _roles(roles)
        self._aggregate_roots: list[Type[Any]] = []
        self._repositories: list[tuple[Type[Repository[Any]], Type[Any]]] = []
        self._bindings: list[tuple[Type[Any], Type[Any]]] = []
        self._commands: list[tuple[Type[Command], Any, frozenset[str] | None, int]] = []
        self._queries: list[tuple[Type[Query], Any, frozenset[str] | None]] = []
        self._event_handlers: list[tuple[type, Any]] = []

    def aggregate(self, root: Type[Any]) -> DomainModule:
        """Register aggregate root type (metadata only)."""
        self._aggregate_roots.append(root)
        return self

    def repository(self, interface: Type[Repository[Any]], impl: Type[Any]) -> DomainModule:
        self._repositories.append((interface, impl))
        return self

    def bind(self, interface: Type[Any], impl: Type[Any]) -> DomainModule:
        """Register any interface → implementation for DI (domain services, ports)."""
        self._bindings.append((interface, impl))
        return self

    def command(
        self,
        cmd_type: Type[Command],
        handler: Type[Any] | Callable[..., Any],
        *,
        roles: Iterable[str] | None = _INHERIT,
        status_code: int = 200,
    ) -> DomainModule:
        allowed = self.roles if roles is _INHERIT else _roles(roles)
        self._commands.append((cmd_type, handler, allowed, status_code))
        return self

    def query(
        self,
        query_type: Type[Query],
        handler: Type[Any] | Callable[..., Any],
        *,
        roles: Iterable[str] | None = _INHERIT,
    ) -> DomainModule:
        allowed = self.roles if roles is _INHERIT else _roles(roles)
        self._queries.append((query_type, handler, allowed))
        return self

    def on_event(self, event_type: type, handler: Any) -> DomainModule:
        self._event_handlers.append((event_type, handler))
        return self

    def register_into(self, app: Application) -> None:
        container = app.container

        for iface, impl in [*self._repositories, *self._bindings]:
            container.register_class(impl)
            container.register(iface, lambda c=container, i=impl: c.resolve(i))

        # EventBus: if already registered (EventBusModule), use it; else default in-process
        try:
            event_bus = container.resolve(EventBus)
        except KeyError:
            event_bus = InProcessEventDispatcher()
            container.register_instance(EventBus, event_bus)
            container.register_instance(InProcessEventDispatcher, event_bus)
        for event_type, handler in self._event_handlers:
            event_bus.subscribe(event_type, handler)

        for cmd_type, handler, roles, status_code in self._commands:
            if isinstance(handler, type):
                container.register_class(handler)
            app.add_route(
                f"{self.prefix.rstrip('/')}/commands/{to_snake(cmd_type.__name__)}",
                self._make_command_endpoint(cmd_type, handler, container, roles, status_code),
                methods=["POST"],
                openapi_body_schema=schema_from_dataclass(cmd_type),
                openapi_tags=[self.name],
                openapi_security=BEARER_SECURITY if roles is not None else None,
                roles=roles,
                status_code=status_code,
            )

        for query_type, handler, roles in self._queries:
            if isinstance(handler, type):
                container.register_class(handler)
            app.add_route(
                f"{self.prefix.rstrip('/')}/queries/{to_snake(query_type.__name__)}",
                self._make_query_endpoint(query_type, handler, container, roles),
                methods=["GET", "POST"],
                openapi_parameters=parameters_from_dataclass(query_type),
                openapi_body_schema=schema_from_dataclass(query_type),
                openapi_tags=[self.name],
                openapi_security=BEARER_SECURITY if roles is not None else None,
                roles=roles,
            )

    def _make_command_endpoint(
        self,
        cmd_type: Type[Command],
        handler: Type[Any] | Callable[..., Any],
        container: Any,
        roles: frozenset[str] | None,
        status_code: int,
    ) -> Callable:
        async def endpoint(request: Request) -> Response:
            authorize(request, roles)
            cmd = build_payload(cmd_type, await read_json(request))
            logger.debug("Dispatching %s", cmd_type.__name__)
            h = container.resolve(handler) if isinstance(handler, type) else handler
            result = await call_handler(h, cmd)
            if status_code == 204:
                return Response(status_code=204)
            body: dict[str, Any] = {"ok": True}
            if result is not None:
                body["result"] = result
            return JSONResponse(body, status_code=status_code)

        return endpoint

    def _make_query_endpoint(
        self,
        query_type: Type[Query],
        handler: Type[Any] | Callable[..., Any],
        container: Any,
        roles: frozenset[str] | None,
    ) -> Callable:
        async def endpoint(request: Request) -> Response:
            authorize(request, roles)
            if request.method == "POST":
                raw = await read_json(request)
            else:
                raw = {k: v for k, v in request.query_params.items() if v.strip()}
            query = build_payload(query_type, raw)
            h = container.resolve(handler) if isinstance(handler, type) else handler
            result = await call_handler(h, query)
            return JSONResponse(result if result is not None else {})

        return endpoint

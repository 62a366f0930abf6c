"""Application: composed from modules via app.register(module). Backed by Starlette, served by uvicorn."""
from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from sweetshop.core.container import Container
from sweetshop.core.errors import ShopError
from sweetshop.core.module import Module
from sweetshop.core.openapi import SWAGGER_UI_HTML, build_openapi_spec
from sweetshop.core.responses import JSONResponse, error_response

logger = logging.getLogger(__name__)

MiddlewareFn = Callable[[Request], Any]


@dataclass
class RouteInfo:
    """Registered route: what Starlette serves plus what OpenAPI and the CLI describe."""

    path: str
    endpoint: Any
    methods: list[str]
    tags: list[str] | None = None
    body_schema: dict[str, Any] | None = None
    parameters: list[dict[str, Any]] | None = None
    security: list[dict[str, Any]] | None = None
    roles: frozenset[str] | None = None
    status_code: int = 200
    summary: str | None = None
    include_in_schema: bool = True


@dataclass
class _OpenAPISettings:
    title: str = "API"
    version: str = "0.1.0"
    docs_path: str = "/docs"
    openapi_path: str = "/openapi.json"
    security_schemes: dict[str, Any] | None = None
    enabled: bool = True


async def _maybe_await(result: Any) -> Any:
    if hasattr(result, "__await__"):
        return await result
    return result


class Application:
    """
    Application. Composed from modules via register(module).
    Middlewares receive the request and return None to continue or a Response to short-circuit.
    ShopError subclasses raised anywhere in an endpoint become JSON error responses.
    """

    def __init__(self, config: Any = None) -> None:
        self._modules: list[Module] = []
        self._container = Container()
        self._routes: list[RouteInfo] = []
        self._middlewares: list[MiddlewareFn] = []
        self._startup: list[Callable[[], Any]] = []
        self._shutdown: list[Callable[[], Any]] = []
        self._cors_origins: list[str] | None = None
        self._openapi = _OpenAPISettings()
        self._asgi: Starlette | None = None
        self.config = config
        if config is not None:
            self._container.register_instance(type(config), config)
            self._container.register_instance("config", config)

    @property
    def container(self) -> Container:
        """DI container: registration and resolution of dependencies."""
        return self._container

    @property
    def routes(self) -> list[RouteInfo]:
        return list(self._routes)

    def register(self, module: Module) -> Application:
        """Register a module (DomainModule, EventBusModule, etc.). Returns self for chaining."""
        module.register_into(self)
        self._modules.append(module)
        return self

    def add_middleware(self, middleware: MiddlewareFn) -> Application:
        """Add a middleware: (request) -> None | Response, sync or async."""
        self._middlewares.append(middleware)
        return self

    def on_startup(self, hook: Callable[[], Any]) -> Application:
        self._startup.append(hook)
        return self

    def on_shutdown(self, hook: Callable[[], Any]) -> Application:
        self._shutdown.append(hook)
        return self

    def cors(self, origins: list[str]) -> Application:
        self._cors_origins = list(origins)
        return self

    def add_route(
        self,
        path: str,
        endpoint: Any,
        methods: list[str] | None = None,
        *,
        openapi_body_schema: dict[str, Any] | None = None,
        openapi_parameters: list[dict[str, Any]] | None = None,
        openapi_tags: list[str] | None = None,
        openapi_security: list[dict[str, Any]] | None = None,
        roles: frozenset[str] | None = None,
        status_code: int = 200,
        summary: str | None = None,
    ) -> None:
        """Add an HTTP route; openapi_* used for the generated document."""
        if self._asgi is not None:
            raise RuntimeError("Routes cannot be added after the application has started")
        self._routes.append(
            RouteInfo(
                path="/" + path.lstrip("/"),
                endpoint=endpoint,
                methods=[m.upper() for m in (methods or ["GET"])],
                tags=openapi_tags,
                body_schema=openapi_body_schema,
                parameters=openapi_parameters,
                security=openapi_security,
                roles=roles,
                status_code=status_code,
                summary=summary,
            )
        )

    def openapi(
        self,
        *,
        title: str = "API",
        version: str = "0.1.0",
        docs_path: str = "/docs",
        openapi_path: str = "/openapi.json",
        security_schemes: dict[str, Any] | None = None,
    ) -> Application:
        """Configure /openapi.json and /docs."""
        self._openapi = _OpenAPISettings(
            title=title,
            version=version,
            docs_path=docs_path,
            openapi_path=openapi_path,
            security_schemes=security_schemes,
        )
        return self

    def openapi_spec(self) -> dict[str, Any]:
        return build_openapi_spec(
            self._routes,
            title=self._openapi.title,
            version=self._openapi.version,
            security_schemes=self._openapi.security_schemes,
        )

    def _wrap(self, endpoint: Any) -> Callable[[Request], Any]:
        middlewares = self._middlewares

        async def wrapped(request: Request) -> Response:
            for mw in middlewares:
                result = await _maybe_await(mw(request))
                if result is not None:
                    return result
            return await endpoint(request)

        return wrapped

    def _docs_routes(self) -> list[Route]:
        settings = self._openapi

        async def openapi_json(request: Request) -> Response:
            return JSONResponse(self.openapi_spec())

        async def docs(request: Request) -> Response:
            return HTMLResponse(SWAGGER_UI_HTML.format(title=settings.title, openapi_path=settings.openapi_path))

        return [
            Route(settings.openapi_path, openapi_json, methods=["GET"], include_in_schema=False),
            Route(settings.docs_path, docs, methods=["GET"], include_in_schema=False),
        ]

    @contextlib.asynccontextmanager
    async def _lifespan(self, app: Starlette) -> AsyncIterator[None]:
        for hook in self._startup:
            await _maybe_await(hook())
        logger.info("Application started with %d routes", len(self._routes))
        yield
        for hook in self._shutdown:
            await _maybe_await(hook())

    def build(self) -> Starlette:
        """Build the Starlette app once; later calls return the same instance."""
        if self._asgi is not None:
            return self._asgi
        routes = [Route(r.path, self._wrap(r.endpoint), methods=r.methods) for r in self._routes]
        if self._openapi.enabled:
            routes.extend(self._docs_routes())
        middleware = []
        if self._cors_origins:
            middleware.append(
                Middleware(
                    CORSMiddleware,
                    allow_origins=self._cors_origins,
                    allow_methods=["*"],
                    allow_headers=["*"],
                    allow_credentials="*" not in self._cors_origins,
                )
            )
        self._asgi = Starlette(
            routes=routes,
            middleware=middleware,
            exception_handlers={
                ShopError: _handle_shop_error,
                HTTPException: _handle_http_exception,
                Exception: _handle_unexpected,
            },
            lifespan=self._lifespan,
        )
        return self._asgi

    async def __call__(self, scope: Any, receive: Any, send: Any) -> None:
        await self.build()(scope, receive, send)

    def run(self, host: str = "127.0.0.1", port: int = 8000, **kwargs: Any) -> None:
        """Run HTTP server (blocks)."""
        import uvicorn

        uvicorn.run(self.build(), host=host, port=port, **kwargs)


async def _handle_shop_error(request: Request, exc: ShopError) -> Response:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.debug("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return error_response(exc)


async def _handle_http_exception(request: Request, exc: HTTPException) -> Response:
    if exc.status_code == 404:
        code = "NOT_FOUND"
    elif exc.status_code == 405:
        code = "METHOD_NOT_ALLOWED"
    else:
        code = "HTTP_ERROR"
    error = ShopError(str(exc.detail))
    error.code = code
    error.status_code = exc.status_code
    return error_response(error)


async def _handle_unexpected(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(ShopError("Internal server error"))

"""
AccountsModule: auth routes plus the bearer-token middleware.
POST /auth/register, POST /auth/login, GET /auth/health.
"""
from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response

from sweetshop.core.app import Application
from sweetshop.core.module import Module
from sweetshop.core.openapi import schema_from_dataclass
from sweetshop.core.responses import JSONResponse
from sweetshop.core.routing import HttpModule
from sweetshop.ddd.domain_module import read_json
from sweetshop.ddd.payloads import build_payload

from .application import AuthService, LoginUser, RegisterUser
from .infrastructure import IUserRepository, UserRepositoryImpl
from .security import PasswordHasher, TokenService, bearer_auth


class AccountsModule(Module):
    def __init__(self, prefix: str = "/auth") -> None:
        self.prefix = prefix

    def register_into(self, app: Application) -> None:
        container = app.container
        container.register_class(PasswordHasher)
        container.register_class(TokenService)
        container.register_class(UserRepositoryImpl)
        container.register(IUserRepository, lambda: container.resolve(UserRepositoryImpl))
        container.register_class(AuthService)

        app.add_middleware(bearer_auth(container.resolve(TokenService)))

        async def register(request: Request) -> Response:
            cmd = build_payload(RegisterUser, await read_json(request))
            result = await container.resolve(AuthService).register(cmd)
            return JSONResponse(result, status_code=201)

        async def login(request: Request) -> Response:
            cmd = build_payload(LoginUser, await read_json(request))
            return JSONResponse(await container.resolve(AuthService).login(cmd))

        async def health(request: Request) -> Response:
            return JSONResponse({"status": "UP", "service": "auth"})

        routes = (
            HttpModule("auth", self.prefix)
            .route("register", register, ["POST"], openapi_body_schema=schema_from_dataclass(RegisterUser),
                   status_code=201)
            .route("login", login, ["POST"], openapi_body_schema=schema_from_dataclass(LoginUser))
            .route("health", health, ["GET"])
        )
        app.register(routes)

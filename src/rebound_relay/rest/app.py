"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rebound_relay.db.engine import close_db, init_db
from rebound_relay.errors import RelayError
from rebound_relay.rest.routes.health import router as health_router
from rebound_relay.rest.routes.me import router as me_router
from rebound_relay.rest.routes.organizations import router as organizations_router
from rebound_relay.rest.routes.rebound import router as rebound_router
from rebound_relay.rest.routes.relay import router as relay_router
from rebound_relay.rest.routes.super_admin import router as super_admin_router
from rebound_relay.rest.routes.webhooks import router as webhooks_router
from rebound_relay.settings import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    yield
    await close_db()


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.error, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": exc.message},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "message": "Invalid request data",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)


def install_routers(app: FastAPI) -> None:
    # Public routes
    app.include_router(health_router, tags=["health"])
    app.include_router(webhooks_router, prefix="/api", tags=["webhooks"])

    # Authenticated routes
    app.include_router(me_router, prefix="/api", tags=["me"])
    app.include_router(organizations_router, prefix="/api", tags=["organizations"])
    app.include_router(super_admin_router, prefix="/api", tags=["super-admin"])
    app.include_router(rebound_router, prefix="/api", tags=["rebound"])
    app.include_router(relay_router, prefix="/api", tags=["relay"])


def create_app() -> FastAPI:
    app = FastAPI(
        title="Rebound & Relay API",
        description="Consultant marketplace: organizations, credits, billing and payouts",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def clear_log_context(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(path=request.url.path, method=request.method)
        return await call_next(request)

    install_error_handlers(app)
    install_routers(app)
    return app

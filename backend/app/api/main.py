"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from app.api.errors import install_exception_handlers
from app.api.middleware import RequestIdMiddleware
from app.api.routers import health, metaapi
from app.broker.broker_adapter import BrokerFactory
from app.broker.metaapi import MetaApiBrokerAdapter
from app.config import AppConfig

logger = structlog.get_logger()


def endpoint_lines(app: FastAPI) -> list[str]:
    """Human-readable "METHOD /path" list of the routes we serve."""
    lines: list[str] = []
    for route in app.routes:
        if isinstance(route, APIRoute) and route.include_in_schema:
            for method in sorted(route.methods):
                lines.append(f"{method:<5}{route.path}")
    return lines


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config: AppConfig = app.state.config
    logger.info(
        "MetaAPI server running",
        url=f"http://{config.web.host}:{config.web.port}",
        endpoints=endpoint_lines(app),
    )
    yield
    logger.info("MetaAPI server stopped")


def create_app(
    config: AppConfig | None = None,
    broker_factory: BrokerFactory | None = None,
) -> FastAPI:
    """Build the gateway app.

    Args:
        config: Startup configuration; read from the environment if omitted.
        broker_factory: token -> BrokerAdapter. Defaults to the MetaApi SDK
            adapter; tests pass an in-memory fake.
    """
    config = config or AppConfig()

    app = FastAPI(
        title="MetaApi Gateway",
        version="0.1.0",
        description="Stateless HTTP facade over MetaApi trading accounts.",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.broker_factory = broker_factory or partial(
        MetaApiBrokerAdapter,
        config=config.provider,
    )

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    install_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(metaapi.router)
    return app

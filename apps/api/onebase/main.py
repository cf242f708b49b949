from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from onebase.api.errors import register_exception_handlers
from onebase.api.routes import router as api_router
from onebase.api.routes import system_router
from onebase.context import CORRELATION_HEADER
from onebase.core.config import Settings, get_settings
from onebase.core.database import Database
from onebase.logging import configure_logging
from onebase.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from onebase.otel import server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("onebase.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    database = Database(settings.database_url, echo=settings.database_echo)
    app.state.database = database
    logger.info("app.started")
    try:
        yield
    finally:
        database.dispose()
        logger.info("app.stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_HEADER],
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(system_router)

    setup_otel(settings)
    FastAPIInstrumentor().instrument_app(app, server_request_hook=server_request_hook)
    return app


app = create_app()

"""
Subscription Service - FastAPI Application
Tracks recurring subscriptions (who pays, for what, how much, over which months)
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from subservice.api.middleware import register_error_handlers, request_context_middleware
from subservice.api.routes import health, subscriptions
from subservice.config import Settings, get_settings
from subservice.core.exceptions import ConfigurationError, ConnectivityError, MigrationError
from subservice.core.logging import configure_logging
from subservice.database import acquire, release, safe_descriptor
from subservice.migrator import apply_migrations
from subservice.services.subscription_repository import SubscriptionRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Acquire the pool and migrate before serving; release the pool on shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting %s...", settings.app_name)
    logger.info(
        "Config loaded: env=%s database=%s max_connections=%s migrations=%s",
        settings.app_env,
        safe_descriptor(settings.database_url),
        settings.db_max_connections,
        settings.migrations_path,
    )

    try:
        engine = acquire(
            settings.database_url,
            settings.db_max_connections,
            attempts=settings.db_connect_attempts,
            timeout=settings.db_connect_timeout,
            statement_timeout=settings.request_timeout,
        )
    except (ConfigurationError, ConnectivityError) as exc:
        logger.error("Database is unusable (%s): %s", safe_descriptor(settings.database_url), exc)
        raise

    try:
        outcome = apply_migrations(settings.database_url, settings.migrations_path)
    except MigrationError as exc:
        logger.error("Failed to run migrations: %s", exc)
        release(engine)
        raise
    logger.info("Migrations finished: %s", outcome.value)

    app.state.engine = engine
    app.state.repository = SubscriptionRepository(engine)
    logger.info("API running on %s environment", settings.app_env)
    try:
        yield
    finally:
        logger.info("Shutting down %s...", settings.app_name)
        release(engine)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Recurring subscription records over month ranges",
        version="1.0.0",
        debug=settings.app_debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Respect forwarded client address/proto from a reverse proxy.
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")
    app.middleware("http")(request_context_middleware)
    register_error_handlers(app)

    @app.get("/")
    async def root() -> dict:
        return {
            "name": settings.app_name,
            "environment": settings.app_env,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    api_prefix = settings.api_prefix.rstrip("/")
    app.include_router(health.router, prefix=api_prefix, tags=["Health"])
    app.include_router(
        subscriptions.router,
        prefix=f"{api_prefix}/subscriptions",
        tags=["Subscriptions"],
    )
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "subservice.main:app",
        host=settings.http_host,
        port=settings.http_port,
        timeout_keep_alive=settings.http_idle_timeout,
        timeout_graceful_shutdown=settings.shutdown_timeout,
        log_config=None,
    )


if __name__ == "__main__":
    run()

"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routes and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryUserStore
from src.adapters.repository.postgres import PostgresUserStore, run_migrations
from src.api.dependencies import build_credential_service, build_dispatcher
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.tokens import TokenService

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Credential Lifecycle API v1 - Password and OTP registration and login",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the token service and notification dispatcher
    - Creates the user store (database pool + migrations for postgres)
    - Purges pending registrations whose OTP expired while we were down
    - Closes the connection pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    # Fails fast when JWT_SECRET_KEY is unset
    app.state.tokens = TokenService(settings.jwt_secret_key.get_secret_value())
    app.state.dispatcher = build_dispatcher(settings)
    logger.info("Notification backend: %s", settings.notification_backend)

    pool: ConnectionPool | None = None
    if settings.store_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        app.state.store = PostgresUserStore(pool)
    else:
        logger.warning("Using in-memory user store; records are lost on restart")
        app.state.store = InMemoryUserStore()

    service = build_credential_service(
        app.state.store, app.state.dispatcher, app.state.tokens, settings
    )
    service.purge_expired_registrations()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="trioauth",
    description="Credential Lifecycle API - Password and one-time-passcode authentication",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with store validation.

    Returns 200 OK if application and store are healthy.
    Raises exception if the store is unreachable.
    """
    request.app.state.store.ping()
    return {"status": "healthy"}

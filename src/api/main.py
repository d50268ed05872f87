"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routes and the lifespan that owns the registration store.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryRegistrationStore
from src.adapters.repository.postgres import PostgresRegistrationStore, run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.exceptions import StoreError

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Event Registration API v1 - Register for and cancel capacity-limited events",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the registration store on startup (pool + migrations for postgres,
      seeded events for memory)
    - Closes the connection pool on shutdown
    """
    settings = get_settings()
    pool: ConnectionPool | None = None

    logger.info("Starting application...")

    if settings.storage_backend == "memory":
        logger.info("Using in-memory registration store")
        store = InMemoryRegistrationStore()
        for seed in settings.seed_events:
            event = store.add_event(**seed.model_dump())
            logger.info("Seeded event %s: %s", event.id, event.title)
        app.state.store = store
    else:
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)

        app.state.store = PostgresRegistrationStore(pool)

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="seatguard",
    description="Event Registration API - capacity-limited registration without overbooking",
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

    Returns 200 OK if the store answers a round-trip query.
    """
    try:
        request.app.state.store.ping()
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable"
        ) from None

    return {"status": "healthy"}

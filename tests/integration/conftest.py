"""
Shared fixtures for integration tests.

PostgreSQL-backed fixtures skip the requesting test when the configured
database is unreachable, so the suite still runs without docker-compose.
"""

from collections.abc import Callable, Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresRegistrationStore, run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests, running migrations once."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty all tables before each test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE registrations, users, events RESTART IDENTITY CASCADE")
        conn.commit()
    yield


@pytest.fixture
def store(pool: ConnectionPool, clean_database: None) -> PostgresRegistrationStore:
    """Create store instance for each test."""
    return PostgresRegistrationStore(pool)


@pytest.fixture
def create_event(pool: ConnectionPool, clean_database: None) -> Callable[..., int]:
    """Factory inserting an event row and returning its id."""

    def _create_event(capacity: int = 10, title: str = "Integration Event") -> int:
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                """INSERT INTO events (title, event_date, location, capacity)
                   VALUES (%s, NOW() + INTERVAL '7 days', %s, %s)
                   RETURNING id""",
                (title, "Main Hall", capacity),
            )
            event_id = cursor.fetchone()[0]
            conn.commit()
        return event_id

    return _create_event

"""
PostgreSQL repository adapter - Implements RegistrationStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Concurrency Design - Per-Event Serialization:
---------------------------------------------
A unit of work is one database transaction on one pooled connection.

1. **SELECT ... FOR UPDATE on events**: EventCatalog.lock() takes a row lock
   on the event. Every register/cancel for that event queues behind it until
   the holder commits or rolls back, so the confirmed count read afterwards
   cannot be invalidated before the ledger write. Locks on different event
   rows never block each other.

2. **UNIQUE(email) on users**: resolve_or_create() inserts inside a
   savepoint. A racing insert of the same email waits for the first one and
   then fails with UniqueViolation; the savepoint is rolled back and the row
   committed by the winner is re-read.

3. **Conflict translation**: SerializationFailure and DeadlockDetected are
   raised to the domain as TransactionConflict so the service can retry the
   whole unit. Any other psycopg error becomes StoreError.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg
from psycopg import Connection, errors
from psycopg_pool import ConnectionPool

from src.domain.exceptions import StoreError, TransactionConflict
from src.domain.ports import Event, Registration, RegistrationDetail, RegistrationStatus, User

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = "id, title, capacity, event_date, location, description, created_at"
_USER_COLUMNS = "id, name, email, phone, created_at"
_REGISTRATION_COLUMNS = "id, user_id, event_id, status, registration_date"


def _event_from_row(row: tuple) -> Event:
    return Event(
        id=row[0],
        title=row[1],
        capacity=row[2],
        event_date=row[3],
        location=row[4],
        description=row[5],
        created_at=row[6],
    )


def _user_from_row(row: tuple) -> User:
    return User(id=row[0], name=row[1], email=row[2], phone=row[3], created_at=row[4])


def _registration_from_row(row: tuple) -> Registration:
    return Registration(
        id=row[0],
        user_id=row[1],
        event_id=row[2],
        status=RegistrationStatus(row[3]),
        registration_date=row[4],
    )


class PostgresEventCatalog:
    """Implements EventCatalog protocol on the unit's connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, event_id: int) -> Event | None:
        sql = f"SELECT {_EVENT_COLUMNS} FROM events WHERE id = %s"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (event_id,))
            row = cursor.fetchone()
        return _event_from_row(row) if row is not None else None

    def lock(self, event_id: int) -> Event | None:
        """
        Fetch the event and hold its row lock until the transaction ends.

        Blocks while another transaction holds the lock for the same event.
        """
        sql = f"SELECT {_EVENT_COLUMNS} FROM events WHERE id = %s FOR UPDATE"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (event_id,))
            row = cursor.fetchone()
        return _event_from_row(row) if row is not None else None


class PostgresUserDirectory:
    """Implements UserDirectory protocol on the unit's connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def resolve_or_create(self, email: str, name: str, phone: str | None) -> User:
        """
        Return the user for this email, inserting it when unknown.

        The UNIQUE(email) constraint is the source of truth: losing an insert
        race is not an error, the winner's row is returned instead.
        """
        select_sql = f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s"
        insert_sql = f"""
            INSERT INTO users (name, email, phone, created_at)
            VALUES (%s, %s, %s, NOW())
            RETURNING {_USER_COLUMNS}
        """

        with self._conn.cursor() as cursor:
            cursor.execute(select_sql, (email,))
            row = cursor.fetchone()
            if row is not None:
                return _user_from_row(row)

            try:
                # Savepoint: a unique violation must not abort the outer transaction
                with self._conn.transaction():
                    cursor.execute(insert_sql, (name, email, phone))
                    row = cursor.fetchone()
            except errors.UniqueViolation:
                logger.info("User %s created concurrently, re-reading", email)
                cursor.execute(select_sql, (email,))
                row = cursor.fetchone()

        if row is None:
            raise StoreError(f"User {email} could not be resolved")
        return _user_from_row(row)


class PostgresRegistrationLedger:
    """Implements RegistrationLedger protocol on the unit's connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, user_id: int, event_id: int) -> Registration | None:
        sql = f"""
            SELECT {_REGISTRATION_COLUMNS} FROM registrations
            WHERE user_id = %s AND event_id = %s
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (user_id, event_id))
            row = cursor.fetchone()
        return _registration_from_row(row) if row is not None else None

    def get_by_id(self, registration_id: int) -> Registration | None:
        sql = f"SELECT {_REGISTRATION_COLUMNS} FROM registrations WHERE id = %s"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (registration_id,))
            row = cursor.fetchone()
        return _registration_from_row(row) if row is not None else None

    def confirmed_count(self, event_id: int) -> int:
        sql = "SELECT COUNT(*) FROM registrations WHERE event_id = %s AND status = %s"
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (event_id, RegistrationStatus.CONFIRMED.value))
            row = cursor.fetchone()
        return row[0] if row is not None else 0

    def create_confirmed(self, user_id: int, event_id: int) -> Registration:
        sql = f"""
            INSERT INTO registrations (user_id, event_id, status, registration_date)
            VALUES (%s, %s, %s, NOW())
            RETURNING {_REGISTRATION_COLUMNS}
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (user_id, event_id, RegistrationStatus.CONFIRMED.value))
            row = cursor.fetchone()
        if row is None:
            raise StoreError(f"Registration for user {user_id} event {event_id} not created")
        return _registration_from_row(row)

    def set_status(self, registration_id: int, status: RegistrationStatus) -> Registration:
        # registration_date keeps its creation value
        sql = f"""
            UPDATE registrations SET status = %s
            WHERE id = %s
            RETURNING {_REGISTRATION_COLUMNS}
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (status.value, registration_id))
            row = cursor.fetchone()
        if row is None:
            raise StoreError(f"Registration {registration_id} vanished during update")
        return _registration_from_row(row)

    def list_for_email(self, email: str) -> list[RegistrationDetail]:
        sql = """
            SELECT r.id, r.user_id, r.event_id, r.status, r.registration_date,
                   e.id, e.title, e.capacity, e.event_date, e.location, e.description,
                   e.created_at,
                   u.id, u.name, u.email, u.phone, u.created_at
            FROM registrations r
            JOIN events e ON e.id = r.event_id
            JOIN users u ON u.id = r.user_id
            WHERE u.email = %s
            ORDER BY r.registration_date DESC, r.id DESC
        """
        with self._conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            rows = cursor.fetchall()
        return [
            RegistrationDetail(
                registration=_registration_from_row(row[0:5]),
                event=_event_from_row(row[5:12]),
                user=_user_from_row(row[12:17]),
            )
            for row in rows
        ]


class PostgresUnitOfWork:
    """Bundles the three repositories on one transaction."""

    def __init__(self, conn: Connection) -> None:
        self.events = PostgresEventCatalog(conn)
        self.users = PostgresUserDirectory(conn)
        self.ledger = PostgresRegistrationLedger(conn)


class PostgresRegistrationStore:
    """
    Implements RegistrationStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def unit_of_work(self) -> Iterator[PostgresUnitOfWork]:
        """
        Open a transaction and expose it as a unit of work.

        The pool commits the transaction when the block exits normally and
        rolls it back when it exits with an exception, so domain errors raised
        mid-unit leave no partial writes behind.
        """
        try:
            with self._pool.connection() as conn:
                yield PostgresUnitOfWork(conn)
        except (errors.SerializationFailure, errors.DeadlockDetected) as e:
            raise TransactionConflict(str(e)) from e
        except psycopg.Error as e:
            logger.error("Database error: %s", e)
            raise StoreError("Database error") from e

    def ping(self) -> None:
        """Run a trivial query to prove the database answers."""
        try:
            with self._pool.connection() as conn:
                conn.execute("SELECT 1")
        except psycopg.Error as e:
            logger.error("Database ping failed: %s", e)
            raise StoreError("Database unavailable") from e


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

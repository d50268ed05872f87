"""
In-memory repository adapter - Implements RegistrationStore protocol.

This module keeps events, users and registrations in process memory. It is
used by the `memory` storage backend (events seeded from settings) and by
tests that exercise the registration engine under real thread concurrency
without a database.

Concurrency Design:
-------------------
- One threading.Lock per event id stands in for the row lock taken by the
  PostgreSQL adapter. EventCatalog.lock() acquires it and the unit of work
  releases it on exit, so register/cancel calls on the same event are
  serialized and calls on different events are not.
- A store-wide data lock guards the dictionaries themselves. It is only
  held for single reads or writes, never across a whole unit.

Rollback:
---------
Writes are applied immediately. Ledger writes are recorded in the unit's
undo log and reverted when the unit exits with an exception, before its
event locks are released. Users created by a failed unit are kept: user
identity is idempotent and another unit may already have resolved it.
"""

import itertools
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

from src.domain.exceptions import StoreError
from src.domain.ports import Event, Registration, RegistrationDetail, RegistrationStatus, User

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRegistrationStore:
    """
    Implements RegistrationStore protocol with process-local state.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._data_lock = threading.RLock()
        self._event_locks: dict[int, threading.Lock] = {}
        self._events: dict[int, Event] = {}
        self._users: dict[int, User] = {}
        self._users_by_email: dict[str, int] = {}
        self._registrations: dict[int, Registration] = {}
        self._event_ids = itertools.count(1)
        self._user_ids = itertools.count(1)
        self._registration_ids = itertools.count(1)

    def add_event(
        self,
        title: str,
        capacity: int,
        event_date: datetime | None = None,
        location: str | None = None,
        description: str | None = None,
    ) -> Event:
        """Seed an event; events are read-only to the registration engine."""
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        with self._data_lock:
            event = Event(
                id=next(self._event_ids),
                title=title,
                capacity=capacity,
                event_date=event_date or _now(),
                location=location,
                description=description,
                created_at=_now(),
            )
            self._events[event.id] = event
            self._event_locks[event.id] = threading.Lock()
        return event

    # Inspection helpers for tests and diagnostics, not part of the store port.
    # The engine never calls them.

    def user_count(self, email: str | None = None) -> int:
        """Number of stored users, or 0/1 for a given email."""
        with self._data_lock:
            if email is None:
                return len(self._users)
            return 1 if email in self._users_by_email else 0

    def registrations_for(self, event_id: int) -> list[Registration]:
        """Every ledger row of an event, any status."""
        with self._data_lock:
            return [r for r in self._registrations.values() if r.event_id == event_id]

    def ping(self) -> None:
        """Always reachable."""

    @contextmanager
    def unit_of_work(self) -> Iterator["InMemoryUnitOfWork"]:
        unit = InMemoryUnitOfWork(self)
        try:
            yield unit
        except Exception:
            unit.rollback()
            raise
        finally:
            unit.release()


class InMemoryUnitOfWork:
    """
    Unit of work over the in-memory store.

    The event locks acquired through `events.lock()` are held until
    `release()`.
    """

    def __init__(self, store: InMemoryRegistrationStore) -> None:
        self._store = store
        self._held: list[threading.Lock] = []
        self._locked_events: set[int] = set()
        self._undo: list[Callable[[], None]] = []
        self.events = InMemoryEventCatalog(store, self)
        self.users = InMemoryUserDirectory(store)
        self.ledger = InMemoryRegistrationLedger(store, self)

    def hold(self, event_id: int, lock: threading.Lock) -> None:
        if event_id in self._locked_events:
            return
        lock.acquire()
        self._held.append(lock)
        self._locked_events.add(event_id)

    def record_undo(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self) -> None:
        with self._store._data_lock:
            while self._undo:
                self._undo.pop()()
        logger.debug("In-memory unit rolled back")

    def release(self) -> None:
        self._undo.clear()
        while self._held:
            self._held.pop().release()
        self._locked_events.clear()


class InMemoryEventCatalog:
    def __init__(self, store: InMemoryRegistrationStore, unit: InMemoryUnitOfWork) -> None:
        self._store = store
        self._unit = unit

    def get(self, event_id: int) -> Event | None:
        with self._store._data_lock:
            return self._store._events.get(event_id)

    def lock(self, event_id: int) -> Event | None:
        with self._store._data_lock:
            lock = self._store._event_locks.get(event_id)
        if lock is None:
            return None
        self._unit.hold(event_id, lock)
        return self.get(event_id)


class InMemoryUserDirectory:
    def __init__(self, store: InMemoryRegistrationStore) -> None:
        self._store = store

    def resolve_or_create(self, email: str, name: str, phone: str | None) -> User:
        with self._store._data_lock:
            user_id = self._store._users_by_email.get(email)
            if user_id is not None:
                return self._store._users[user_id]

            user = User(
                id=next(self._store._user_ids),
                name=name,
                email=email,
                phone=phone,
                created_at=_now(),
            )
            self._store._users[user.id] = user
            self._store._users_by_email[email] = user.id
            logger.debug("Created user %s for %s", user.id, email)
            return user


class InMemoryRegistrationLedger:
    def __init__(self, store: InMemoryRegistrationStore, unit: InMemoryUnitOfWork) -> None:
        self._store = store
        self._unit = unit

    def get(self, user_id: int, event_id: int) -> Registration | None:
        with self._store._data_lock:
            for registration in self._store._registrations.values():
                if registration.user_id == user_id and registration.event_id == event_id:
                    return registration
        return None

    def get_by_id(self, registration_id: int) -> Registration | None:
        with self._store._data_lock:
            return self._store._registrations.get(registration_id)

    def confirmed_count(self, event_id: int) -> int:
        with self._store._data_lock:
            return sum(
                1
                for r in self._store._registrations.values()
                if r.event_id == event_id and r.status == RegistrationStatus.CONFIRMED
            )

    def create_confirmed(self, user_id: int, event_id: int) -> Registration:
        registrations = self._store._registrations
        with self._store._data_lock:
            if self.get(user_id, event_id) is not None:
                raise StoreError(
                    f"Registration for user {user_id} event {event_id} already exists"
                )
            registration = Registration(
                id=next(self._store._registration_ids),
                user_id=user_id,
                event_id=event_id,
                status=RegistrationStatus.CONFIRMED,
                registration_date=_now(),
            )
            registrations[registration.id] = registration
            self._unit.record_undo(lambda: registrations.pop(registration.id, None))
            return registration

    def set_status(self, registration_id: int, status: RegistrationStatus) -> Registration:
        registrations = self._store._registrations
        with self._store._data_lock:
            current = registrations.get(registration_id)
            if current is None:
                raise StoreError(f"Registration {registration_id} does not exist")
            updated = replace(current, status=status)
            registrations[registration_id] = updated
            self._unit.record_undo(lambda: registrations.__setitem__(registration_id, current))
            return updated

    def list_for_email(self, email: str) -> list[RegistrationDetail]:
        with self._store._data_lock:
            user_id = self._store._users_by_email.get(email)
            if user_id is None:
                return []
            user = self._store._users[user_id]
            rows = [r for r in self._store._registrations.values() if r.user_id == user_id]
            rows.sort(key=lambda r: (r.registration_date, r.id), reverse=True)
            return [
                RegistrationDetail(
                    registration=r, event=self._store._events[r.event_id], user=user
                )
                for r in rows
            ]

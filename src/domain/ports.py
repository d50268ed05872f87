"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records exchanged with infrastructure and the
interfaces (ports) that the domain requires from it. Adapters implement
these protocols.
"""

from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class RegistrationStatus(str, Enum):
    """
    Status of a ledger row for one (user, event) pair.

    Transitions:
    - (none) -> CONFIRMED  (first successful registration)
    - CONFIRMED -> CANCELLED  (cancellation)
    - CANCELLED -> CONFIRMED  (reactivation, capacity re-checked)

    Rows are never deleted, so a pair owns at most one row for its lifetime.
    """

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str
    phone: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Event:
    """
    Event snapshot as read by the registration engine.

    confirmed_count is derived from the ledger at read time, it is not a
    stored column.
    """

    id: int
    title: str
    capacity: int
    event_date: datetime | None = None
    location: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    confirmed_count: int = 0

    @property
    def available_spots(self) -> int:
        return self.capacity - self.confirmed_count


@dataclass(frozen=True)
class Registration:
    id: int
    user_id: int
    event_id: int
    status: RegistrationStatus
    registration_date: datetime | None = None


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a successful register() call."""

    user: User
    event: Event
    registration: Registration
    reactivated: bool = False


@dataclass(frozen=True)
class RegistrationDetail:
    """A registration joined with its event and user, for attendee lookups."""

    registration: Registration
    event: Event
    user: User


class EventCatalog(Protocol):
    """Port interface for reading events."""

    def get(self, event_id: int) -> Event | None:
        """Read an event without taking any lock."""
        ...

    def lock(self, event_id: int) -> Event | None:
        """
        Read an event and enter its exclusion region.

        Until the enclosing unit of work ends, no other unit can lock the
        same event. Units locking different events do not wait on each other.

        Returns:
            The event, or None if it does not exist (no lock is held then)
        """
        ...


class UserDirectory(Protocol):
    """Port interface for user identity resolution."""

    def resolve_or_create(self, email: str, name: str, phone: str | None) -> User:
        """
        Return the user owning this email, creating it on first sight.

        An existing user is returned unchanged; name and phone are only used
        on creation. Concurrent creation of the same new email must end with
        exactly one row, and every caller receives that row.

        Raises:
            StoreError: On unrecoverable persistence failures
        """
        ...


class RegistrationLedger(Protocol):
    """Port interface for per-(user, event) registration state."""

    def get(self, user_id: int, event_id: int) -> Registration | None: ...

    def get_by_id(self, registration_id: int) -> Registration | None: ...

    def confirmed_count(self, event_id: int) -> int:
        """Count rows for this event currently in CONFIRMED status."""
        ...

    def create_confirmed(self, user_id: int, event_id: int) -> Registration:
        """Insert a new CONFIRMED row; registration_date is set here."""
        ...

    def set_status(self, registration_id: int, status: RegistrationStatus) -> Registration:
        """Change the status of an existing row, keeping id and registration_date."""
        ...

    def list_for_email(self, email: str) -> list[RegistrationDetail]:
        """
        All registrations of the user owning this email, any status.

        Newest registration_date first; empty when the email is unknown.
        """
        ...


class UnitOfWork(Protocol):
    """
    One atomic unit of reads and writes.

    Commits when the owning context manager exits normally and rolls back
    when it exits with an exception.
    """

    events: EventCatalog
    users: UserDirectory
    ledger: RegistrationLedger


class RegistrationStore(Protocol):
    """Port interface for the persistent store owned by the engine."""

    def unit_of_work(self) -> AbstractContextManager[UnitOfWork]:
        """
        Open a unit of work.

        Raises:
            TransactionConflict: If the unit lost a concurrency conflict
            StoreError: On any other persistence failure
        """
        ...

    def ping(self) -> None:
        """
        Round-trip to the backing store.

        Raises:
            StoreError: If the store cannot be reached
        """
        ...

"""
Registration domain service - capacity-gated event registration.

This module contains the core business logic for registering users to
capacity-limited events.

Registration Protocol
=====================

register(event_id, name, email, phone) runs as one unit of work:

    1. lock the event (per-event exclusion region)
    2. recompute confirmed_count from the ledger
    3. reject with CapacityExceeded when confirmed_count >= capacity
    4. resolve or create the user for the email
    5. create, reject (AlreadyRegistered) or reactivate the ledger row

Steps 2 and 5 must not be separated by another registration for the same
event, otherwise two requests that both saw the last free seat could both
confirm. The event lock taken in step 1 is held until the unit ends, which
serializes registrations per event while distinct events run in parallel.

Ledger State Machine
====================

    (none)    -> CONFIRMED  (first registration)
    CONFIRMED -> CANCELLED  (cancel)
    CANCELLED -> CONFIRMED  (re-registration, same row id and date)
    CANCELLED -> CANCELLED  (cancel again, no-op)

Units that lose a transaction conflict are retried a bounded number of
times before the conflict surfaces as StoreError.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from .exceptions import (
    AlreadyRegistered,
    CapacityExceeded,
    NotFound,
    StoreError,
    TransactionConflict,
    ValidationError,
)
from .ports import (
    Event,
    Registration,
    RegistrationDetail,
    RegistrationResult,
    RegistrationStatus,
    RegistrationStore,
    UnitOfWork,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RegistrationService:
    """
    Domain service for event registration.

    Owns the store-access abstraction and orchestrates user resolution,
    the capacity gate and ledger transitions inside one unit of work.
    """

    store: RegistrationStore
    max_conflict_retries: int = 3

    def register(
        self, event_id: int, name: str | None, email: str | None, phone: str | None = None
    ) -> RegistrationResult:
        """
        Register the user identified by email for an event.

        Args:
            event_id: Target event id
            name: Display name, only used when the user is created
            email: Identity key (case-sensitive exact match)
            phone: Optional phone, only used when the user is created

        Returns:
            RegistrationResult with the user, the event snapshot taken before
            the write, and the resulting registration

        Raises:
            ValidationError: If name or email is missing
            NotFound: If the event does not exist
            CapacityExceeded: If the event is full
            AlreadyRegistered: If a confirmed registration already exists
            StoreError: On persistence failure or exhausted conflict retries
        """
        if not name or not name.strip() or not email or not email.strip():
            raise ValidationError("Name and email are required")
        if phone is not None and not phone.strip():
            phone = None

        result = self._run(
            "register",
            lambda unit: self._register_in_unit(unit, event_id, name, email, phone),
        )
        logger.info(
            "Registration %s for event %s: id=%s user=%s",
            "reactivated" if result.reactivated else "confirmed",
            event_id,
            result.registration.id,
            result.user.id,
        )
        return result

    def cancel(self, registration_id: int) -> Registration:
        """
        Cancel a registration.

        Cancelling an already cancelled registration is a no-op success.

        Raises:
            NotFound: If the registration does not exist
            StoreError: On persistence failure or exhausted conflict retries
        """
        registration = self._run(
            "cancel", lambda unit: self._cancel_in_unit(unit, registration_id)
        )
        logger.info("Registration %s cancelled", registration_id)
        return registration

    def get_event(self, event_id: int) -> Event:
        """
        Read an event together with its current confirmed count.

        Raises:
            NotFound: If the event does not exist
        """

        def read(unit: UnitOfWork) -> Event:
            event = unit.events.get(event_id)
            if event is None:
                raise NotFound(f"Event {event_id} not found")
            return replace(event, confirmed_count=unit.ledger.confirmed_count(event_id))

        return self._run("get_event", read)

    def registrations_for_email(self, email: str | None) -> list[RegistrationDetail]:
        """
        List every registration of the attendee owning this email.

        Cancelled registrations are included so that attendees can find the
        id to reactivate. An unknown email yields an empty list.

        Raises:
            ValidationError: If email is missing
        """
        if not email or not email.strip():
            raise ValidationError("Email is required")
        return self._run(
            "registrations_for_email", lambda unit: unit.ledger.list_for_email(email)
        )

    def confirmed_count(self, event_id: int) -> int:
        return self.get_event(event_id).confirmed_count

    def available_spots(self, event_id: int) -> int:
        return self.get_event(event_id).available_spots

    def _register_in_unit(
        self,
        unit: UnitOfWork,
        event_id: int,
        name: str,
        email: str,
        phone: str | None,
    ) -> RegistrationResult:
        event = unit.events.lock(event_id)
        if event is None:
            raise NotFound(f"Event {event_id} not found")

        # Must be read under the event lock, never cached.
        confirmed = unit.ledger.confirmed_count(event_id)
        snapshot = replace(event, confirmed_count=confirmed)
        if confirmed >= event.capacity:
            raise CapacityExceeded(f"Event {event_id} is full")

        user = unit.users.resolve_or_create(email, name, phone)

        existing = unit.ledger.get(user.id, event_id)
        if existing is None:
            registration = unit.ledger.create_confirmed(user.id, event_id)
            return RegistrationResult(user=user, event=snapshot, registration=registration)

        if existing.status == RegistrationStatus.CONFIRMED:
            raise AlreadyRegistered(f"{email} is already registered for event {event_id}")

        registration = unit.ledger.set_status(existing.id, RegistrationStatus.CONFIRMED)
        return RegistrationResult(
            user=user, event=snapshot, registration=registration, reactivated=True
        )

    def _cancel_in_unit(self, unit: UnitOfWork, registration_id: int) -> Registration:
        registration = unit.ledger.get_by_id(registration_id)
        if registration is None:
            raise NotFound(f"Registration {registration_id} not found")

        # Same exclusion region as register() so a cancel never interleaves
        # with a capacity check on the same event.
        unit.events.lock(registration.event_id)
        registration = unit.ledger.get_by_id(registration_id)
        if registration is None:
            raise NotFound(f"Registration {registration_id} not found")

        if registration.status == RegistrationStatus.CANCELLED:
            return registration
        return unit.ledger.set_status(registration.id, RegistrationStatus.CANCELLED)

    def _run(self, operation: str, work: Callable[[UnitOfWork], T]) -> T:
        """
        Execute work inside a unit of work, retrying lost conflicts.

        Only TransactionConflict is retried, up to max_conflict_retries times
        after the first attempt. Domain errors raised by work roll the unit
        back and propagate unchanged.
        """
        attempts = max(0, self.max_conflict_retries) + 1
        last_error: TransactionConflict | None = None
        for attempt in range(1, attempts + 1):
            try:
                with self.store.unit_of_work() as unit:
                    return work(unit)
            except TransactionConflict as e:
                logger.warning(
                    "Transaction conflict in %s (attempt %d/%d): %s",
                    operation,
                    attempt,
                    attempts,
                    e,
                )
                last_error = e
        raise StoreError(
            f"{operation} failed after {attempts} conflicting attempts"
        ) from last_error

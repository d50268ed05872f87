"""
Domain exceptions - Semantic error types for event registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class NotFound(RegistrationError):
    """Event or registration id is unknown."""

    pass


class ValidationError(RegistrationError):
    """Required identity fields (name, email) are missing."""

    pass


class CapacityExceeded(RegistrationError):
    """Event has no free seat at the time of the check."""

    pass


class AlreadyRegistered(RegistrationError):
    """A confirmed registration already exists for the (user, event) pair."""

    pass


class StoreError(RegistrationError):
    """Underlying persistence failure."""

    pass


class TransactionConflict(StoreError):
    """Concurrent transaction conflict; the unit of work may be retried."""

    pass

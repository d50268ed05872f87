"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration engine for capacity-limited events.
It defines its own port interfaces for infrastructure abstraction, ensuring
true hexagonal architecture decoupling.
"""

from .exceptions import (
    AlreadyRegistered,
    CapacityExceeded,
    NotFound,
    RegistrationError,
    StoreError,
    TransactionConflict,
    ValidationError,
)
from .ports import (
    Event,
    EventCatalog,
    Registration,
    RegistrationDetail,
    RegistrationLedger,
    RegistrationResult,
    RegistrationStatus,
    RegistrationStore,
    UnitOfWork,
    User,
    UserDirectory,
)
from .registration import RegistrationService

__all__ = [
    "AlreadyRegistered",
    "CapacityExceeded",
    "Event",
    "EventCatalog",
    "NotFound",
    "Registration",
    "RegistrationDetail",
    "RegistrationError",
    "RegistrationLedger",
    "RegistrationResult",
    "RegistrationService",
    "RegistrationStatus",
    "RegistrationStore",
    "StoreError",
    "TransactionConflict",
    "UnitOfWork",
    "User",
    "UserDirectory",
    "ValidationError",
]

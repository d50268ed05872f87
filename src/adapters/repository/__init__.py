"""Repository adapters - Store implementations."""

from .memory import InMemoryRegistrationStore
from .postgres import PostgresRegistrationStore, run_migrations

__all__ = ["InMemoryRegistrationStore", "PostgresRegistrationStore", "run_migrations"]

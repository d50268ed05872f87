"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory registration store with seeded events
- Registration service wired to that store
"""

from collections.abc import Callable

import pytest

from src.adapters.repository.memory import InMemoryRegistrationStore
from src.domain.ports import Event
from src.domain.registration import RegistrationService


@pytest.fixture
def memory_store() -> InMemoryRegistrationStore:
    """Fresh in-memory store for each test."""
    return InMemoryRegistrationStore()


@pytest.fixture
def make_event(memory_store: InMemoryRegistrationStore) -> Callable[..., Event]:
    """Factory seeding events into the in-memory store."""

    def _make_event(capacity: int = 10, title: str = "Test Event") -> Event:
        return memory_store.add_event(title=title, capacity=capacity, location="Main Hall")

    return _make_event


@pytest.fixture
def memory_service(memory_store: InMemoryRegistrationStore) -> RegistrationService:
    """Registration service backed by the in-memory store."""
    return RegistrationService(store=memory_store)

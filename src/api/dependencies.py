"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Request

from src.config.settings import get_settings
from src.domain.ports import RegistrationStore
from src.domain.registration import RegistrationService


def get_store(request: Request) -> RegistrationStore:
    """
    Get the registration store from app state.

    The store is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.store


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires the store from app state with the configured retry budget.
    """
    settings = get_settings()
    return RegistrationService(
        store=get_store(request),
        max_conflict_retries=settings.max_conflict_retries,
    )

"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.ports import Event, Registration, RegistrationDetail, RegistrationStatus, User


class RegisterRequest(BaseModel):
    """
    Request model for event registration.

    name and email are optional here so that a missing field is reported by
    the domain presence check (400) rather than as a schema error.
    """

    name: str | None = Field(default=None, description="Attendee display name")
    email: str | None = Field(default=None, description="Attendee email, the identity key")
    phone: str | None = Field(default=None, description="Optional phone number")


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            created_at=user.created_at,
        )


class EventResponse(BaseModel):
    """Event with its derived registration counts."""

    id: int
    title: str
    description: str | None = None
    event_date: datetime | None = None
    location: str | None = None
    capacity: int
    confirmed_count: int
    available_spots: int
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            event_date=event.event_date,
            location=event.location,
            capacity=event.capacity,
            confirmed_count=event.confirmed_count,
            available_spots=event.available_spots,
            created_at=event.created_at,
        )


class RegistrationResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    status: RegistrationStatus
    registration_date: datetime | None = None

    @classmethod
    def from_domain(cls, registration: Registration) -> "RegistrationResponse":
        return cls(
            id=registration.id,
            user_id=registration.user_id,
            event_id=registration.event_id,
            status=registration.status,
            registration_date=registration.registration_date,
        )


class UserRegistrationResponse(BaseModel):
    """One registration of an attendee, flattened with its event and user."""

    id: int
    user_id: int
    event_id: int
    status: RegistrationStatus
    registration_date: datetime | None = None
    event_title: str
    event_description: str | None = None
    event_date: datetime | None = None
    location: str | None = None
    user_name: str
    user_email: str

    @classmethod
    def from_domain(cls, detail: RegistrationDetail) -> "UserRegistrationResponse":
        registration = detail.registration
        return cls(
            id=registration.id,
            user_id=registration.user_id,
            event_id=registration.event_id,
            status=registration.status,
            registration_date=registration.registration_date,
            event_title=detail.event.title,
            event_description=detail.event.description,
            event_date=detail.event.event_date,
            location=detail.event.location,
            user_name=detail.user.name,
            user_email=detail.user.email,
        )


class RegisterResponse(BaseModel):
    """Response model for successful registration or reactivation."""

    message: str
    user: UserResponse
    event: EventResponse
    registration: RegistrationResponse


class CancelResponse(BaseModel):
    """Response model for successful cancellation."""

    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str

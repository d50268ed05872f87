"""
API v1 routes.

Defines REST endpoints for event registration.

Routes are plain `def` functions: FastAPI runs them in its threadpool, so a
registration waiting on an event lock never blocks the event loop.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import get_registration_service
from src.api.models import (
    CancelResponse,
    ErrorResponse,
    EventResponse,
    RegisterRequest,
    RegisterResponse,
    RegistrationResponse,
    UserRegistrationResponse,
    UserResponse,
)
from src.domain.exceptions import (
    AlreadyRegistered,
    CapacityExceeded,
    NotFound,
    StoreError,
    ValidationError,
)
from src.domain.registration import RegistrationService

router = APIRouter(tags=["v1"])


@router.get(
    "/events/{event_id}",
    response_model=EventResponse,
    responses={404: {"model": ErrorResponse, "description": "Event not found"}},
    summary="Get event availability",
    description="Return an event with its confirmed count and remaining spots.",
)
def get_event(
    event_id: int,
    service: RegistrationService = Depends(get_registration_service),
) -> EventResponse:
    try:
        event = service.get_event(event_id)
    except NotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        ) from None
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database error"
        ) from None
    return EventResponse.from_domain(event)


@router.post(
    "/events/{event_id}/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": RegisterResponse, "description": "Cancelled registration reactivated"},
        400: {"model": ErrorResponse, "description": "Name and email are required"},
        404: {"model": ErrorResponse, "description": "Event not found"},
        409: {"model": ErrorResponse, "description": "Event full or already registered"},
        503: {"model": ErrorResponse, "description": "Database error"},
    },
    summary="Register for an event",
    description="Register an attendee, identified by email, for an event. "
    "The attendee is created on first registration.",
)
def register(
    event_id: int,
    request_data: RegisterRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
) -> RegisterResponse:
    """
    Register for an event.

    - **name**: Attendee name (required)
    - **email**: Attendee email (required, identity key)
    - **phone**: Optional phone number

    Returns 201 for a new registration and 200 when a cancelled
    registration is reactivated.
    """
    try:
        result = service.register(
            event_id, request_data.name, request_data.email, request_data.phone
        )
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and email are required",
        ) from None
    except NotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        ) from None
    except CapacityExceeded:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Event is full"
        ) from None
    except AlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Already registered for this event",
        ) from None
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to register"
        ) from None

    if result.reactivated:
        response.status_code = status.HTTP_200_OK
    return RegisterResponse(
        message="Registration confirmed" if result.reactivated else "Registration successful",
        user=UserResponse.from_domain(result.user),
        event=EventResponse.from_domain(result.event),
        registration=RegistrationResponse.from_domain(result.registration),
    )


@router.delete(
    "/registrations/{registration_id}",
    response_model=CancelResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Registration not found"},
        503: {"model": ErrorResponse, "description": "Database error"},
    },
    summary="Cancel a registration",
    description="Cancel a registration. Cancelling twice is not an error.",
)
def cancel_registration(
    registration_id: int,
    service: RegistrationService = Depends(get_registration_service),
) -> CancelResponse:
    try:
        service.cancel(registration_id)
    except NotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found"
        ) from None
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database error"
        ) from None
    return CancelResponse(message="Registration cancelled successfully")


@router.get(
    "/users/{email}/registrations",
    response_model=list[UserRegistrationResponse],
    responses={
        400: {"model": ErrorResponse, "description": "Email is required"},
        503: {"model": ErrorResponse, "description": "Database error"},
    },
    summary="List an attendee's registrations",
    description="Return every registration of the attendee owning this email, "
    "newest first, including cancelled ones. An unknown email yields an empty list.",
)
def list_user_registrations(
    email: str,
    service: RegistrationService = Depends(get_registration_service),
) -> list[UserRegistrationResponse]:
    try:
        details = service.registrations_for_email(email)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required"
        ) from None
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database error"
        ) from None
    return [UserRegistrationResponse.from_domain(detail) for detail in details]

"""
Unit tests for API v1 routes.

Tests endpoint responses and error mapping with a mocked service.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.dependencies import get_registration_service
from src.api.v1.routes import router
from src.domain.exceptions import (
    AlreadyRegistered,
    CapacityExceeded,
    NotFound,
    StoreError,
    ValidationError,
)
from src.domain.ports import (
    Event,
    Registration,
    RegistrationDetail,
    RegistrationResult,
    RegistrationStatus,
    User,
)
from src.domain.registration import RegistrationService

CREATED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_result(reactivated: bool = False) -> RegistrationResult:
    return RegistrationResult(
        user=User(id=7, name="Ada", email="ada@example.com", phone=None, created_at=CREATED),
        event=Event(id=1, title="Meetup", capacity=10, confirmed_count=4),
        registration=Registration(
            id=11,
            user_id=7,
            event_id=1,
            status=RegistrationStatus.CONFIRMED,
            registration_date=CREATED,
        ),
        reactivated=reactivated,
    )


@pytest.fixture
def mock_service() -> MagicMock:
    return MagicMock(spec=RegistrationService)


@pytest.fixture
def client(mock_service: MagicMock) -> TestClient:
    """Create test client with the service dependency overridden."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/v1")
    test_app.dependency_overrides[get_registration_service] = lambda: mock_service
    return TestClient(test_app)


class TestRegisterEndpoint:
    """Tests for POST /v1/events/{event_id}/register."""

    def test_register_success_returns_201(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        """New registration returns 201 with the full triple."""
        mock_service.register.return_value = make_result()

        response = client.post(
            "/v1/events/1/register",
            json={"name": "Ada", "email": "ada@example.com", "phone": "555-0100"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Registration successful"
        assert body["registration"]["id"] == 11
        assert body["event"]["available_spots"] == 6
        mock_service.register.assert_called_once_with(1, "Ada", "ada@example.com", "555-0100")

    def test_reactivation_returns_200(self, client: TestClient, mock_service: MagicMock) -> None:
        """Reactivated registration returns 200."""
        mock_service.register.return_value = make_result(reactivated=True)

        response = client.post(
            "/v1/events/1/register", json={"name": "Ada", "email": "ada@example.com"}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Registration confirmed"

    @pytest.mark.parametrize(
        "error,status_code,detail",
        [
            (ValidationError("missing"), 400, "Name and email are required"),
            (NotFound("event"), 404, "Event not found"),
            (CapacityExceeded("full"), 409, "Event is full"),
            (AlreadyRegistered("dup"), 409, "Already registered for this event"),
            (StoreError("db down"), 503, "Failed to register"),
        ],
    )
    def test_domain_errors_mapped(
        self,
        client: TestClient,
        mock_service: MagicMock,
        error: Exception,
        status_code: int,
        detail: str,
    ) -> None:
        """Each domain error maps to its status code and message."""
        mock_service.register.side_effect = error

        response = client.post(
            "/v1/events/1/register", json={"name": "Ada", "email": "ada@example.com"}
        )

        assert response.status_code == status_code
        assert response.json() == {"detail": detail}

    def test_missing_fields_reach_service(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        """Absent name/email are passed as None for the domain presence check."""
        mock_service.register.side_effect = ValidationError("missing")

        client.post("/v1/events/1/register", json={})

        mock_service.register.assert_called_once_with(1, None, None, None)

    def test_non_integer_event_id_rejected(self, client: TestClient) -> None:
        """Path validation rejects non-integer event ids."""
        response = client.post(
            "/v1/events/abc/register", json={"name": "Ada", "email": "ada@example.com"}
        )

        assert response.status_code == 422


class TestCancelEndpoint:
    """Tests for DELETE /v1/registrations/{registration_id}."""

    def test_cancel_success(self, client: TestClient, mock_service: MagicMock) -> None:
        """Cancellation returns a confirmation message."""
        response = client.delete("/v1/registrations/11")

        assert response.status_code == 200
        assert response.json() == {"message": "Registration cancelled successfully"}
        mock_service.cancel.assert_called_once_with(11)

    def test_cancel_not_found(self, client: TestClient, mock_service: MagicMock) -> None:
        """Unknown registration returns 404."""
        mock_service.cancel.side_effect = NotFound("registration")

        response = client.delete("/v1/registrations/999999")

        assert response.status_code == 404
        assert response.json() == {"detail": "Registration not found"}

    def test_cancel_store_error(self, client: TestClient, mock_service: MagicMock) -> None:
        """Persistence failure returns 503."""
        mock_service.cancel.side_effect = StoreError("db down")

        assert client.delete("/v1/registrations/11").status_code == 503


class TestEventEndpoint:
    """Tests for GET /v1/events/{event_id}."""

    def test_get_event(self, client: TestClient, mock_service: MagicMock) -> None:
        """Event is returned with derived counts."""
        mock_service.get_event.return_value = Event(
            id=1, title="Meetup", capacity=10, confirmed_count=10
        )

        body = client.get("/v1/events/1").json()

        assert body["confirmed_count"] == 10
        assert body["available_spots"] == 0

    def test_get_event_not_found(self, client: TestClient, mock_service: MagicMock) -> None:
        """Unknown event returns 404."""
        mock_service.get_event.side_effect = NotFound("event")

        assert client.get("/v1/events/5").status_code == 404


class TestUserRegistrationsEndpoint:
    """Tests for GET /v1/users/{email}/registrations."""

    def test_lists_flattened_registrations(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        result = make_result()
        mock_service.registrations_for_email.return_value = [
            RegistrationDetail(
                registration=result.registration, event=result.event, user=result.user
            )
        ]

        response = client.get("/v1/users/ada@example.com/registrations")

        assert response.status_code == 200
        assert response.json() == [
            {
                "id": 11,
                "user_id": 7,
                "event_id": 1,
                "status": "confirmed",
                "registration_date": "2026-03-01T12:00:00Z",
                "event_title": "Meetup",
                "event_description": None,
                "event_date": None,
                "location": None,
                "user_name": "Ada",
                "user_email": "ada@example.com",
            }
        ]
        mock_service.registrations_for_email.assert_called_once_with("ada@example.com")

    @pytest.mark.parametrize(
        "error,status_code,detail",
        [
            (ValidationError("Email is required"), 400, "Email is required"),
            (StoreError("down"), 503, "Database error"),
        ],
    )
    def test_errors_mapped(
        self, client: TestClient, mock_service: MagicMock, error, status_code, detail
    ) -> None:
        mock_service.registrations_for_email.side_effect = error

        response = client.get("/v1/users/ada@example.com/registrations")

        assert response.status_code == status_code
        assert response.json() == {"detail": detail}

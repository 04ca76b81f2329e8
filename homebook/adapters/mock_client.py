"""
Mock storefront client for trying the CLI without a running backend.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Set

from ..domain.exceptions import (
    AlreadyCancelledError,
    ConflictError,
    FieldValidationError,
    NotFoundError,
    ValidationError,
)
from ..domain.models import (
    AuthSession,
    Booking,
    BookingRequest,
    BookingStatus,
    Confirmation,
    Registration,
    Service,
    ServiceSummary,
    UserProfile,
)
from ..domain.time_window import format_12_hour
from .schemas import BookingPayload, ServicePayload, UserPayload, parse_list, parse_model


class MockStorefrontClient:
    """
    Mock client that simulates the storefront API.

    Services, bookings and the user profile are loaded from
    mock_storefront_data.json. Writes only live in memory.
    """

    def __init__(self, data_file: Path | None = None):
        """
        Initialize the mock client.

        Args:
            data_file: Optional JSON file to load instead of the bundled one
        """
        self.data_file = data_file or Path(__file__).parent / "mock_storefront_data.json"
        self._load_data()

    def _load_data(self):
        """Load mock data from the JSON file."""
        data: Dict[str, Any] = {}
        if self.data_file.exists():
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)

        self.services: Dict[int, Service] = {
            payload.id: payload.to_domain()
            for payload in parse_list(ServicePayload, data.get("services", []))
        }
        self.bookings: Dict[int, Booking] = {
            payload.id: payload.to_domain()
            for payload in parse_list(BookingPayload, data.get("bookings", []))
        }
        self.profile = parse_model(
            UserPayload,
            data.get("user", {"username": "mock.user", "email": "mock.user@example.com"}),
        ).to_domain()
        self._next_id = max(self.bookings, default=0) + 1
        self.registered_usernames: Set[str] = set()

    async def login(self, email: str, password: str) -> AuthSession:
        return AuthSession(access_token="mock_access_token", refresh_token="mock_refresh_token")

    async def logout(self) -> None:
        """Mock logout (nothing to revoke)."""

    async def register(self, registration: Registration) -> str:
        taken = {self.profile.username} | self.registered_usernames
        if registration.profile.username in taken:
            message = "A user with that username already exists."
            raise FieldValidationError(f"username: {message}", fields={"username": [message]})
        self.registered_usernames.add(registration.profile.username)
        return "Account created (mock)."

    async def confirm_password_reset(self, token: str, password: str) -> str:
        if not token:
            raise ValidationError("Invalid or missing reset token.")
        if not password:
            raise ValidationError("Please enter a password.")
        return "Password reset (mock)."

    async def get_profile(self) -> UserProfile:
        return self.profile

    async def update_profile(self, profile: UserProfile) -> UserProfile:
        self.profile = profile
        return profile

    async def list_services(self) -> List[Service]:
        return list(self.services.values())

    async def get_service(self, service_id: int) -> Service:
        if service_id not in self.services:
            raise NotFoundError()
        return self.services[service_id]

    async def list_my_bookings(self) -> List[Booking]:
        return list(self.bookings.values())

    async def create_booking(self, request: BookingRequest) -> Confirmation:
        service = await self.get_service(request.service_id)
        self._ensure_slot_free(request)

        booking_id = self._next_id
        self._next_id += 1
        self.bookings[booking_id] = self._to_booking(booking_id, request, service)

        return Confirmation(
            booking_id=booking_id,
            date=request.date,
            time=request.time,
            total=request.total,
            message="Booking created (mock).",
        )

    async def update_booking(self, booking_id: int, request: BookingRequest) -> Confirmation:
        if booking_id not in self.bookings:
            raise NotFoundError("Booking not found.")
        service = await self.get_service(request.service_id)
        self._ensure_slot_free(request, ignore_id=booking_id)

        self.bookings[booking_id] = self._to_booking(booking_id, request, service)

        return Confirmation(
            booking_id=booking_id,
            date=request.date,
            time=request.time,
            total=request.total,
            message="Booking rescheduled (mock).",
        )

    async def cancel_booking(self, booking_id: int) -> None:
        if self.bookings.pop(booking_id, None) is None:
            raise AlreadyCancelledError()

    def _ensure_slot_free(self, request: BookingRequest, ignore_id: int | None = None) -> None:
        """Mirror the backend's unique (service, date, time) constraint."""
        for booking in self.bookings.values():
            if booking.id == ignore_id or booking.service is None:
                continue
            if (
                booking.service.id == request.service_id
                and booking.date == request.date
                and booking.time == request.time
            ):
                raise ConflictError(
                    date=request.date.isoformat(),
                    time_label=format_12_hour(request.time),
                )

    @staticmethod
    def _to_booking(booking_id: int, request: BookingRequest, service: Service) -> Booking:
        return Booking(
            id=booking_id,
            date=request.date,
            time=request.time,
            is_editable=True,
            status=BookingStatus.SCHEDULED,
            price_at_booking=request.total,
            service=ServiceSummary(id=service.id, title=service.title, location=service.location),
            work_item_ids=list(request.selected_item_ids),
        )

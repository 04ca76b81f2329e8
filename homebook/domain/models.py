"""
Domain models for time-of-day values, business instants and storefront entities.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List

import pendulum
from pendulum import DateTime

from .exceptions import ParseError, ValidationError

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """
    A wall-clock time in the business time zone.

    Invariant: hour is 0-23 and minute is 0-59.
    """
    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Minute must be between 0 and 59, got {self.minute}")

    @classmethod
    def parse(cls, text: str) -> "TimeOfDay":
        """
        Parse a 24-hour ``HH:MM`` string.

        A trailing ``:SS`` is tolerated because the backend serializes
        booking times with seconds.

        Raises:
            ParseError: If the text is not a valid 24-hour time
        """
        match = _TIME_PATTERN.match(text.strip()) if isinstance(text, str) else None
        if not match:
            raise ParseError(f"Invalid time format: {text!r}. Use HH:MM.")

        try:
            return cls(hour=int(match.group(1)), minute=int(match.group(2)))
        except ValueError as exc:
            raise ParseError(f"Invalid time: {text!r} ({exc})") from exc

    @property
    def minute_of_day(self) -> int:
        """Minutes elapsed since midnight."""
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def parse_calendar_date(text: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` string into a calendar date.

    Raises:
        ParseError: If the text is not a valid date
    """
    try:
        return pendulum.from_format(str(text).strip(), "YYYY-MM-DD").date()
    except ValueError as exc:
        raise ParseError(f"Invalid date format: {text!r}. Use YYYY-MM-DD.") from exc


@dataclass(frozen=True, order=True)
class BusinessInstant:
    """
    An absolute instant expressed in the business time zone.

    Wraps a timezone-aware pendulum DateTime. Comparisons are made on the
    absolute instant, so two values built in different zones still order
    correctly.
    """
    moment: DateTime

    @classmethod
    def of(cls, day: date, time_of_day: TimeOfDay, timezone: str) -> "BusinessInstant":
        """Combine a calendar date and time of day in the given zone."""
        return cls(
            pendulum.datetime(
                day.year,
                day.month,
                day.day,
                time_of_day.hour,
                time_of_day.minute,
                tz=timezone,
            )
        )

    @classmethod
    def from_datetime(cls, value, timezone: str) -> "BusinessInstant":
        """
        Convert any datetime into the business zone.

        Naive datetimes are taken as business-zone wall time.
        """
        return cls(pendulum.instance(value, tz=timezone).in_timezone(timezone))

    @property
    def date(self) -> date:
        return self.moment.date()

    @property
    def time(self) -> TimeOfDay:
        return TimeOfDay(hour=self.moment.hour, minute=self.moment.minute)

    @property
    def timezone(self) -> str:
        return self.moment.timezone_name

    def at(self, time_of_day: TimeOfDay) -> "BusinessInstant":
        """Return the instant at another time of day on the same calendar date."""
        return BusinessInstant(
            self.moment.set(
                hour=time_of_day.hour,
                minute=time_of_day.minute,
                second=0,
                microsecond=0,
            )
        )

    def __str__(self) -> str:
        return self.moment.format("YYYY-MM-DD HH:mm")


@dataclass(frozen=True)
class WorkItem:
    """A priced, selectable line item of a service (a "work specification")."""
    id: int
    name: str
    unit_price: Decimal


@dataclass(frozen=True)
class Service:
    """A bookable home service and its work item catalog."""
    id: int
    title: str
    category: str = ""
    description: str = ""
    location: str | None = None
    work_items: List[WorkItem] = field(default_factory=list)


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ServiceSummary:
    """The service fields the backend embeds in a booking."""
    id: int
    title: str
    location: str | None = None


@dataclass(frozen=True)
class Booking:
    """
    A booking as owned by the backend. Read-only on the client.
    """
    id: int
    date: date
    time: TimeOfDay
    is_editable: bool
    status: BookingStatus
    price_at_booking: Decimal | None = None
    service: ServiceSummary | None = None
    work_item_ids: List[int] = field(default_factory=list)

    def instant(self, timezone: str) -> BusinessInstant:
        """Scheduled moment of this booking in the business zone."""
        return BusinessInstant.of(self.date, self.time, timezone)


@dataclass(frozen=True)
class BookingRequest:
    """Payload for creating or rescheduling a booking."""
    service_id: int
    date: date
    time: TimeOfDay
    selected_item_ids: List[int]
    total: Decimal

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the backend's field names."""
        return {
            "service": self.service_id,
            "booking_date": self.date.isoformat(),
            "booking_time": str(self.time),
            "work_specifications": sorted(self.selected_item_ids),
            "price": f"{self.total:.2f}",
        }


@dataclass(frozen=True)
class Confirmation:
    """Backend acknowledgement of a created or updated booking."""
    booking_id: int
    date: date
    time: TimeOfDay
    total: Decimal | None = None
    message: str = ""


@dataclass(frozen=True)
class AuthSession:
    """Tokens returned by a successful login."""
    access_token: str
    refresh_token: str | None = None


@dataclass
class UserProfile:
    """Editable profile of the logged-in customer."""
    username: str
    email: str
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    contact: str | None = None
    address: str | None = None
    gender: str | None = None

    def full_name(self) -> str:
        """Full name, falling back to the username."""
        if self.first_name and self.last_name:
            parts = [self.first_name, self.middle_name or "", self.last_name]
            return " ".join(part for part in parts if part)
        return self.username

    def to_payload(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "contact": self.contact,
            "address": self.address,
            "gender": self.gender,
        }


@dataclass(frozen=True)
class Registration:
    """
    Sign-up form for a new customer account.

    Raises:
        ValidationError: If the password is empty or not confirmed
    """
    profile: UserProfile
    password: str
    confirm_password: str

    def __post_init__(self):
        if not self.password:
            raise ValidationError("Please enter a password.")
        if self.password != self.confirm_password:
            raise ValidationError("Passwords do not match.")

    def to_payload(self) -> Dict[str, Any]:
        payload = self.profile.to_payload()
        payload["password"] = self.password
        payload["confirm_password"] = self.confirm_password
        return payload

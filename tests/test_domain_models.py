"""
Tests for domain models.
"""

from datetime import date
from decimal import Decimal

import pendulum
import pytest

from homebook.domain.exceptions import ParseError, ValidationError
from homebook.domain.models import (
    BookingRequest,
    BusinessInstant,
    Registration,
    TimeOfDay,
    UserProfile,
    parse_calendar_date,
)

TZ = "Asia/Manila"


class TestTimeOfDay:
    """Tests for TimeOfDay model."""

    def test_parse_valid_time(self):
        t = TimeOfDay.parse("09:30")

        assert t.hour == 9
        assert t.minute == 30
        assert t.minute_of_day == 570
        assert str(t) == "09:30"

    def test_parse_tolerates_seconds(self):
        """The backend serializes booking times as HH:MM:SS."""
        assert TimeOfDay.parse("10:00:00") == TimeOfDay(10, 0)

    @pytest.mark.parametrize("text", ["24:00", "9:60", "930", "", "ab:cd"])
    def test_parse_invalid_time_raises_error(self, text):
        with pytest.raises(ParseError):
            TimeOfDay.parse(text)

    def test_invalid_hour_raises_value_error(self):
        with pytest.raises(ValueError, match="Hour must be between 0 and 23"):
            TimeOfDay(hour=25, minute=0)

    def test_ordering(self):
        assert TimeOfDay(8, 59) < TimeOfDay(9, 0) < TimeOfDay(9, 1)


class TestBusinessInstant:
    """Tests for timezone-aware instants."""

    def test_of_builds_instant_in_zone(self):
        instant = BusinessInstant.of(date(2024, 11, 25), TimeOfDay(10, 0), TZ)

        assert instant.moment == pendulum.parse("2024-11-25T02:00:00Z")
        assert instant.date == date(2024, 11, 25)
        assert instant.time == TimeOfDay(10, 0)
        assert instant.timezone == TZ

    def test_from_datetime_converts_zone(self):
        """23:30 UTC is already the next day in Manila."""
        instant = BusinessInstant.from_datetime(pendulum.parse("2024-11-25T23:30:00Z"), TZ)

        assert instant.date == date(2024, 11, 26)
        assert instant.time == TimeOfDay(7, 30)

    def test_comparison_uses_absolute_instant(self):
        manila = BusinessInstant.of(date(2024, 11, 25), TimeOfDay(10, 0), TZ)
        utc = BusinessInstant(pendulum.parse("2024-11-25T02:00:00Z"))
        later = BusinessInstant.of(date(2024, 11, 25), TimeOfDay(10, 1), TZ)

        assert manila == utc
        assert manila < later

    def test_at_keeps_calendar_date(self):
        instant = BusinessInstant(pendulum.parse("2024-11-25 10:15:42", tz=TZ))

        cutoff = instant.at(TimeOfDay(19, 0))

        assert cutoff.moment == pendulum.parse("2024-11-25 19:00:00", tz=TZ)


class TestParsingHelpers:
    def test_parse_calendar_date(self):
        assert parse_calendar_date("2024-11-25") == date(2024, 11, 25)

    @pytest.mark.parametrize("text", ["25-11-2024", "2024-13-01", "tomorrow"])
    def test_parse_calendar_date_invalid(self, text):
        with pytest.raises(ParseError):
            parse_calendar_date(text)


class TestPayloads:
    def test_booking_request_payload(self):
        request = BookingRequest(
            service_id=1,
            date=date(2024, 11, 26),
            time=TimeOfDay(10, 0),
            selected_item_ids=[2, 1],
            total=Decimal("350.00"),
        )

        assert request.to_payload() == {
            "service": 1,
            "booking_date": "2024-11-26",
            "booking_time": "10:00",
            "work_specifications": [1, 2],
            "price": "350.00",
        }

    def test_profile_full_name(self):
        profile = UserProfile(username="juan", email="j@example.com")
        assert profile.full_name() == "juan"

        profile.first_name = "Juan"
        profile.last_name = "Dela Cruz"
        assert profile.full_name() == "Juan Dela Cruz"

        profile.middle_name = "Santos"
        assert profile.full_name() == "Juan Santos Dela Cruz"

    def test_registration_payload_includes_passwords(self):
        registration = Registration(
            profile=UserProfile(username="maria", email="maria@example.com"),
            password="s3cret!",
            confirm_password="s3cret!",
        )

        payload = registration.to_payload()

        assert payload["username"] == "maria"
        assert payload["password"] == payload["confirm_password"] == "s3cret!"

    def test_registration_rejects_mismatched_passwords(self):
        profile = UserProfile(username="maria", email="maria@example.com")

        with pytest.raises(ValidationError, match="do not match"):
            Registration(profile=profile, password="one", confirm_password="two")
        with pytest.raises(ValidationError, match="enter a password"):
            Registration(profile=profile, password="", confirm_password="")

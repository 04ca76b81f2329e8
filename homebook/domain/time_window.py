"""
Booking window rules: which times of day may be booked and how they are shown.

Pure domain logic without any I/O.
"""

import re
from dataclasses import dataclass
from typing import List

from .exceptions import ParseError
from .models import TimeOfDay

_TWELVE_HOUR_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")


@dataclass(frozen=True)
class TimeWindowPolicy:
    """
    The business day's bookable window.

    Defaults to 09:00 - 19:00 in 30-minute steps. Both bounds are inclusive.
    """
    open_time: TimeOfDay = TimeOfDay(9, 0)
    close_time: TimeOfDay = TimeOfDay(19, 0)
    slot_minutes: int = 30

    def __post_init__(self):
        if self.open_time >= self.close_time:
            raise ValueError(
                f"Window opening {self.open_time} must be before closing {self.close_time}"
            )
        if self.slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be greater than zero, got {self.slot_minutes}")

    def allowed_slots(self) -> List[TimeOfDay]:
        """
        Every slot mark from opening through closing, inclusive.

        With the defaults this is 09:00, 09:30, ..., 19:00 (21 entries).
        """
        slots: List[TimeOfDay] = []
        minute = self.open_time.minute_of_day

        while minute <= self.close_time.minute_of_day:
            slots.append(TimeOfDay(hour=minute // 60, minute=minute % 60))
            minute += self.slot_minutes

        return slots

    def is_within_window(self, time_of_day: TimeOfDay) -> bool:
        """Check whether a time lies between opening and closing, inclusive."""
        return (
            self.open_time.minute_of_day
            <= time_of_day.minute_of_day
            <= self.close_time.minute_of_day
        )

    def describe(self) -> str:
        """Human-readable window, e.g. ``9:00 AM and 7:00 PM``."""
        return f"{format_12_hour(self.open_time)} and {format_12_hour(self.close_time)}"


def format_12_hour(time_of_day: TimeOfDay) -> str:
    """
    Render a time as ``h:mm AM/PM``.

    Examples:
        00:00 -> 12:00 AM
        12:00 -> 12:00 PM
        13:30 -> 1:30 PM
    """
    suffix = "AM" if time_of_day.hour < 12 else "PM"
    hour = time_of_day.hour % 12 or 12
    return f"{hour}:{time_of_day.minute:02d} {suffix}"


def parse_12_hour(text: str) -> TimeOfDay:
    """
    Parse an ``h:mm AM/PM`` string into a time of day.

    Raises:
        ParseError: If the text is not a valid 12-hour time
    """
    match = _TWELVE_HOUR_PATTERN.match(text.strip())
    if not match:
        raise ParseError(f"Invalid time format: {text!r}. Use h:mm AM/PM.")

    hour = int(match.group(1))
    minute = int(match.group(2))
    modifier = match.group(3).upper()

    if not 1 <= hour <= 12:
        raise ParseError(f"Invalid 12-hour time: {text!r}")

    if modifier == "PM" and hour != 12:
        hour += 12
    elif modifier == "AM" and hour == 12:
        hour = 0

    try:
        return TimeOfDay(hour=hour, minute=minute)
    except ValueError as exc:
        raise ParseError(f"Invalid 12-hour time: {text!r}") from exc


def parse_time_input(text: str) -> TimeOfDay:
    """Accept either a 24-hour ``HH:MM`` or a 12-hour ``h:mm AM/PM`` string."""
    upper = text.upper()
    if "AM" in upper or "PM" in upper:
        return parse_12_hour(text)
    return TimeOfDay.parse(text)

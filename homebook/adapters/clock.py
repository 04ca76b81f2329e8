"""
Clock abstraction so "now" is always read in the business time zone.
"""

from typing import Protocol

import pendulum

from ..domain.models import BusinessInstant


class Clock(Protocol):
    """Anything that can tell the current business-zone instant."""

    def now(self) -> BusinessInstant:
        """Return the current instant."""


class SystemClock:
    """Reads the system clock through pendulum in a fixed IANA zone."""

    def __init__(self, timezone: str = "Asia/Manila"):
        self.timezone = timezone

    def now(self) -> BusinessInstant:
        return BusinessInstant(pendulum.now(self.timezone))


class FixedClock:
    """A clock frozen at a given instant. Used in tests and demos."""

    def __init__(self, instant: BusinessInstant):
        self.instant = instant

    def now(self) -> BusinessInstant:
        return self.instant

    def advance(self, **delta) -> None:
        """Move the clock forward, e.g. ``advance(minutes=30)``."""
        self.instant = BusinessInstant(self.instant.moment.add(**delta))

"""
Reschedule and booking eligibility relative to "now".

The cutoff is a same-day concept: cross-day comparisons never subtract
across midnight.
"""

from dataclasses import dataclass
from typing import Union

from .exceptions import IneligibleWindowError
from .models import BusinessInstant
from .time_window import TimeWindowPolicy


@dataclass(frozen=True)
class DifferentDay:
    """Target is on another day; only the window check applies."""
    valid: bool


@dataclass(frozen=True)
class OutsideWindow:
    """Target is today but its time is outside the booking window."""


@dataclass(frozen=True)
class PastCutoff:
    """Target is today and today's cutoff has already been reached."""


@dataclass(frozen=True)
class Remaining:
    """Time left until today's cutoff, floored to whole minutes."""
    hours: int
    minutes: int

    @property
    def total_minutes(self) -> int:
        return self.hours * 60 + self.minutes

    def __str__(self) -> str:
        return f"{self.hours}h {self.minutes}m"


CountdownResult = Union[DifferentDay, OutsideWindow, PastCutoff, Remaining]


class RescheduleEligibility:
    """
    Decides whether a target instant may be booked or rescheduled to.

    Rules:
    1. The target must be strictly after now.
    2. The target's time of day must lie within the booking window.
    """

    def __init__(self, policy: TimeWindowPolicy):
        self.policy = policy

    def is_eligible(self, now: BusinessInstant, target: BusinessInstant) -> bool:
        """Return True if the target is in the future and inside the window."""
        if target <= now:
            return False
        return self.policy.is_within_window(target.time)

    def ensure_eligible(self, now: BusinessInstant, target: BusinessInstant) -> None:
        """
        Raise if the target is not eligible.

        Raises:
            IneligibleWindowError: Naming the allowed window
        """
        if not self.is_eligible(now, target):
            raise IneligibleWindowError(
                "Please choose a future date and a time between "
                f"{self.policy.describe()}."
            )

    def time_until_cutoff(self, now: BusinessInstant, target: BusinessInstant) -> CountdownResult:
        """
        Report how much time is left before the target day's cutoff.

        Args:
            now: Current business-zone instant
            target: Booking instant being considered

        Returns:
            DifferentDay, OutsideWindow, PastCutoff or Remaining
        """
        # Normalize to the target's zone so both dates are business dates
        now = BusinessInstant(now.moment.in_timezone(target.timezone))

        within_window = self.policy.is_within_window(target.time)

        if now.date != target.date:
            return DifferentDay(valid=within_window)

        if not within_window:
            return OutsideWindow()

        cutoff = now.at(self.policy.close_time)
        if now >= cutoff:
            return PastCutoff()

        total_minutes = int((cutoff.moment - now.moment).total_seconds() // 60)
        hours, minutes = divmod(total_minutes, 60)
        return Remaining(hours=hours, minutes=minutes)

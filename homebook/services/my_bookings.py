"""
"My bookings" overview: upcoming bookings with cutoff countdowns, completed
bookings, and which completions the user has not been notified about yet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Protocol

from ..adapters.clock import Clock
from ..adapters.local_store import ViewedNotificationStore
from ..domain.eligibility import CountdownResult, RescheduleEligibility
from ..domain.exceptions import AlreadyCancelledError
from ..domain.models import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingListClientProtocol(Protocol):
    """Protocol describing the client behaviour needed by the overview."""

    async def list_my_bookings(self) -> List[Booking]:
        """Return the logged-in customer's bookings."""

    async def cancel_booking(self, booking_id: int) -> None:
        """Delete a booking."""


@dataclass(frozen=True)
class UpcomingBooking:
    booking: Booking
    countdown: CountdownResult
    reschedulable: bool


@dataclass
class BookingOverview:
    upcoming: List[UpcomingBooking] = field(default_factory=list)
    completed: List[Booking] = field(default_factory=list)
    new_completions: List[Booking] = field(default_factory=list)


class MyBookingsService:
    """
    Orchestrates booking retrieval and per-booking eligibility.

    Depends on a protocol so the real storefront client and the mock client
    are interchangeable.
    """

    def __init__(
        self,
        client: BookingListClientProtocol,
        clock: Clock,
        eligibility: RescheduleEligibility,
        viewed_store: ViewedNotificationStore,
        timezone: str,
    ) -> None:
        self._client = client
        self._clock = clock
        self._eligibility = eligibility
        self._viewed_store = viewed_store
        self._timezone = timezone

    async def overview(self) -> BookingOverview:
        """Fetch bookings and split them into upcoming and completed."""
        bookings = await self._client.list_my_bookings()
        now = self._clock.now()
        viewed = set(self._viewed_store.get_ids())
        overview = BookingOverview()

        for booking in sorted(bookings, key=lambda b: (b.date, b.time)):
            if booking.status is BookingStatus.COMPLETED:
                overview.completed.append(booking)
                if booking.id not in viewed:
                    overview.new_completions.append(booking)
                continue

            target = booking.instant(self._timezone)
            overview.upcoming.append(
                UpcomingBooking(
                    booking=booking,
                    countdown=self._eligibility.time_until_cutoff(now, target),
                    reschedulable=booking.is_editable and self._eligibility.is_eligible(now, target),
                )
            )

        return overview

    def mark_notifications_viewed(self, bookings: List[Booking]) -> None:
        """Remember completed bookings so they are not reported as new again."""
        ids = set(self._viewed_store.get_ids())
        ids.update(booking.id for booking in bookings)
        self._viewed_store.set_ids(sorted(ids))

    async def cancel(self, booking_id: int) -> bool:
        """
        Cancel a booking.

        Returns:
            True if it was cancelled now, False if it was already gone
        """
        try:
            await self._client.cancel_booking(booking_id)
        except AlreadyCancelledError:
            logger.info("Booking %s was already cancelled", booking_id)
            return False
        return True

"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_draft import (
    BookingApiProtocol,
    BookingDraftController,
    DraftState,
    DraftView,
    SubmissionResult,
)
from .my_bookings import BookingOverview, MyBookingsService, UpcomingBooking

__all__ = [
    "BookingApiProtocol",
    "BookingDraftController",
    "BookingOverview",
    "DraftState",
    "DraftView",
    "MyBookingsService",
    "SubmissionResult",
    "UpcomingBooking",
]

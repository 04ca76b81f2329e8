"""
Domain layer - Pure business logic with no I/O.
"""

from .eligibility import (
    CountdownResult,
    DifferentDay,
    OutsideWindow,
    PastCutoff,
    Remaining,
    RescheduleEligibility,
)
from .models import (
    Booking,
    BookingRequest,
    BookingStatus,
    BusinessInstant,
    Confirmation,
    Registration,
    Service,
    TimeOfDay,
    WorkItem,
)
from .pricing import WorkSelectionPricer, format_price, parse_price
from .time_window import TimeWindowPolicy, format_12_hour

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "BusinessInstant",
    "Confirmation",
    "CountdownResult",
    "DifferentDay",
    "OutsideWindow",
    "PastCutoff",
    "Remaining",
    "Registration",
    "RescheduleEligibility",
    "Service",
    "TimeOfDay",
    "TimeWindowPolicy",
    "WorkItem",
    "WorkSelectionPricer",
    "format_12_hour",
    "format_price",
    "parse_price",
]

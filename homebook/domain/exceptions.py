"""
Domain-specific exception hierarchy for the booking storefront.

Every error carries a ``user_message`` that a screen or the CLI can show
as-is. The draft controller recovers all of them into a submission result.
"""

from typing import Dict, List


class BookingError(Exception):
    """Base class for all application-level errors."""

    default_message = "An unexpected error occurred."

    def __init__(self, user_message: str | None = None):
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class ValidationError(BookingError):
    """Raised when a draft is missing its date, time or work items."""

    default_message = "Please select a date and time."


class IneligibleWindowError(BookingError):
    """Raised when the target instant is in the past or outside the booking window."""

    default_message = "Bookings must be scheduled in the future within business hours."


class ConflictError(BookingError):
    """Raised when the backend reports the exact slot is already taken."""

    def __init__(self, date: str, time_label: str):
        self.date = date
        self.time_label = time_label
        super().__init__(
            f"This time slot ({time_label}) on {date} is already booked. "
            "Please choose a different time or date."
        )


class AuthError(BookingError):
    """Raised when credentials are missing or expired."""

    default_message = "Session expired. Please log in again."


class TransportError(BookingError):
    """Raised on network failures and timeouts. Always retryable."""

    default_message = (
        "Network error: Could not reach the server. Please check your connection."
    )


class ParseError(BookingError):
    """Raised when an API payload or user input cannot be parsed."""

    default_message = "Received malformed data from the server."


class FieldValidationError(BookingError):
    """Raised when the backend rejects individual fields of a request."""

    default_message = "Invalid booking details."

    def __init__(self, user_message: str | None = None, fields: Dict[str, List[str]] | None = None):
        self.fields = fields or {}
        super().__init__(user_message)


class PermissionDeniedError(BookingError):
    """Raised on HTTP 403."""

    default_message = "You are not authorized to make this booking."


class NotFoundError(BookingError):
    """Raised on HTTP 404."""

    default_message = "Service not found."


class AlreadyCancelledError(NotFoundError):
    """Raised when cancelling a booking the backend no longer has."""

    default_message = "This booking has already been cancelled."


class ServerError(BookingError):
    """Raised on any other unexpected HTTP status."""

    default_message = "Server error occurred. Please try again later."

    def __init__(self, status_code: int, user_message: str | None = None):
        self.status_code = status_code
        super().__init__(user_message)


class SubmissionInProgressError(BookingError):
    """Raised when submit is triggered again while a submission is in flight."""

    default_message = "Your booking is already being submitted."

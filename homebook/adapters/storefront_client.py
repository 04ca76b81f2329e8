"""
Storefront REST API client.

Blocking ``requests`` calls run in a worker thread, so every public method
is a coroutine that never stalls the caller's event loop. HTTP failures are
mapped onto the domain exception hierarchy at this boundary.
"""

import asyncio
import logging
from typing import Any, Dict, List

import requests

from ..domain.exceptions import (
    AlreadyCancelledError,
    AuthError,
    BookingError,
    ConflictError,
    FieldValidationError,
    NotFoundError,
    ParseError,
    PermissionDeniedError,
    ServerError,
    TransportError,
    ValidationError,
)
from ..domain.models import (
    AuthSession,
    Booking,
    BookingRequest,
    Confirmation,
    Registration,
    Service,
    UserProfile,
)
from ..domain.time_window import format_12_hour
from .local_store import SessionStore
from .schemas import (
    BookingPayload,
    ConfirmationPayload,
    LoginPayload,
    ServicePayload,
    UserPayload,
    parse_list,
    parse_model,
)

logger = logging.getLogger(__name__)

UNIQUE_SLOT_MARKER = "must make a unique set"

# Field lists whose messages are surfaced for a generic 400, in priority order
_ERROR_FIELDS = ("detail", "error", "non_field_errors", "work_specifications", "address")


class StorefrontClient:
    """
    Client for the home services storefront backend.

    Authenticated calls send the stored access token as a Bearer header.
    A 401 clears the stored session so the user is prompted to log in.
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        timeout: float = 30.0,
        http: requests.Session | None = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: API root, e.g. https://example.com/api
            session_store: Where login tokens are kept
            timeout: Per-request timeout in seconds
            http: Optional preconfigured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.session_store = session_store
        self.timeout = timeout
        self.http = http or requests.Session()

    async def login(self, email: str, password: str) -> AuthSession:
        """Log in and persist the returned tokens."""
        data = await self._call(
            "POST",
            "/user/login/",
            json={"email": email, "password": password},
            auth=False,
        )
        session = parse_model(LoginPayload, data).to_domain()
        self.session_store.save(session)
        logger.info("Logged in as %s", email)
        return session

    async def logout(self) -> None:
        """
        Revoke the refresh token and forget the session.

        The local session is cleared even if the backend call fails.
        """
        session = self.session_store.load()
        try:
            if session and session.refresh_token:
                await self._call(
                    "POST",
                    "/user/logout",
                    json={"refresh_token": session.refresh_token},
                    auth=False,
                )
        except BookingError as exc:
            logger.warning("Logout request failed: %s", exc.user_message)
        finally:
            self.session_store.clear()

    async def register(self, registration: Registration) -> str:
        """
        Create a customer account. The user logs in separately afterwards.

        Raises:
            FieldValidationError: If the backend rejects a field, e.g. a taken username
        """
        data = await self._call(
            "POST",
            "/user/register/",
            json=registration.to_payload(),
            auth=False,
        )
        logger.info("Registered account %s", registration.profile.username)
        return _message(data, "Account created successfully.")

    async def confirm_password_reset(self, token: str, password: str) -> str:
        """Set a new password using the token from the reset e-mail."""
        if not token:
            raise ValidationError("Invalid or missing reset token.")
        if not password:
            raise ValidationError("Please enter a password.")
        data = await self._call(
            "POST",
            "/user/password_reset_confirm/",
            json={"token": token, "password": password},
            auth=False,
        )
        return _message(data, "Your password has been reset.")

    async def get_profile(self) -> UserProfile:
        data = await self._call("GET", "/user/me")
        return parse_model(UserPayload, data).to_domain()

    async def update_profile(self, profile: UserProfile) -> UserProfile:
        data = await self._call("PUT", "/user/update/", json=profile.to_payload())
        return parse_model(UserPayload, data).to_domain()

    async def list_services(self) -> List[Service]:
        data = await self._call("GET", "/services/", auth=False)
        return [payload.to_domain() for payload in parse_list(ServicePayload, data)]

    async def get_service(self, service_id: int) -> Service:
        """Fetch a service together with its priced work item catalog."""
        data = await self._call("GET", f"/services/{service_id}/", auth=False)
        return parse_model(ServicePayload, data).to_domain()

    async def list_my_bookings(self) -> List[Booking]:
        data = await self._call("GET", "/bookings/my/")
        return [payload.to_domain() for payload in parse_list(BookingPayload, data)]

    async def create_booking(self, request: BookingRequest) -> Confirmation:
        data = await self._call(
            "POST",
            "/bookings/",
            json=request.to_payload(),
            booking_request=request,
        )
        confirmation = parse_model(ConfirmationPayload, data).to_domain(request)
        logger.info(
            "Booking %s created for %s at %s",
            confirmation.booking_id, confirmation.date, confirmation.time,
        )
        return confirmation

    async def update_booking(self, booking_id: int, request: BookingRequest) -> Confirmation:
        """Reschedule or re-specify a booking via a partial update."""
        data = await self._call(
            "PATCH",
            f"/bookings/{booking_id}/",
            json=request.to_payload(),
            booking_request=request,
            not_found=NotFoundError("Booking not found."),
        )
        if not isinstance(data, dict):
            data = {}
        data.setdefault("id", booking_id)
        confirmation = parse_model(ConfirmationPayload, data).to_domain(request)
        logger.info("Booking %s rescheduled to %s %s", booking_id, confirmation.date, confirmation.time)
        return confirmation

    async def cancel_booking(self, booking_id: int) -> None:
        """
        Delete a booking.

        Raises:
            AlreadyCancelledError: If the backend no longer has the booking
        """
        await self._call(
            "DELETE",
            f"/bookings/{booking_id}/",
            not_found=AlreadyCancelledError(),
        )
        logger.info("Booking %s cancelled", booking_id)

    async def _call(self, method: str, path: str, **kwargs) -> Any:
        return await asyncio.to_thread(self._send, method, path, **kwargs)

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: Dict[str, Any] | None = None,
        auth: bool = True,
        booking_request: BookingRequest | None = None,
        not_found: NotFoundError | None = None,
    ) -> Any:
        """
        Perform one HTTP request and decode its JSON body.

        Raises:
            AuthError: If authentication is required but no session exists
            TransportError: On connection problems and timeouts
            BookingError: Subclass matching the HTTP error status
            ParseError: If a success body is not JSON
        """
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}

        if auth:
            session = self.session_store.load()
            if session is None:
                raise AuthError("Authentication token is missing. Please log in again.")
            headers["Authorization"] = f"Bearer {session.access_token}"

        try:
            response = self.http.request(
                method,
                url,
                headers=headers,
                json=json,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            logger.warning("%s %s timed out after %ss", method, url, self.timeout)
            raise TransportError(
                "The server took too long to respond. Please try again."
            ) from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError() from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)

        if response.status_code >= 400:
            raise self._error_for_response(response, booking_request, not_found)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as exc:
            raise ParseError() from exc

    def _error_for_response(
        self,
        response: requests.Response,
        booking_request: BookingRequest | None,
        not_found: NotFoundError | None,
    ) -> BookingError:
        """Map an HTTP error response onto the domain error taxonomy."""
        body = _safe_json(response)
        status = response.status_code
        logger.error("API error %s: %s", status, body)

        if status == 400:
            non_field = _as_messages(body.get("non_field_errors"))
            if booking_request and any(UNIQUE_SLOT_MARKER in msg for msg in non_field):
                return ConflictError(
                    date=booking_request.date.isoformat(),
                    time_label=format_12_hour(booking_request.time),
                )
            return FieldValidationError(
                _first_message(body),
                fields={key: _as_messages(value) for key, value in body.items()},
            )

        if status == 401:
            self.session_store.clear()
            return AuthError(_first_message(body) if "error" in body else None)

        if status == 403:
            return PermissionDeniedError()

        if status == 404:
            return not_found or NotFoundError()

        return ServerError(status_code=status)


def _safe_json(response: requests.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _as_messages(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value]
    return [str(value)]


def _first_message(body: Dict[str, Any]) -> str | None:
    """Pick the most specific human-readable message from an error body."""
    for key in _ERROR_FIELDS:
        messages = _as_messages(body.get(key))
        if messages:
            return " ".join(messages)
    # Otherwise the first per-field error, e.g. a taken username on sign-up
    for key, value in body.items():
        messages = _as_messages(value)
        if messages:
            return f"{key}: {' '.join(messages)}"
    return None




def _message(data: Any, default: str) -> str:
    """The ``message`` of a success body, or ``default``."""
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return default

"""
Booking draft state machine for the create and reschedule flows.

The controller holds the tentative date, time and selected work items,
re-derives eligibility and price on every change, and delegates the final
submit to the storefront API. Every failure of ``submit`` is returned inside
a ``SubmissionResult``; only task cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, List, Protocol, Sequence, Set

from ..adapters.clock import Clock
from ..domain.eligibility import CountdownResult, RescheduleEligibility
from ..domain.exceptions import (
    BookingError,
    IneligibleWindowError,
    SubmissionInProgressError,
    TransportError,
    ValidationError,
)
from ..domain.models import (
    Booking,
    BookingRequest,
    BusinessInstant,
    Confirmation,
    TimeOfDay,
    WorkItem,
)
from ..domain.pricing import WorkSelectionPricer, format_price
from ..domain.time_window import format_12_hour

logger = logging.getLogger(__name__)


class BookingApiProtocol(Protocol):
    """The booking calls the controller needs from the storefront client."""

    async def create_booking(self, request: BookingRequest) -> Confirmation:
        """Create a booking."""

    async def update_booking(self, booking_id: int, request: BookingRequest) -> Confirmation:
        """Reschedule an existing booking."""


class DraftState(str, Enum):
    EMPTY = "empty"
    PARTIAL = "partial"
    READY = "ready"
    SUBMITTING = "submitting"
    SETTLED = "settled"


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of one submit attempt: a confirmation or an error, never both."""
    confirmation: Confirmation | None = None
    error: BookingError | None = None

    @property
    def ok(self) -> bool:
        return self.confirmation is not None


@dataclass(frozen=True)
class DraftView:
    """Everything a booking screen needs to render the current draft."""
    state: DraftState
    date: date | None
    time: TimeOfDay | None
    time_label: str | None
    selected_item_ids: FrozenSet[int]
    total: Decimal
    total_label: str
    can_submit: bool
    blocking_error: BookingError | None
    countdown: CountdownResult | None
    outcome: SubmissionResult | None


class BookingDraftController:
    """
    State machine over a single booking draft.

    States: EMPTY -> PARTIAL -> READY -> SUBMITTING -> SETTLED.
    A draft with a ``booking_id`` reschedules that booking; otherwise
    submitting creates a new one.
    """

    def __init__(
        self,
        *,
        service_id: int,
        catalog: Sequence[WorkItem],
        api: BookingApiProtocol,
        clock: Clock,
        eligibility: RescheduleEligibility,
        timezone: str,
        booking_id: int | None = None,
        currency: str = "PHP",
    ) -> None:
        self.service_id = service_id
        self.booking_id = booking_id
        self.currency = currency
        self._catalog: List[WorkItem] = list(catalog)
        self._api = api
        self._clock = clock
        self._eligibility = eligibility
        self._timezone = timezone
        self._pricer = WorkSelectionPricer()
        self._locked_error: BookingError | None = None
        # Bumped by every submit and reset; a result from an older attempt is dropped
        self._attempt = 0
        self._in_flight = False
        self._clear()

    @classmethod
    def from_booking(
        cls,
        booking: Booking,
        *,
        catalog: Sequence[WorkItem],
        api: BookingApiProtocol,
        clock: Clock,
        eligibility: RescheduleEligibility,
        timezone: str,
        currency: str = "PHP",
    ) -> "BookingDraftController":
        """
        Seed a reschedule draft from an existing booking.

        A booking whose stored time already violates the window stays
        ineligible until a valid time is chosen; it is never auto-corrected.
        """
        if booking.service is None:
            raise ValidationError("This booking has no service attached and cannot be changed.")

        controller = cls(
            service_id=booking.service.id,
            catalog=catalog,
            api=api,
            clock=clock,
            eligibility=eligibility,
            timezone=timezone,
            booking_id=booking.id,
            currency=currency,
        )
        if not booking.is_editable:
            controller._locked_error = ValidationError("This booking can no longer be changed.")
        controller._date = booking.date
        controller._time = booking.time
        controller._selected = set(booking.work_item_ids)
        controller._derive()
        return controller

    @property
    def state(self) -> DraftState:
        self._refresh()
        return self._state

    @property
    def outcome(self) -> SubmissionResult | None:
        return self._outcome

    @property
    def blocking_error(self) -> BookingError | None:
        """Why the draft cannot be submitted right now, if anything."""
        self._refresh()
        return self._blocking_error

    @property
    def total(self) -> Decimal:
        return self._pricer.compute_total(self._catalog, self._selected)

    def set_date(self, value: date | None) -> None:
        self._date = value
        self._changed()

    def set_time(self, value: TimeOfDay | None) -> None:
        self._time = value
        self._changed()

    def toggle_item(self, item_id: int) -> None:
        """Select an item if unselected, otherwise deselect it."""
        if item_id in self._selected:
            self._selected.discard(item_id)
        else:
            self._selected.add(item_id)
        self._changed()

    def replace_catalog(self, catalog: Sequence[WorkItem]) -> None:
        """Swap in a refetched catalog; selections of vanished items price as zero."""
        self._catalog = list(catalog)
        self._changed()

    def can_submit(self) -> bool:
        """True only in READY with no earlier request still in flight."""
        return self.state is DraftState.READY and not self._in_flight

    def reset(self) -> None:
        """
        Discard all draft state and return to EMPTY. Valid from any state.

        A request already in flight is detached: its result is returned to
        its own caller but never applied to this draft.
        """
        self._attempt += 1
        self._clear()
        logger.debug("Draft for service %s reset", self.service_id)

    def view(self) -> DraftView:
        state = self.state
        total = self.total
        return DraftView(
            state=state,
            date=self._date,
            time=self._time,
            time_label=format_12_hour(self._time) if self._time else None,
            selected_item_ids=frozenset(self._selected),
            total=total,
            total_label=format_price(total, self.currency),
            can_submit=state is DraftState.READY and not self._in_flight,
            blocking_error=self._blocking_error,
            countdown=self._countdown(),
            outcome=self._outcome,
        )

    async def submit(self) -> SubmissionResult:
        """
        Submit the draft to the backend.

        Only valid from READY. A call made while another request is in
        flight is rejected immediately, even if the draft was reset in the
        meantime. Transport failures and timeouts return the draft to READY
        so the user can retry; every other backend error settles it. If the
        call is cancelled the draft goes back to READY before the
        cancellation propagates.
        """
        if self._state is DraftState.SUBMITTING or self._in_flight:
            return SubmissionResult(error=SubmissionInProgressError())

        if not self.can_submit():
            error = self._blocking_error or ValidationError()
            logger.info("Submit blocked: %s", error.user_message)
            return SubmissionResult(error=error)

        request = self._build_request()
        self._attempt += 1
        attempt = self._attempt
        # Set before the first await so a second trigger sees SUBMITTING
        self._state = DraftState.SUBMITTING
        self._in_flight = True
        self._outcome = None

        try:
            confirmation = await self._send(request)
        except TransportError as exc:
            return self._retryable(attempt, exc)
        except (TimeoutError, asyncio.TimeoutError) as exc:
            logger.warning("Submit timed out: %r", exc)
            return self._retryable(
                attempt,
                TransportError("The server took too long to respond. Please try again."),
            )
        except BookingError as exc:
            logger.warning("Submit rejected: %s", exc.user_message)
            return self._settle(attempt, SubmissionResult(error=exc))
        except Exception as exc:
            logger.warning("Submit failed unexpectedly: %r", exc, exc_info=True)
            return self._retryable(attempt, TransportError())
        else:
            return self._settle(attempt, SubmissionResult(confirmation=confirmation))
        finally:
            self._in_flight = False
            # Only reached in SUBMITTING when the await was cancelled
            if attempt == self._attempt and self._state is DraftState.SUBMITTING:
                self._state = DraftState.READY
                self._derive()

    async def _send(self, request: BookingRequest) -> Confirmation:
        if self.booking_id is None:
            return await self._api.create_booking(request)
        return await self._api.update_booking(self.booking_id, request)

    def _retryable(self, attempt: int, error: BookingError) -> SubmissionResult:
        """Keep the draft for another try after a transport-level failure."""
        if attempt == self._attempt:
            logger.warning("Submit failed, draft kept for retry: %s", error.user_message)
            self._state = DraftState.READY
            self._derive()
        return SubmissionResult(error=error)

    def _settle(self, attempt: int, result: SubmissionResult) -> SubmissionResult:
        if attempt != self._attempt:
            logger.info("Discarding result of a submission detached by reset")
            return result

        self._outcome = result
        self._state = DraftState.SETTLED
        if result.ok:
            self._date, self._time, self._selected = None, None, set()
            logger.info("Booking %s confirmed", result.confirmation.booking_id)
        return result

    def _clear(self) -> None:
        self._date: date | None = None
        self._time: TimeOfDay | None = None
        self._selected: Set[int] = set()
        self._outcome: SubmissionResult | None = None
        self._blocking_error: BookingError | None = None
        self._state = DraftState.EMPTY

    def _changed(self) -> None:
        # An in-flight submit keeps its state; editing a settled draft starts over
        if self._state is DraftState.SUBMITTING:
            return
        self._outcome = None
        self._derive()

    def _refresh(self) -> None:
        """Re-derive against the current clock unless a submit owns the state."""
        if self._state not in (DraftState.SUBMITTING, DraftState.SETTLED):
            self._derive()

    def _derive(self) -> None:
        """Recompute state and the blocking reason from the current fields."""
        self._blocking_error = self._find_blocking_error()

        if self._blocking_error is None:
            self._state = DraftState.READY
        elif self._date is None and self._time is None and not self._selected:
            self._state = DraftState.EMPTY
        else:
            self._state = DraftState.PARTIAL

    def _find_blocking_error(self) -> BookingError | None:
        policy = self._eligibility.policy

        if self._locked_error is not None:
            return self._locked_error

        # A time outside the window is reported regardless of the other fields
        if self._time is not None and not policy.is_within_window(self._time):
            return IneligibleWindowError(
                f"Please choose a time between {policy.describe()}."
            )

        if self._date is None or self._time is None:
            return ValidationError("Please select a date and time.")

        if not self._pricer.validate_selection(self._selected):
            return ValidationError("Please select at least one work specification.")

        if not self._eligibility.is_eligible(self._clock.now(), self._target()):
            return IneligibleWindowError(
                "Please choose a future date and a time between "
                f"{policy.describe()}."
            )

        return None

    def _target(self) -> BusinessInstant:
        return BusinessInstant.of(self._date, self._time, self._timezone)

    def _countdown(self) -> CountdownResult | None:
        if self._date is None or self._time is None:
            return None
        return self._eligibility.time_until_cutoff(self._clock.now(), self._target())

    def _build_request(self) -> BookingRequest:
        return BookingRequest(
            service_id=self.service_id,
            date=self._date,
            time=self._time,
            selected_item_ids=sorted(self._selected),
            total=self.total,
        )

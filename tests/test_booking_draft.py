"""
Tests for the booking draft controller.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pendulum
import pytest

from homebook.adapters.clock import FixedClock
from homebook.domain.eligibility import Remaining, RescheduleEligibility
from homebook.domain.exceptions import (
    ConflictError,
    IneligibleWindowError,
    SubmissionInProgressError,
    TransportError,
    ValidationError,
)
from homebook.domain.models import (
    Booking,
    BookingStatus,
    BusinessInstant,
    Confirmation,
    ServiceSummary,
    TimeOfDay,
    WorkItem,
)
from homebook.domain.time_window import TimeWindowPolicy
from homebook.services.booking_draft import BookingDraftController, DraftState

TZ = "Asia/Manila"
TODAY = date(2024, 11, 25)
TOMORROW = date(2024, 11, 26)

CATALOG = [
    WorkItem(id=1, name="Living room", unit_price=Decimal("100.00")),
    WorkItem(id=2, name="Kitchen", unit_price=Decimal("250.00")),
]


class StubBookingApi:
    """Records calls; optionally waits on a gate or fails with an error."""

    def __init__(self, error=None, gate=None):
        self.error = error
        self.gate = gate
        self.created = []
        self.updated = []

    async def create_booking(self, request):
        self.created.append(request)
        return await self._respond(request, booking_id=500)

    async def update_booking(self, booking_id, request):
        self.updated.append((booking_id, request))
        return await self._respond(request, booking_id=booking_id)

    async def _respond(self, request, booking_id):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return Confirmation(
            booking_id=booking_id,
            date=request.date,
            time=request.time,
            total=request.total,
            message="Booking created successfully.",
        )


@pytest.fixture
def clock():
    return FixedClock(BusinessInstant(pendulum.parse("2024-11-25 10:00", tz=TZ)))


@pytest.fixture
def eligibility():
    return RescheduleEligibility(TimeWindowPolicy())


def _controller(api, clock, eligibility, **kwargs):
    return BookingDraftController(
        service_id=1,
        catalog=CATALOG,
        api=api,
        clock=clock,
        eligibility=eligibility,
        timezone=TZ,
        **kwargs,
    )


def _fill(controller, day=TOMORROW, time=TimeOfDay(10, 0), items=(1, 2)):
    controller.set_date(day)
    controller.set_time(time)
    for item_id in items:
        controller.toggle_item(item_id)


class TestDraftStates:
    """Tests for state derivation while editing."""

    def test_new_draft_is_empty(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)

        assert controller.state is DraftState.EMPTY
        assert controller.can_submit() is False
        assert controller.total == Decimal("0.00")

    def test_partial_until_all_fields_set(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)

        controller.set_date(TOMORROW)
        assert controller.state is DraftState.PARTIAL
        assert isinstance(controller.blocking_error, ValidationError)

        controller.set_time(TimeOfDay(10, 0))
        assert controller.state is DraftState.PARTIAL
        assert "work specification" in controller.blocking_error.user_message

        controller.toggle_item(1)
        assert controller.state is DraftState.READY
        assert controller.blocking_error is None

    def test_items_without_date_are_partial(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)

        controller.toggle_item(2)

        assert controller.state is DraftState.PARTIAL
        assert controller.total == Decimal("250.00")

    def test_toggle_deselects(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)
        _fill(controller)

        controller.toggle_item(2)
        assert controller.total == Decimal("100.00")

        controller.toggle_item(1)
        assert controller.total == Decimal("0.00")
        assert controller.state is DraftState.PARTIAL

    def test_time_outside_window_blocks(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)

        _fill(controller, time=TimeOfDay(20, 0))

        assert controller.state is DraftState.PARTIAL
        assert isinstance(controller.blocking_error, IneligibleWindowError)
        assert "9:00 AM and 7:00 PM" in controller.blocking_error.user_message

    def test_time_outside_window_reported_before_missing_date(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)

        controller.set_time(TimeOfDay(8, 0))

        assert isinstance(controller.blocking_error, IneligibleWindowError)

    def test_past_time_today_blocks(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)

        _fill(controller, day=TODAY, time=TimeOfDay(9, 30))

        assert controller.state is DraftState.PARTIAL
        assert "future date" in controller.blocking_error.user_message

    def test_clock_advancing_invalidates_ready_draft(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)
        _fill(controller, day=TODAY, time=TimeOfDay(10, 30))
        assert controller.state is DraftState.READY

        clock.advance(minutes=30)

        assert controller.state is DraftState.PARTIAL
        assert isinstance(controller.blocking_error, IneligibleWindowError)

    def test_stale_catalog_prices_missing_items_as_zero(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)
        _fill(controller)

        controller.replace_catalog([CATALOG[0]])

        assert controller.total == Decimal("100.00")
        assert controller.state is DraftState.READY

    def test_reset_returns_to_empty(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)
        _fill(controller)

        controller.reset()

        assert controller.state is DraftState.EMPTY
        assert controller.view().selected_item_ids == frozenset()


class TestDraftView:
    def test_view_labels(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)
        _fill(controller, day=TODAY, time=TimeOfDay(14, 0))

        view = controller.view()

        assert view.state is DraftState.READY
        assert view.can_submit is True
        assert view.time_label == "2:00 PM"
        assert view.total_label == "PHP 350.00"
        assert view.countdown == Remaining(hours=9, minutes=0)
        assert view.selected_item_ids == frozenset({1, 2})

    def test_view_without_date_has_no_countdown(self, clock, eligibility):
        view = _controller(StubBookingApi(), clock, eligibility).view()

        assert view.countdown is None
        assert view.time_label is None


class TestSubmit:
    """Tests for the submit flow."""

    def test_submit_from_non_ready_returns_blocking_error(self, clock, eligibility):
        api = StubBookingApi()
        controller = _controller(api, clock, eligibility)
        controller.set_date(TOMORROW)

        result = asyncio.run(controller.submit())

        assert result.ok is False
        assert isinstance(result.error, ValidationError)
        assert api.created == []

    def test_happy_path_passes_through_submitting(self, clock, eligibility):
        """READY -> SUBMITTING -> SETTLED, with re-entry rejected while in flight."""

        async def scenario():
            api = StubBookingApi(gate=asyncio.Event())
            controller = _controller(api, clock, eligibility)
            _fill(controller)
            assert controller.state is DraftState.READY
            assert controller.total == Decimal("350.00")

            task = asyncio.create_task(controller.submit())
            await asyncio.sleep(0)

            assert controller.state is DraftState.SUBMITTING
            assert controller.can_submit() is False
            second = await controller.submit()
            assert isinstance(second.error, SubmissionInProgressError)

            api.gate.set()
            result = await task
            return api, controller, result

        api, controller, result = asyncio.run(scenario())

        assert result.ok is True
        assert result.confirmation.booking_id == 500
        assert controller.state is DraftState.SETTLED
        assert controller.outcome is result
        assert len(api.created) == 1

        request = api.created[0]
        assert request.to_payload() == {
            "service": 1,
            "booking_date": "2024-11-26",
            "booking_time": "10:00",
            "work_specifications": [1, 2],
            "price": "350.00",
        }

    def test_success_clears_draft_fields(self, clock, eligibility):
        controller = _controller(StubBookingApi(), clock, eligibility)
        _fill(controller)

        asyncio.run(controller.submit())
        view = controller.view()

        assert view.date is None
        assert view.time is None
        assert view.selected_item_ids == frozenset()
        assert view.state is DraftState.SETTLED

    def test_transport_error_returns_to_ready(self, clock, eligibility):
        api = StubBookingApi(error=TransportError())
        controller = _controller(api, clock, eligibility)
        _fill(controller)

        result = asyncio.run(controller.submit())

        assert isinstance(result.error, TransportError)
        assert controller.state is DraftState.READY
        assert controller.outcome is None

        api.error = None
        retry = asyncio.run(controller.submit())
        assert retry.ok is True
        assert len(api.created) == 2

    def test_conflict_settles_then_edit_restarts(self, clock, eligibility):
        conflict = ConflictError(date="2024-11-26", time_label="10:00 AM")
        controller = _controller(StubBookingApi(error=conflict), clock, eligibility)
        _fill(controller)

        result = asyncio.run(controller.submit())

        assert result.error is conflict
        assert "already booked" in result.error.user_message
        assert controller.state is DraftState.SETTLED
        assert controller.outcome.error is conflict

        controller.set_time(TimeOfDay(10, 30))

        assert controller.state is DraftState.READY
        assert controller.outcome is None

    def test_edits_during_submit_do_not_change_state(self, clock, eligibility):
        async def scenario():
            api = StubBookingApi(gate=asyncio.Event())
            controller = _controller(api, clock, eligibility)
            _fill(controller)

            task = asyncio.create_task(controller.submit())
            await asyncio.sleep(0)
            controller.set_time(TimeOfDay(20, 0))
            assert controller.state is DraftState.SUBMITTING

            api.gate.set()
            await task
            return api

        api = asyncio.run(scenario())

        assert api.created[0].time == TimeOfDay(10, 0)


class TestReschedule:
    """Tests for drafts seeded from an existing booking."""

    def _booking(self, **overrides):
        fields = dict(
            id=101,
            date=TOMORROW,
            time=TimeOfDay(10, 0),
            is_editable=True,
            status=BookingStatus.SCHEDULED,
            price_at_booking=Decimal("350.00"),
            service=ServiceSummary(id=1, title="Home cleaning"),
            work_item_ids=[1, 2],
        )
        fields.update(overrides)
        return Booking(**fields)

    def _from_booking(self, booking, api, clock, eligibility):
        return BookingDraftController.from_booking(
            booking,
            catalog=CATALOG,
            api=api,
            clock=clock,
            eligibility=eligibility,
            timezone=TZ,
        )

    def test_seeded_draft_updates_existing_booking(self, clock, eligibility):
        api = StubBookingApi()
        controller = self._from_booking(self._booking(), api, clock, eligibility)
        assert controller.state is DraftState.READY

        controller.set_time(TimeOfDay(15, 0))
        result = asyncio.run(controller.submit())

        assert result.ok is True
        assert api.created == []
        booking_id, request = api.updated[0]
        assert booking_id == 101
        assert request.time == TimeOfDay(15, 0)

    def test_legacy_time_outside_window_stays_ineligible(self, clock, eligibility):
        controller = self._from_booking(
            self._booking(time=TimeOfDay(20, 0)), StubBookingApi(), clock, eligibility
        )

        assert controller.state is DraftState.PARTIAL
        assert controller.view().time == TimeOfDay(20, 0)
        assert isinstance(controller.blocking_error, IneligibleWindowError)

        controller.set_time(TimeOfDay(18, 0))
        assert controller.state is DraftState.READY

    def test_non_editable_booking_is_locked(self, clock, eligibility):
        controller = self._from_booking(
            self._booking(is_editable=False), StubBookingApi(), clock, eligibility
        )

        assert controller.can_submit() is False
        assert "can no longer be changed" in controller.blocking_error.user_message

    def test_booking_without_service_is_rejected(self, clock, eligibility):
        with pytest.raises(ValidationError):
            self._from_booking(self._booking(service=None), StubBookingApi(), clock, eligibility)


class TestSubmitRecovery:
    """Tests that a failed, cancelled or reset submission never strands the draft."""

    def test_builtin_timeout_returns_to_ready(self, clock, eligibility):
        api = StubBookingApi(error=TimeoutError("read timed out"))
        controller = _controller(api, clock, eligibility)
        _fill(controller)

        result = asyncio.run(controller.submit())

        assert isinstance(result.error, TransportError)
        assert "took too long" in result.error.user_message
        assert controller.state is DraftState.READY
        assert controller.can_submit() is True

        api.error = None
        assert asyncio.run(controller.submit()).ok is True

    def test_unexpected_exception_is_reported_as_transport_error(self, clock, eligibility):
        controller = _controller(StubBookingApi(error=RuntimeError("boom")), clock, eligibility)
        _fill(controller)

        result = asyncio.run(controller.submit())

        assert isinstance(result.error, TransportError)
        assert controller.state is DraftState.READY

    def test_cancelled_submit_returns_to_ready(self, clock, eligibility):
        """A caller-side timeout cancels the call; the draft stays retryable."""

        async def scenario():
            api = StubBookingApi(gate=asyncio.Event())
            controller = _controller(api, clock, eligibility)
            _fill(controller)

            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(controller.submit(), 0.01)

            assert controller.state is DraftState.READY
            assert controller.can_submit() is True

            api.gate.set()
            return await controller.submit()

        result = asyncio.run(scenario())

        assert result.ok is True

    def test_reset_detaches_in_flight_submission(self, clock, eligibility):
        """A completion from before a reset never overwrites the new draft."""

        async def scenario():
            api = StubBookingApi(gate=asyncio.Event())
            controller = _controller(api, clock, eligibility)
            _fill(controller)

            task = asyncio.create_task(controller.submit())
            await asyncio.sleep(0)

            controller.reset()
            _fill(controller, day=date(2024, 11, 27), time=TimeOfDay(15, 0), items=(2,))
            assert controller.state is DraftState.READY

            # The detached request is still in flight, so no second booking may start
            assert controller.can_submit() is False
            second = await controller.submit()
            assert isinstance(second.error, SubmissionInProgressError)

            api.gate.set()
            stale = await task
            return api, controller, stale

        api, controller, stale = asyncio.run(scenario())
        view = controller.view()

        assert stale.ok is True
        assert len(api.created) == 1
        assert view.state is DraftState.READY
        assert view.date == date(2024, 11, 27)
        assert view.time == TimeOfDay(15, 0)
        assert view.selected_item_ids == frozenset({2})
        assert view.outcome is None
        assert controller.can_submit() is True

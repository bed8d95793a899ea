"""Tests for AppointmentsService."""

import asyncio
import datetime as dt
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.auth.actors import AdminActor, CustomerActor, OwnerActor, StaffActor
from booking_core.exceptions import (
    AdvanceWindowViolation,
    AuthorizationError,
    ClosedDayError,
    ConflictError,
    IllegalTransitionError,
    NotFoundError,
    PastDateError,
    PolicyViolation,
    SlotRangeError,
    ValidationError,
)
from booking_core.models.appointments import AppointmentCreateRequest
from booking_core.services.appointments_service import AppointmentsService
from booking_core.services.notifications_service import (
    APPOINTMENT_ACCEPTED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_CREATED,
    APPOINTMENT_REJECTED,
    APPOINTMENT_RESCHEDULED,
)

from conftest import CUSTOMER_ID, NOW, OWNER_ID, TODAY, TOMORROW, RecordingSink

CUSTOMER = CustomerActor(user_id=CUSTOMER_ID)
OWNER = OwnerActor(user_id=OWNER_ID)
ADMIN = AdminActor(user_id="admin-1")


@pytest.fixture
def service(session: AsyncSession, resolver, locks, sink, clock):
    return AppointmentsService(session, resolver, locks, notifier=sink, clock=clock)


def _request(salon, svc, day=TOMORROW, time="10:00", **extra):
    return AppointmentCreateRequest(salon_id=salon.id, service_id=svc.id, date=day, time=time, **extra)


class TestCreateAppointment:
    @pytest.mark.asyncio
    async def test_creates_pending_with_covers_and_amount(self, service, sink, make_salon, make_service):
        """A fresh booking is pending, occupies its slot-run, and charges price minus discount."""
        salon = await make_salon()
        svc = await make_service(salon, duration_minutes=60, price="40.00", discount="5.00")

        created = await service.create_appointment(CUSTOMER, _request(salon, svc, notes="Fringe only"))

        assert created.status == "pending"
        assert created.customer_id == CUSTOMER_ID
        assert created.covers == ["10:00", "10:30"]
        assert created.duration_minutes == 60
        assert created.amount == Decimal("35.00")
        assert created.discount == Decimal("5.00")
        assert created.notes == "Fringe only"

    @pytest.mark.asyncio
    async def test_notifies_owner_once(self, service, sink, make_salon, make_service):
        salon = await make_salon()
        svc = await make_service(salon)

        created = await service.create_appointment(CUSTOMER, _request(salon, svc))

        assert len(sink.sent) == 1
        assert sink.sent[0]["user_id"] == OWNER_ID
        assert sink.sent[0]["type"] == APPOINTMENT_CREATED
        assert sink.sent[0]["appointment_id"] == created.id
        assert sink.sent[0]["salon_id"] == salon.id

    @pytest.mark.asyncio
    async def test_discount_never_makes_amount_negative(self, service, make_salon, make_service):
        salon = await make_salon()
        svc = await make_service(salon, price="10.00", discount="15.00")

        created = await service.create_appointment(CUSTOMER, _request(salon, svc))

        assert created.amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_overlapping_booking_is_rejected(self, service, make_salon, make_service):
        """A second booking sharing any slot label with an active one gets 409."""
        salon = await make_salon()
        long_cut = await make_service(salon, duration_minutes=60)
        short_cut = await make_service(salon, duration_minutes=30)
        await service.create_appointment(CUSTOMER, _request(salon, long_cut, time="10:00"))

        with pytest.raises(ConflictError) as exc_info:
            await service.create_appointment(
                CustomerActor(user_id="customer-2"), _request(salon, short_cut, time="10:30")
            )

        assert exc_info.value.details["taken"] == ["10:30"]

        adjacent = await service.create_appointment(
            CustomerActor(user_id="customer-2"), _request(salon, short_cut, time="11:00")
        )
        assert adjacent.covers == ["11:00"]

    @pytest.mark.asyncio
    async def test_concurrent_bookings_for_same_slot(
        self, session_factory, resolver, locks, clock, make_salon, make_service
    ):
        """Two simultaneous requests for one slot: exactly one succeeds."""
        salon = await make_salon()
        svc = await make_service(salon)

        async def book(customer_id):
            async with session_factory() as own_session:
                own_service = AppointmentsService(own_session, resolver, locks, clock=clock)
                return await own_service.create_appointment(
                    CustomerActor(user_id=customer_id), _request(salon, svc, time="14:00")
                )

        results = await asyncio.gather(book("customer-a"), book("customer-b"), return_exceptions=True)

        conflicts = [r for r in results if isinstance(r, ConflictError)]
        booked = [r for r in results if not isinstance(r, Exception)]
        assert len(conflicts) == 1
        assert len(booked) == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_cancelled_booking_frees_its_slot(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        await make_appointment(salon, svc, time="10:00", status="cancelled")
        await make_appointment(salon, svc, time="10:30", status="rejected")

        created = await service.create_appointment(CUSTOMER, _request(salon, svc, time="10:00"))

        assert created.status == "pending"

    @pytest.mark.asyncio
    async def test_different_staff_can_share_a_slot(self, service, make_salon, make_service):
        salon = await make_salon(staff_ids=["staff-a", "staff-b"])
        svc = await make_service(salon)
        await service.create_appointment(CUSTOMER, _request(salon, svc, staff_id="staff-a"))

        second = await service.create_appointment(
            CustomerActor(user_id="customer-2"), _request(salon, svc, staff_id="staff-b")
        )

        assert second.staff_id == "staff-b"
        with pytest.raises(ConflictError):
            await service.create_appointment(
                CustomerActor(user_id="customer-3"), _request(salon, svc, staff_id="staff-a")
            )

    @pytest.mark.asyncio
    async def test_unknown_staff_cannot_bypass_a_taken_slot(self, service, make_salon, make_service):
        """A staff id outside the salon's roster is rejected instead of narrowing the conflict check."""
        salon = await make_salon(staff_ids=["staff-a"])
        svc = await make_service(salon)
        await service.create_appointment(CUSTOMER, _request(salon, svc, staff_id="staff-a"))

        with pytest.raises(ValidationError) as exc_info:
            await service.create_appointment(
                CustomerActor(user_id="customer-2"), _request(salon, svc, staff_id="no-such-staff")
            )
        assert exc_info.value.details["validation_errors"]["staff_id"] == "no-such-staff"

        with pytest.raises(ConflictError):
            await service.create_appointment(CustomerActor(user_id="customer-2"), _request(salon, svc))

    @pytest.mark.asyncio
    async def test_staff_requires_a_roster(self, service, make_salon, make_service):
        salon = await make_salon()
        svc = await make_service(salon)

        with pytest.raises(ValidationError):
            await service.create_appointment(CUSTOMER, _request(salon, svc, staff_id="staff-a"))
        with pytest.raises(ValidationError):
            await service.get_available_slots(salon.id, svc.id, TOMORROW, staff_id="staff-a")

    @pytest.mark.asyncio
    async def test_same_day_without_lead_time(self, session, resolver, locks, sink, make_salon, make_service):
        """Slots that have already started today cannot be booked."""
        afternoon = AppointmentsService(
            session, resolver, locks, notifier=sink, clock=lambda: NOW.replace(hour=15)
        )
        salon = await make_salon(booking_settings={"min_advance_booking_hours": 0})
        svc = await make_service(salon)

        slots = await afternoon.get_available_slots(salon.id, svc.id, TODAY)
        assert [slot.start for slot in slots.slots][0] == "15:00"

        with pytest.raises(AdvanceWindowViolation):
            await afternoon.create_appointment(CUSTOMER, _request(salon, svc, day=TODAY, time="09:00"))
        created = await afternoon.create_appointment(CUSTOMER, _request(salon, svc, day=TODAY, time="15:30"))
        assert created.time == "15:30"

    @pytest.mark.asyncio
    async def test_slot_validation_errors(self, service, make_salon, make_service):
        """Calendar and policy checks run before anything is written."""
        salon = await make_salon(operating_hours={"tuesday": {"closed": True}})
        svc = await make_service(salon, duration_minutes=60)

        with pytest.raises(PastDateError):
            await service.create_appointment(CUSTOMER, _request(salon, svc, day=TODAY - dt.timedelta(days=1)))
        with pytest.raises(AdvanceWindowViolation):
            await service.create_appointment(CUSTOMER, _request(salon, svc, day=TODAY + dt.timedelta(days=31)))
        with pytest.raises(ClosedDayError):
            await service.create_appointment(CUSTOMER, _request(salon, svc, day=TOMORROW))
        with pytest.raises(SlotRangeError):
            await service.create_appointment(CUSTOMER, _request(salon, svc, day=TODAY, time="17:30"))
        with pytest.raises(AdvanceWindowViolation):
            await service.create_appointment(CUSTOMER, _request(salon, svc, day=TODAY, time="09:00"))

    @pytest.mark.asyncio
    async def test_service_must_belong_to_salon(self, service, make_salon, make_service):
        salon = await make_salon()
        other = await make_salon(owner_id="owner-2")
        foreign = await make_service(other)

        with pytest.raises(ValidationError):
            await service.create_appointment(CUSTOMER, _request(salon, foreign))

    @pytest.mark.asyncio
    async def test_unknown_salon(self, service, make_salon, make_service):
        salon = await make_salon()
        svc = await make_service(salon)

        with pytest.raises(NotFoundError):
            await service.create_appointment(
                CUSTOMER,
                AppointmentCreateRequest(salon_id="missing", service_id=svc.id, date=TOMORROW, time="10:00"),
            )

    @pytest.mark.asyncio
    async def test_who_may_book(self, service, make_salon, make_service):
        salon = await make_salon()
        svc = await make_service(salon)

        with pytest.raises(AuthorizationError):
            await service.create_appointment(OWNER, _request(salon, svc))
        with pytest.raises(AuthorizationError):
            await service.create_appointment(CUSTOMER, _request(salon, svc, customer_id="someone-else"))
        with pytest.raises(ValidationError):
            await service.create_appointment(ADMIN, _request(salon, svc))

        on_behalf = await service.create_appointment(ADMIN, _request(salon, svc, customer_id="walk-in-7"))
        assert on_behalf.customer_id == "walk-in-7"

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_fail_booking(
        self, session, resolver, locks, clock, make_salon, make_service
    ):
        salon = await make_salon()
        svc = await make_service(salon)
        broken = AppointmentsService(session, resolver, locks, notifier=RecordingSink(fail=True), clock=clock)

        created = await broken.create_appointment(CUSTOMER, _request(salon, svc))

        assert created.status == "pending"


class TestAvailability:
    @pytest.mark.asyncio
    async def test_booked_runs_disappear(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon, duration_minutes=60)
        await make_appointment(salon, svc, time="10:00", covers=["10:00", "10:30"], status="accepted")

        result = await service.get_available_slots(salon.id, svc.id, TOMORROW)

        starts = [slot.start for slot in result.slots]
        assert result.blocks_needed == 2
        assert result.slot_interval == 30
        assert "09:30" not in starts
        assert "10:00" not in starts
        assert "10:30" not in starts
        assert "09:00" in starts
        assert "11:00" in starts
        assert result.message is None

    @pytest.mark.asyncio
    async def test_closed_day_has_message(self, service, make_salon, make_service):
        salon = await make_salon(operating_hours={"tuesday": {"closed": True}})
        svc = await make_service(salon)

        result = await service.get_available_slots(salon.id, svc.id, TOMORROW)

        assert result.slots == []
        assert "closed" in result.message


class TestStatusTransitions:
    @pytest.mark.asyncio
    async def test_full_lifecycle(self, service, sink, make_salon, make_service, make_appointment):
        """pending -> accepted -> in-progress -> completed, with timestamps from the clock."""
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc)

        accepted = await service.update_status(OWNER, appointment.id, "accepted")
        assert accepted.status == "accepted"
        assert accepted.accepted_at is not None

        started = await service.update_status(OWNER, appointment.id, "in-progress")
        assert started.status == "in-progress"

        completed = await service.update_status(OWNER, appointment.id, "completed")
        assert completed.status == "completed"
        assert completed.completed_at is not None

        assert [n["type"] for n in sink.sent] == [APPOINTMENT_ACCEPTED]
        assert sink.sent[0]["user_id"] == CUSTOMER_ID

    @pytest.mark.asyncio
    async def test_reject_notifies_customer(self, service, sink, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc)

        rejected = await service.update_status(OWNER, appointment.id, "rejected")

        assert rejected.status == "rejected"
        assert len(sink.sent) == 1
        assert sink.sent[0]["type"] == APPOINTMENT_REJECTED
        assert sink.sent[0]["user_id"] == CUSTOMER_ID

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,target",
        [
            ("pending", "in-progress"),
            ("pending", "completed"),
            ("accepted", "completed"),
            ("completed", "accepted"),
            ("cancelled", "accepted"),
            ("rejected", "in-progress"),
        ],
    )
    async def test_illegal_transitions(self, service, make_salon, make_service, make_appointment, status, target):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc, status=status)

        with pytest.raises(IllegalTransitionError) as exc_info:
            await service.update_status(OWNER, appointment.id, target)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["current_status"] == status

    @pytest.mark.asyncio
    async def test_unknown_status(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc)

        with pytest.raises(ValidationError):
            await service.update_status(OWNER, appointment.id, "on-hold")

    @pytest.mark.asyncio
    async def test_only_salon_side_changes_status(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc)

        with pytest.raises(AuthorizationError):
            await service.update_status(CUSTOMER, appointment.id, "accepted")
        with pytest.raises(AuthorizationError):
            await service.update_status(OwnerActor(user_id="owner-2"), appointment.id, "accepted")
        with pytest.raises(AuthorizationError):
            await service.update_status(
                StaffActor(user_id="u-9", staff_id="s-9", salon_id="other-salon"), appointment.id, "accepted"
            )

        staff = StaffActor(user_id="u-1", staff_id="s-1", salon_id=salon.id)
        accepted = await service.update_status(staff, appointment.id, "accepted")
        assert accepted.status == "accepted"

    @pytest.mark.asyncio
    async def test_no_show(self, service, sink, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        completed = await make_appointment(salon, svc, time="10:00", status="completed")
        pending = await make_appointment(salon, svc, time="11:00")

        with pytest.raises(IllegalTransitionError):
            await service.mark_no_show(OWNER, completed.id)

        result = await service.mark_no_show(OWNER, pending.id)
        assert result.status == "no-show"
        assert result.no_show_at is not None
        assert sink.sent[-1]["user_id"] == CUSTOMER_ID

    @pytest.mark.asyncio
    async def test_missing_appointment(self, service):
        with pytest.raises(NotFoundError):
            await service.update_status(OWNER, "missing", "accepted")


class TestCancel:
    @pytest.mark.asyncio
    async def test_customer_cancels_outside_window(self, service, sink, make_salon, make_service, make_appointment):
        """26 hours ahead clears the default 24 hour window."""
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc, day=TOMORROW, time="10:00", status="accepted")

        cancelled = await service.cancel(CUSTOMER, appointment.id)

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by == "customer"
        assert cancelled.cancelled_at is not None
        assert sink.sent[-1]["type"] == APPOINTMENT_CANCELLED
        assert sink.sent[-1]["user_id"] == OWNER_ID

    @pytest.mark.asyncio
    async def test_customer_blocked_inside_window(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc, day=TODAY, time="17:00", status="accepted")

        with pytest.raises(PolicyViolation) as exc_info:
            await service.cancel(CUSTOMER, appointment.id)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_salon_side_ignores_window(self, service, sink, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc, day=TODAY, time="17:00", status="accepted")

        cancelled = await service.cancel(OWNER, appointment.id)

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by == "owner"
        assert sink.sent[-1]["user_id"] == CUSTOMER_ID

    @pytest.mark.asyncio
    async def test_salon_window_override(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon(booking_settings={"cancellation_hours": 0})
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc, day=TODAY, time="17:00")

        cancelled = await service.cancel(CUSTOMER, appointment.id)

        assert cancelled.status == "cancelled"

    @pytest.mark.asyncio
    async def test_cancel_via_status_update(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc)

        cancelled = await service.update_status(OWNER, appointment.id, "cancelled")

        assert cancelled.status == "cancelled"

    @pytest.mark.asyncio
    async def test_terminal_and_foreign(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        completed = await make_appointment(salon, svc, time="10:00", status="completed")
        pending = await make_appointment(salon, svc, time="11:00")

        with pytest.raises(IllegalTransitionError):
            await service.cancel(OWNER, completed.id)
        with pytest.raises(AuthorizationError):
            await service.cancel(CustomerActor(user_id="stranger"), pending.id)


class TestReschedule:
    @pytest.mark.asyncio
    async def test_overlapping_own_slot_is_allowed(self, service, sink, make_salon, make_service, make_appointment):
        """Moving by half a slot-run ignores the appointment's own current labels."""
        salon = await make_salon()
        svc = await make_service(salon, duration_minutes=60)
        appointment = await make_appointment(
            salon, svc, time="10:00", covers=["10:00", "10:30"], status="accepted"
        )

        moved = await service.reschedule(CUSTOMER, appointment.id, TOMORROW, "10:30")

        assert moved.time == "10:30"
        assert moved.covers == ["10:30", "11:00"]
        assert moved.status == "accepted"
        assert sink.sent[-1]["type"] == APPOINTMENT_RESCHEDULED
        assert sink.sent[-1]["user_id"] == OWNER_ID

    @pytest.mark.asyncio
    async def test_conflict_with_other_booking(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon, duration_minutes=60)
        appointment = await make_appointment(salon, svc, time="10:00", covers=["10:00", "10:30"])
        await make_appointment(salon, svc, time="12:00", covers=["12:00", "12:30"], customer_id="customer-2")

        with pytest.raises(ConflictError):
            await service.reschedule(OWNER, appointment.id, TOMORROW, "11:30")

    @pytest.mark.asyncio
    async def test_move_to_another_day_frees_old_slot(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc, time="10:00")
        next_day = TOMORROW + dt.timedelta(days=1)

        moved = await service.reschedule(OWNER, appointment.id, next_day, "15:00")

        assert moved.date == next_day
        slots = await service.get_available_slots(salon.id, svc.id, TOMORROW)
        assert "10:00" in [slot.start for slot in slots.slots]

    @pytest.mark.asyncio
    async def test_keeps_booked_duration(self, service, session, make_salon, make_service, make_appointment):
        """A later change to the service duration does not resize an existing booking."""
        salon = await make_salon()
        svc = await make_service(salon, duration_minutes=30)
        appointment = await make_appointment(salon, svc, time="10:00")
        svc.duration_minutes = 90
        await session.commit()

        moved = await service.reschedule(OWNER, appointment.id, TOMORROW, "14:00")

        assert moved.covers == ["14:00"]

    @pytest.mark.asyncio
    async def test_rejects_terminal_and_invalid_targets(
        self, service, make_salon, make_service, make_appointment
    ):
        salon = await make_salon()
        svc = await make_service(salon)
        completed = await make_appointment(salon, svc, time="10:00", status="completed")
        pending = await make_appointment(salon, svc, time="11:00")

        with pytest.raises(IllegalTransitionError):
            await service.reschedule(OWNER, completed.id, TOMORROW, "15:00")
        with pytest.raises(PastDateError):
            await service.reschedule(OWNER, pending.id, TODAY - dt.timedelta(days=1), "15:00")
        with pytest.raises(SlotRangeError):
            await service.reschedule(OWNER, pending.id, TOMORROW, "15:15")
        with pytest.raises(AuthorizationError):
            await service.reschedule(CustomerActor(user_id="stranger"), pending.id, TOMORROW, "15:00")


class TestListing:
    @pytest.mark.asyncio
    async def test_scoping_by_actor(self, service, make_salon, make_service, make_appointment):
        mine = await make_salon()
        theirs = await make_salon(owner_id="owner-2")
        my_cut = await make_service(mine)
        their_cut = await make_service(theirs)
        await make_appointment(mine, my_cut, time="10:00")
        await make_appointment(mine, my_cut, time="11:00", customer_id="customer-2", status="completed")
        await make_appointment(theirs, their_cut, time="10:00")

        customer_view = await service.list_appointments(CUSTOMER)
        assert customer_view.total == 2
        assert {a.customer_id for a in customer_view.items} == {CUSTOMER_ID}

        owner_view = await service.list_appointments(OWNER)
        assert owner_view.total == 2
        assert {a.salon_id for a in owner_view.items} == {mine.id}

        staff_view = await service.list_appointments(StaffActor(user_id="u", staff_id="s", salon_id=theirs.id))
        assert staff_view.total == 1

        admin_view = await service.list_appointments(ADMIN)
        assert admin_view.total == 3

        completed = await service.list_completed(OWNER)
        assert [a.status for a in completed.items] == ["completed"]

        with pytest.raises(AuthorizationError):
            await service.list_appointments(OWNER, salon_id=theirs.id)

    @pytest.mark.asyncio
    async def test_pagination_and_filters(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        for time in ("09:00", "10:00", "11:00"):
            await make_appointment(salon, svc, time=time)
        await make_appointment(salon, svc, day=TOMORROW + dt.timedelta(days=1), time="09:00", status="accepted")

        page = await service.list_appointments(OWNER, day=TOMORROW, skip=1, limit=1)
        assert page.total == 3
        assert len(page.items) == 1
        assert page.items[0].time == "10:00"

        accepted = await service.list_appointments(OWNER, statuses=["accepted"])
        assert accepted.total == 1

        with pytest.raises(ValidationError):
            await service.list_appointments(OWNER, statuses=["accepted", "bogus"])

    @pytest.mark.asyncio
    async def test_get_appointment_access(self, service, make_salon, make_service, make_appointment):
        salon = await make_salon()
        svc = await make_service(salon)
        appointment = await make_appointment(salon, svc)

        assert (await service.get_appointment(CUSTOMER, appointment.id)).id == appointment.id
        assert (await service.get_appointment(OWNER, appointment.id)).id == appointment.id
        with pytest.raises(AuthorizationError):
            await service.get_appointment(CustomerActor(user_id="stranger"), appointment.id)

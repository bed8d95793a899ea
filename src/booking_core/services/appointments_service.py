"""Appointments and scheduling service.

Orchestrates the scheduling core for one request: loads the salon and service,
validates the requested slot against calendar and policy, serializes the
conflict check with the write, persists, and notifies the other party.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.auth.actors import Actor, AdminActor, CustomerActor, OwnerActor, StaffActor
from booking_core.database.models import Appointment, Salon, Service
from booking_core.exceptions import (
    AuthorizationError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from booking_core.models.appointments import (
    AppointmentCreateRequest,
    AppointmentListResponse,
    AppointmentResponse,
    AvailabilityResponse,
    SlotRunResponse,
)
from booking_core.repositories.appointments_repository import AppointmentsRepository
from booking_core.repositories.salons_repository import SalonsRepository, ServicesRepository
from booking_core.scheduling.availability import AvailabilityCalculator, Clock, utcnow
from booking_core.scheduling.conflicts import ConflictDetector
from booking_core.scheduling.locks import SlotLockRegistry
from booking_core.scheduling.policy import PolicyResolver
from booking_core.scheduling.slot_grid import clock_to_time
from booking_core.scheduling.state_machine import (
    ACTIVE_STATUSES,
    AppointmentStatus,
    allowed_sources,
    check_cancellation_window,
    ensure_reschedulable,
    plan_transition,
)
from booking_core.services.notifications_service import (
    APPOINTMENT_ACCEPTED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_CREATED,
    APPOINTMENT_NO_SHOW,
    APPOINTMENT_REJECTED,
    APPOINTMENT_RESCHEDULED,
    NotificationSink,
)

logger = logging.getLogger(__name__)

# status -> notification type sent to the customer when the salon side moves it
_CUSTOMER_EVENTS = {
    AppointmentStatus.ACCEPTED.value: (APPOINTMENT_ACCEPTED, "accepted"),
    AppointmentStatus.REJECTED.value: (APPOINTMENT_REJECTED, "rejected"),
    AppointmentStatus.NO_SHOW.value: (APPOINTMENT_NO_SHOW, "marked as a no-show"),
}


class AppointmentsService:
    """Service for salon scheduling operations."""

    def __init__(
        self,
        session: AsyncSession,
        resolver: PolicyResolver,
        locks: SlotLockRegistry,
        notifier: Optional[NotificationSink] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._session = session
        self._appointments = AppointmentsRepository(session)
        self._salons = SalonsRepository(session)
        self._services = ServicesRepository(session)
        self._calculator = AvailabilityCalculator(resolver, clock)
        self._conflicts = ConflictDetector(self._appointments)
        self._locks = locks
        self._notifier = notifier
        self._clock = clock

    # ------------------------------------------------------------------
    # Lookups and guards
    # ------------------------------------------------------------------

    async def _get_salon(self, salon_id: str) -> Salon:
        salon = await self._salons.get_by_id(salon_id)
        if salon is None:
            raise NotFoundError("Salon", salon_id)
        return salon

    async def _get_service(self, salon: Salon, service_id: str) -> Service:
        service = await self._services.get_by_id(service_id)
        if service is None:
            raise NotFoundError("Service", service_id)
        if service.salon_id != salon.id:
            raise ValidationError(
                "Service does not belong to this salon",
                errors={"service_id": service_id, "salon_id": salon.id},
            )
        return service

    @staticmethod
    def _check_staff(salon: Salon, staff_id: Optional[str]) -> None:
        """Only staff on the salon's roster may narrow occupancy to their own bookings."""
        if staff_id is not None and staff_id not in (salon.staff_ids or []):
            raise ValidationError(
                "Staff member does not work at this salon",
                errors={"staff_id": staff_id, "salon_id": salon.id},
            )

    async def _get_appointment(self, appointment_id: str) -> Tuple[Appointment, Salon]:
        appointment = await self._appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        salon = await self._get_salon(appointment.salon_id)
        return appointment, salon

    @staticmethod
    def _manages_salon(actor: Actor, salon: Salon) -> bool:
        if isinstance(actor, AdminActor):
            return True
        if isinstance(actor, OwnerActor):
            return salon.owner_id == actor.user_id
        if isinstance(actor, StaffActor):
            return salon.id == actor.salon_id
        return False

    def _is_party(self, actor: Actor, appointment: Appointment, salon: Salon) -> bool:
        if isinstance(actor, CustomerActor):
            return appointment.customer_id == actor.user_id
        return self._manages_salon(actor, salon)

    def _require_party(self, actor: Actor, appointment: Appointment, salon: Salon) -> None:
        if not self._is_party(actor, appointment, salon):
            logger.warning(
                f"User {actor.user_id} ({actor.role.value}) denied access to appointment {appointment.id}"
            )
            raise AuthorizationError("You do not have access to this appointment")

    def _require_salon_side(self, actor: Actor, salon: Salon) -> None:
        if isinstance(actor, CustomerActor):
            raise AuthorizationError("Customers cannot change appointment status")
        if not self._manages_salon(actor, salon):
            raise AuthorizationError("You do not manage this salon")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _notify(
        self, user_id: Optional[str], event_type: str, message: str, appointment: Appointment
    ) -> None:
        """Deliver a notification; delivery failures are logged, never raised."""
        if self._notifier is None or not user_id:
            return
        try:
            await self._notifier.notify(
                user_id,
                event_type,
                message,
                appointment_id=appointment.id,
                salon_id=appointment.salon_id,
            )
        except Exception as e:
            logger.error(
                f"Failed to deliver {event_type} notification for appointment {appointment.id} to {user_id}: {e}",
                exc_info=True,
            )

    @staticmethod
    def _when(appointment: Appointment) -> str:
        return f"{appointment.date.isoformat()} at {appointment.time}"

    async def _notify_counterparty(
        self, actor: Actor, appointment: Appointment, salon: Salon, event_type: str, message: str
    ) -> None:
        if isinstance(actor, CustomerActor):
            await self._notify(salon.owner_id, event_type, message, appointment)
        else:
            await self._notify(appointment.customer_id, event_type, message, appointment)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def get_available_slots(
        self,
        salon_id: str,
        service_id: str,
        day: date,
        staff_id: Optional[str] = None,
    ) -> AvailabilityResponse:
        """List the bookable slot-runs for a service on one day."""
        salon = await self._get_salon(salon_id)
        service = await self._get_service(salon, service_id)
        self._check_staff(salon, staff_id)

        existing = await self._appointments.find_active_for_day(salon.id, day, staff_id=staff_id)
        result = self._calculator.available_slots(day, service, salon, existing)

        return AvailabilityResponse(
            salon_id=salon.id,
            service_id=service.id,
            date=day,
            slot_interval=result.plan.settings.slot_interval if result.plan else None,
            blocks_needed=result.plan.blocks_needed if result.plan else None,
            slots=[SlotRunResponse(**slot.to_dict()) for slot in result.slots],
            message=result.reason,
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _booking_customer(self, actor: Actor, request: AppointmentCreateRequest) -> str:
        if isinstance(actor, CustomerActor):
            if request.customer_id and request.customer_id != actor.user_id:
                raise AuthorizationError("Customers can only book for themselves")
            return actor.user_id
        if isinstance(actor, AdminActor):
            if not request.customer_id:
                raise ValidationError(
                    "customer_id is required when booking on behalf of a customer",
                    errors={"customer_id": "required"},
                )
            return request.customer_id
        raise AuthorizationError("Only customers can book appointments")

    async def create_appointment(self, actor: Actor, request: AppointmentCreateRequest) -> AppointmentResponse:
        """Reserve a slot-run and create the appointment in ``pending``.

        Raises:
            NotFoundError, ValidationError, PastDateError, AdvanceWindowViolation,
            ClosedDayError, SlotRangeError, ConflictError, AuthorizationError
        """
        customer_id = self._booking_customer(actor, request)
        salon = await self._get_salon(request.salon_id)
        service = await self._get_service(salon, request.service_id)
        self._check_staff(salon, request.staff_id)

        _, covers = self._calculator.resolve_slot_run(request.date, request.time, service, salon)

        price = Decimal(service.price)
        discount = Decimal(service.discount or 0)
        amount = max(price - discount, Decimal("0"))

        async with self._locks.hold(salon.id, request.date):
            await self._conflicts.ensure_free(salon.id, request.date, covers, staff_id=request.staff_id)
            appointment = await self._appointments.create(
                salon_id=salon.id,
                service_id=service.id,
                customer_id=customer_id,
                staff_id=request.staff_id,
                date=request.date,
                time=request.time,
                covers=list(covers),
                duration_minutes=service.duration_minutes,
                status=AppointmentStatus.PENDING.value,
                amount=amount,
                discount=discount,
                notes=request.notes,
            )
            await self._session.commit()

        logger.info(
            f"Appointment {appointment.id} booked: salon={salon.id} service={service.id} "
            f"date={appointment.date} covers={appointment.covers}"
        )
        await self._notify(
            salon.owner_id,
            APPOINTMENT_CREATED,
            f"New appointment request for {service.name} on {self._when(appointment)}",
            appointment,
        )
        return AppointmentResponse.from_model(appointment)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def _apply_transition(self, appointment: Appointment, target: str, **extra: Any) -> Appointment:
        """Persist ``target`` only if the status is still a legal source for it."""
        previous = appointment.status
        patch = plan_transition(previous, target, self._clock())
        patch.update(extra)

        updated = await self._appointments.update_if_status(appointment.id, allowed_sources(target), **patch)
        if updated is None:
            # another request moved it between our read and our write
            current = await self._appointments.get_by_id(appointment.id)
            raise IllegalTransitionError(
                current_status=current.status if current else appointment.status,
                target_status=target,
            )
        await self._session.commit()
        logger.info(f"Appointment {appointment.id}: {previous} -> {target}")
        return updated

    async def update_status(self, actor: Actor, appointment_id: str, target: str) -> AppointmentResponse:
        """Move an appointment to ``target`` (accept, reject, start, complete, cancel).

        Cancelling goes through :meth:`cancel` so the cancellation policy applies.
        """
        try:
            target = AppointmentStatus(target).value
        except ValueError:
            raise ValidationError(f"Unknown appointment status: {target!r}", errors={"status": target})
        if target == AppointmentStatus.CANCELLED.value:
            return await self.cancel(actor, appointment_id)

        appointment, salon = await self._get_appointment(appointment_id)
        self._require_salon_side(actor, salon)

        previous = appointment.status
        updated = await self._apply_transition(appointment, target)

        if target in _CUSTOMER_EVENTS:
            event_type, verb = _CUSTOMER_EVENTS[target]
            await self._notify(
                updated.customer_id,
                event_type,
                f"Your appointment on {self._when(updated)} was {verb}",
                updated,
            )
        logger.debug(f"Status change by {actor.role.value} {actor.user_id}: {previous} -> {target}")
        return AppointmentResponse.from_model(updated)

    async def mark_no_show(self, actor: Actor, appointment_id: str) -> AppointmentResponse:
        return await self.update_status(actor, appointment_id, AppointmentStatus.NO_SHOW.value)

    def _starts_at(self, appointment: Appointment, salon: Salon) -> datetime:
        tz = self._calculator.resolver.timezone(salon)
        return datetime.combine(appointment.date, clock_to_time(appointment.time), tzinfo=tz)

    async def cancel(self, actor: Actor, appointment_id: str) -> AppointmentResponse:
        """Cancel an active appointment.

        Customers must cancel at least ``cancellation_hours`` before the start; the
        salon side and admins are not bound by the window.

        Raises:
            NotFoundError, AuthorizationError, IllegalTransitionError, PolicyViolation
        """
        appointment, salon = await self._get_appointment(appointment_id)
        self._require_party(actor, appointment, salon)

        target = AppointmentStatus.CANCELLED.value
        if appointment.status not in allowed_sources(target):
            raise IllegalTransitionError(current_status=appointment.status, target_status=target)

        if isinstance(actor, CustomerActor):
            settings = self._calculator.resolver.resolve(salon)
            check_cancellation_window(
                self._starts_at(appointment, salon),
                self._calculator.local_now(salon),
                settings.cancellation_hours,
            )

        updated = await self._apply_transition(appointment, target, cancelled_by=actor.role.value)
        await self._notify_counterparty(
            actor,
            updated,
            salon,
            APPOINTMENT_CANCELLED,
            f"Appointment on {self._when(updated)} was cancelled by the {actor.role.value}",
        )
        return AppointmentResponse.from_model(updated)

    # ------------------------------------------------------------------
    # Reschedule
    # ------------------------------------------------------------------

    async def reschedule(
        self, actor: Actor, appointment_id: str, new_date: date, new_time: str
    ) -> AppointmentResponse:
        """Move an active appointment to another day and/or slot, keeping its status.

        The new slot goes through the same validation as a fresh booking, and the
        conflict check ignores the appointment's own current slot-run.
        """
        appointment, salon = await self._get_appointment(appointment_id)
        self._require_party(actor, appointment, salon)
        ensure_reschedulable(appointment.status)

        service = await self._get_service(salon, appointment.service_id)
        _, covers = self._calculator.resolve_slot_run(
            new_date, new_time, service, salon, duration_minutes=appointment.duration_minutes
        )

        old_when = self._when(appointment)
        async with self._locks.hold(salon.id, appointment.date, new_date):
            await self._conflicts.ensure_free(
                salon.id,
                new_date,
                covers,
                exclude_appointment_id=appointment.id,
                staff_id=appointment.staff_id,
            )
            updated = await self._appointments.update_if_status(
                appointment.id,
                ACTIVE_STATUSES,
                date=new_date,
                time=new_time,
                covers=list(covers),
            )
            if updated is None:
                current = await self._appointments.get_by_id(appointment.id)
                status = current.status if current else appointment.status
                raise IllegalTransitionError(
                    current_status=status,
                    target_status=status,
                    message=f"Cannot reschedule an appointment that is '{status}'",
                )
            await self._session.commit()

        logger.info(f"Appointment {appointment.id} rescheduled from {old_when} to {self._when(updated)}")
        await self._notify_counterparty(
            actor,
            updated,
            salon,
            APPOINTMENT_RESCHEDULED,
            f"Appointment moved from {old_when} to {self._when(updated)}",
        )
        return AppointmentResponse.from_model(updated)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _scope(self, actor: Actor, salon_id: Optional[str]) -> dict:
        """Listing filters that restrict ``actor`` to what it may see."""
        if isinstance(actor, CustomerActor):
            return {"customer_id": actor.user_id, "salon_id": salon_id}
        if isinstance(actor, StaffActor):
            if salon_id is not None and salon_id != actor.salon_id:
                raise AuthorizationError("You do not manage this salon")
            return {"salon_id": actor.salon_id}
        if isinstance(actor, OwnerActor):
            if salon_id is None:
                return {"owner_id": actor.user_id}
            salon = await self._get_salon(salon_id)
            if not self._manages_salon(actor, salon):
                raise AuthorizationError("You do not manage this salon")
            return {"salon_id": salon_id}
        return {"salon_id": salon_id}

    async def list_appointments(
        self,
        actor: Actor,
        statuses: Optional[Iterable[str]] = None,
        day: Optional[date] = None,
        salon_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> AppointmentListResponse:
        filters = await self._scope(actor, salon_id)
        if statuses:
            try:
                statuses = [AppointmentStatus(s).value for s in statuses]
            except ValueError:
                raise ValidationError(
                    "Unknown appointment status filter", errors={"status": list(statuses)}
                )
        else:
            statuses = None

        items: List[Appointment] = await self._appointments.search(
            **filters, statuses=statuses, day=day, skip=skip, limit=limit
        )
        total = await self._appointments.count_by_filter(**filters, statuses=statuses, day=day)
        return AppointmentListResponse(
            items=[AppointmentResponse.from_model(a) for a in items],
            total=total,
            skip=skip,
            limit=limit,
        )

    async def list_completed(
        self, actor: Actor, salon_id: Optional[str] = None, skip: int = 0, limit: int = 50
    ) -> AppointmentListResponse:
        """Completed bookings visible to ``actor``."""
        return await self.list_appointments(
            actor,
            statuses=[AppointmentStatus.COMPLETED.value],
            salon_id=salon_id,
            skip=skip,
            limit=limit,
        )

    async def get_appointment(self, actor: Actor, appointment_id: str) -> AppointmentResponse:
        appointment, salon = await self._get_appointment(appointment_id)
        self._require_party(actor, appointment, salon)
        return AppointmentResponse.from_model(appointment)


def get_appointments_service_for_session(
    session: AsyncSession,
    resolver: PolicyResolver,
    locks: SlotLockRegistry,
    notifier: Optional[NotificationSink] = None,
    clock: Clock = utcnow,
) -> AppointmentsService:
    """Create an AppointmentsService bound to a DB session."""
    return AppointmentsService(session, resolver, locks, notifier=notifier, clock=clock)

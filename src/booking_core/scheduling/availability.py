"""Availability calculation.

Maps a variable-duration service onto the salon's fixed slot grid for one day and
reports which contiguous slot-runs can still be booked. The same day plan backs
both the public availability listing and the validation of a concrete booking
request, so the two can never disagree.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple
from zoneinfo import ZoneInfo

from booking_core.exceptions import (
    AdvanceWindowViolation,
    ClosedDayError,
    PastDateError,
    SlotRangeError,
    ValidationError,
)
from booking_core.scheduling.policy import DayHours, EffectiveBookingSettings, PolicyResolver
from booking_core.scheduling.slot_grid import clock_to_time, generate
from booking_core.scheduling.state_machine import is_active

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

REASON_CLOSED_DAY = "closed_day"
REASON_SAME_DAY_DISALLOWED = "same_day_disallowed"
REASON_MIN_ADVANCE = "min_advance"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def blocks_needed(duration_minutes: int, slot_interval: int) -> int:
    """Number of grid slots a service occupies; partial blocks round up."""
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Service duration must be a positive number of minutes")
    return math.ceil(duration_minutes / slot_interval)


def occupied_slots(appointments: Iterable[Any], exclude_appointment_id: Optional[str] = None) -> Set[str]:
    """Slot labels held by active appointments.

    Terminal appointments never occupy anything. Records without a stored slot-run
    occupy their start label only.
    """
    occupied: Set[str] = set()
    for appointment in appointments:
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if not is_active(appointment.status):
            continue
        occupied.update(appointment.covers or [appointment.time])
    return occupied


@dataclass(frozen=True)
class SlotRun:
    """A bookable run of consecutive slots."""

    start: str
    end: str
    covers: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "covers": list(self.covers)}


@dataclass(frozen=True)
class DayPlan:
    """Everything the calendar and policy say about one salon day for one service."""

    day: date
    tz: ZoneInfo
    hours: DayHours
    settings: EffectiveBookingSettings
    blocks_needed: int
    grid: Tuple[str, ...] = ()
    earliest_start: Optional[datetime] = None
    reason: Optional[str] = None
    reason_code: Optional[str] = None

    def starts_at(self, label: str) -> datetime:
        """Timezone-aware start of the slot labelled ``label`` on this day."""
        return datetime.combine(self.day, clock_to_time(label), tzinfo=self.tz)

    def windows(self) -> List[Tuple[str, ...]]:
        """Every run of ``blocks_needed`` consecutive grid labels, sliding by one."""
        size = self.blocks_needed
        return [self.grid[i : i + size] for i in range(len(self.grid) - size + 1)]

    def too_early(self, label: str) -> bool:
        return self.earliest_start is not None and self.starts_at(label) < self.earliest_start


@dataclass
class AvailabilityResult:
    slots: List[SlotRun] = field(default_factory=list)
    reason: Optional[str] = None
    plan: Optional[DayPlan] = None


class AvailabilityCalculator:
    """Computes bookable slot-runs and validates requested slots."""

    def __init__(self, resolver: PolicyResolver, clock: Clock = utcnow) -> None:
        self._resolver = resolver
        self._clock = clock

    @property
    def resolver(self) -> PolicyResolver:
        return self._resolver

    def local_now(self, salon: Any) -> datetime:
        return self._clock().astimezone(self._resolver.timezone(salon))

    def check_date_window(self, day: date, salon: Any, settings: Optional[EffectiveBookingSettings] = None) -> None:
        """Reject past dates and dates beyond the advance booking window."""
        settings = settings or self._resolver.resolve(salon)
        today = self.local_now(salon).date()

        if day < today:
            raise PastDateError(details={"date": day.isoformat(), "today": today.isoformat()})

        latest = today + timedelta(days=settings.max_advance_booking_days)
        if day > latest:
            raise AdvanceWindowViolation(
                message=f"Cannot book more than {settings.max_advance_booking_days} days in advance",
                details={"date": day.isoformat(), "latest_bookable_date": latest.isoformat()},
            )

    def plan_day(
        self, day: date, service: Any, salon: Any, duration_minutes: Optional[int] = None
    ) -> DayPlan:
        """Resolve hours, grid and same-day cutoff for ``day``.

        ``duration_minutes`` overrides the service duration; reschedules pass the
        duration frozen on the appointment.

        Raises for past or too-distant dates. A closed day or a disallowed same-day
        booking is reported through ``reason`` instead, with an empty grid.
        """
        settings = self._resolver.resolve(salon)
        tz = self._resolver.timezone(salon)
        now = self.local_now(salon)

        self.check_date_window(day, salon, settings)

        hours = self._resolver.day_hours(salon, day)
        duration = service.duration_minutes if duration_minutes is None else duration_minutes
        blocks = blocks_needed(duration, settings.slot_interval)
        base = dict(day=day, tz=tz, hours=hours, settings=settings, blocks_needed=blocks)

        if hours.closed:
            return DayPlan(
                **base,
                reason=f"Salon is closed on {hours.weekday}",
                reason_code=REASON_CLOSED_DAY,
            )

        earliest_start = None
        if day == now.date():
            if not settings.allow_same_day_booking:
                return DayPlan(
                    **base,
                    reason="Same-day booking is not allowed",
                    reason_code=REASON_SAME_DAY_DISALLOWED,
                )
            earliest_start = now + timedelta(hours=settings.min_advance_booking_hours)

        grid = tuple(generate(hours.opening, hours.closing, settings.slot_interval))
        return DayPlan(**base, grid=grid, earliest_start=earliest_start)

    def available_slots(
        self,
        day: date,
        service: Any,
        salon: Any,
        existing_appointments: Iterable[Any],
        exclude_appointment_id: Optional[str] = None,
    ) -> AvailabilityResult:
        """List the free slot-runs for ``service`` on ``day``."""
        plan = self.plan_day(day, service, salon)
        if plan.reason:
            return AvailabilityResult(slots=[], reason=plan.reason, plan=plan)

        occupied = occupied_slots(existing_appointments, exclude_appointment_id)
        slots: List[SlotRun] = []
        passed_cutoff = False

        for covers in plan.windows():
            if plan.too_early(covers[0]):
                continue
            passed_cutoff = True
            if occupied.intersection(covers):
                continue
            slots.append(SlotRun(start=covers[0], end=covers[-1], covers=covers))

        reason = None
        if plan.earliest_start is not None and not passed_cutoff:
            if plan.settings.min_advance_booking_hours:
                reason = (
                    "No available slots. Minimum advance booking is "
                    f"{plan.settings.min_advance_booking_hours} hours."
                )
            else:
                reason = "No available slots remain today."

        logger.debug(
            f"Availability for salon={getattr(salon, 'id', None)} date={day} "
            f"blocks={plan.blocks_needed}: {len(slots)} of {len(plan.windows())} runs free"
        )
        return AvailabilityResult(slots=slots, reason=reason, plan=plan)

    def resolve_slot_run(
        self,
        day: date,
        time_label: str,
        service: Any,
        salon: Any,
        duration_minutes: Optional[int] = None,
    ) -> Tuple[DayPlan, Tuple[str, ...]]:
        """Validate a requested start time and return the slot-run it would occupy.

        Raises:
            PastDateError, AdvanceWindowViolation, ClosedDayError, SlotRangeError
        """
        plan = self.plan_day(day, service, salon, duration_minutes)

        if plan.reason_code == REASON_CLOSED_DAY:
            raise ClosedDayError(plan.hours.weekday, details={"date": day.isoformat()})
        if plan.reason_code == REASON_SAME_DAY_DISALLOWED:
            raise AdvanceWindowViolation(message=plan.reason, details={"date": day.isoformat()})

        slot_details = {
            "time": time_label,
            "opening": plan.hours.opening,
            "closing": plan.hours.closing,
            "slot_interval": plan.settings.slot_interval,
        }
        if time_label not in plan.grid:
            raise SlotRangeError(
                message=f"{time_label} is not a valid slot for this salon",
                details=slot_details,
            )

        index = plan.grid.index(time_label)
        covers = plan.grid[index : index + plan.blocks_needed]
        if len(covers) < plan.blocks_needed:
            raise SlotRangeError(
                message=f"Service starting at {time_label} would run past closing time ({plan.hours.closing})",
                details={**slot_details, "blocks_needed": plan.blocks_needed},
            )

        if plan.too_early(time_label):
            lead = plan.settings.min_advance_booking_hours
            raise AdvanceWindowViolation(
                message=(
                    f"Same-day bookings must be made at least {lead} hours in advance"
                    if lead
                    else f"The {time_label} slot has already started"
                ),
                details={"earliest_start": plan.earliest_start.isoformat(), "time": time_label},
            )

        return plan, covers

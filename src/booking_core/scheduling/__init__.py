"""Scheduling core: slot grid, booking policy, availability, conflicts and lifecycle."""

from booking_core.scheduling.availability import (
    AvailabilityCalculator,
    AvailabilityResult,
    DayPlan,
    SlotRun,
    blocks_needed,
    occupied_slots,
    utcnow,
)
from booking_core.scheduling.conflicts import ConflictDetector, find_conflicts
from booking_core.scheduling.locks import SlotLockRegistry
from booking_core.scheduling.policy import (
    WEEKDAYS,
    DayHours,
    EffectiveBookingSettings,
    PolicyResolver,
    weekday_name,
)
from booking_core.scheduling.slot_grid import format_clock, generate, is_clock, parse_clock
from booking_core.scheduling.state_machine import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    AppointmentStatus,
    check_cancellation_window,
    ensure_reschedulable,
    is_active,
    is_terminal,
    plan_transition,
)

__all__ = [
    # Slot grid
    "generate",
    "parse_clock",
    "format_clock",
    "is_clock",
    # Policy
    "PolicyResolver",
    "EffectiveBookingSettings",
    "DayHours",
    "WEEKDAYS",
    "weekday_name",
    # Availability
    "AvailabilityCalculator",
    "AvailabilityResult",
    "DayPlan",
    "SlotRun",
    "blocks_needed",
    "occupied_slots",
    "utcnow",
    # Conflicts
    "ConflictDetector",
    "find_conflicts",
    "SlotLockRegistry",
    # Lifecycle
    "AppointmentStatus",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "plan_transition",
    "ensure_reschedulable",
    "check_cancellation_window",
    "is_active",
    "is_terminal",
]

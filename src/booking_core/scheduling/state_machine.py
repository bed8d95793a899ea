"""Appointment lifecycle.

    pending --accept--> accepted --start--> in-progress --complete--> completed
       |
       +--reject--> rejected

    any non-terminal --cancel--> cancelled
    any non-terminal --no-show--> no-show

Guards here are pure: they look at the current status and return the field patch
for the transition, or raise. Persisting the patch (conditionally on the status
still being what was checked) is the caller's job.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, FrozenSet

from booking_core.exceptions import IllegalTransitionError, PolicyViolation


class AppointmentStatus(str, Enum):
    """Appointment statuses."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


ACTIVE_STATUSES: FrozenSet[str] = frozenset(
    s.value for s in (AppointmentStatus.PENDING, AppointmentStatus.ACCEPTED, AppointmentStatus.IN_PROGRESS)
)
TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    s.value
    for s in (
        AppointmentStatus.REJECTED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    )
)

# target -> statuses it may be entered from
ALLOWED_SOURCES: Dict[str, FrozenSet[str]] = {
    AppointmentStatus.ACCEPTED.value: frozenset({AppointmentStatus.PENDING.value}),
    AppointmentStatus.REJECTED.value: frozenset({AppointmentStatus.PENDING.value}),
    AppointmentStatus.IN_PROGRESS.value: frozenset({AppointmentStatus.ACCEPTED.value}),
    AppointmentStatus.COMPLETED.value: frozenset({AppointmentStatus.IN_PROGRESS.value}),
    AppointmentStatus.CANCELLED.value: ACTIVE_STATUSES,
    AppointmentStatus.NO_SHOW.value: ACTIVE_STATUSES,
}

TIMESTAMP_FIELDS: Dict[str, str] = {
    AppointmentStatus.ACCEPTED.value: "accepted_at",
    AppointmentStatus.REJECTED.value: "rejected_at",
    AppointmentStatus.IN_PROGRESS.value: "started_at",
    AppointmentStatus.COMPLETED.value: "completed_at",
    AppointmentStatus.CANCELLED.value: "cancelled_at",
    AppointmentStatus.NO_SHOW.value: "no_show_at",
}


def is_active(status: str) -> bool:
    """True while the appointment still occupies its slot-run."""
    return status in ACTIVE_STATUSES


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def allowed_sources(target: str) -> FrozenSet[str]:
    """Statuses from which ``target`` may be entered (empty if never)."""
    return ALLOWED_SOURCES.get(target, frozenset())


def plan_transition(current: str, target: str, at: datetime) -> Dict[str, Any]:
    """Validate ``current -> target`` and return the field patch to persist.

    Raises:
        IllegalTransitionError: the transition is not permitted from ``current``.
    """
    if current not in allowed_sources(target):
        raise IllegalTransitionError(current_status=current, target_status=target)

    return {"status": target, TIMESTAMP_FIELDS[target]: at}


def ensure_reschedulable(current: str) -> None:
    """Reschedule keeps status; it is only legal while the appointment is active."""
    if not is_active(current):
        raise IllegalTransitionError(
            current_status=current,
            target_status=current,
            message=f"Cannot reschedule an appointment that is '{current}'",
        )


def check_cancellation_window(starts_at: datetime, now: datetime, cancellation_hours: int) -> None:
    """Customer cancellations must happen at least ``cancellation_hours`` before start.

    Raises:
        PolicyViolation: ``now + cancellation_hours`` is later than ``starts_at``.
    """
    cutoff = starts_at - timedelta(hours=cancellation_hours)
    if now > cutoff:
        raise PolicyViolation(
            message=(
                f"Appointments can only be cancelled at least {cancellation_hours} hours in advance"
            ),
            details={
                "cancellation_hours": cancellation_hours,
                "appointment_start": starts_at.isoformat(),
            },
        )

"""Tests for the appointment lifecycle rules."""

import datetime as dt

import pytest

from booking_core.exceptions import IllegalTransitionError, PolicyViolation
from booking_core.scheduling.state_machine import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    AppointmentStatus,
    check_cancellation_window,
    ensure_reschedulable,
    is_active,
    plan_transition,
)

AT = dt.datetime(2026, 3, 2, 12, 0, tzinfo=dt.timezone.utc)

LEGAL = [
    ("pending", "accepted", "accepted_at"),
    ("pending", "rejected", "rejected_at"),
    ("accepted", "in-progress", "started_at"),
    ("in-progress", "completed", "completed_at"),
    ("pending", "cancelled", "cancelled_at"),
    ("accepted", "cancelled", "cancelled_at"),
    ("in-progress", "cancelled", "cancelled_at"),
    ("pending", "no-show", "no_show_at"),
    ("accepted", "no-show", "no_show_at"),
    ("in-progress", "no-show", "no_show_at"),
]

ILLEGAL = [
    ("pending", "in-progress"),
    ("pending", "completed"),
    ("accepted", "completed"),
    ("accepted", "accepted"),
    ("accepted", "rejected"),
    ("in-progress", "accepted"),
    ("completed", "cancelled"),
    ("cancelled", "accepted"),
    ("rejected", "accepted"),
    ("no-show", "cancelled"),
    ("completed", "no-show"),
]


@pytest.mark.parametrize("current,target,field", LEGAL)
def test_legal_transitions_stamp_their_timestamp(current, target, field):
    patch = plan_transition(current, target, AT)

    assert patch == {"status": target, field: AT}


@pytest.mark.parametrize("current,target", ILLEGAL)
def test_illegal_transitions_raise(current, target):
    with pytest.raises(IllegalTransitionError) as exc_info:
        plan_transition(current, target, AT)

    assert exc_info.value.status_code == 409
    assert exc_info.value.details == {"current_status": current, "target_status": target}


def test_pending_is_not_a_target():
    with pytest.raises(IllegalTransitionError):
        plan_transition("accepted", "pending", AT)


def test_active_and_terminal_partition_all_statuses():
    every = {s.value for s in AppointmentStatus}

    assert ACTIVE_STATUSES | TERMINAL_STATUSES == every
    assert not ACTIVE_STATUSES & TERMINAL_STATUSES
    assert is_active("in-progress")
    assert not is_active("rejected")


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
def test_terminal_appointments_cannot_be_rescheduled(status):
    with pytest.raises(IllegalTransitionError):
        ensure_reschedulable(status)


@pytest.mark.parametrize("status", sorted(ACTIVE_STATUSES))
def test_active_appointments_can_be_rescheduled(status):
    ensure_reschedulable(status)


def test_cancellation_inside_window_is_a_policy_violation():
    """Ten hours before start with a 24 hour window is too late."""
    starts_at = dt.datetime(2026, 3, 3, 10, 0, tzinfo=dt.timezone.utc)
    now = starts_at - dt.timedelta(hours=10)

    with pytest.raises(PolicyViolation) as exc_info:
        check_cancellation_window(starts_at, now, 24)

    assert exc_info.value.status_code == 403
    assert exc_info.value.details["cancellation_hours"] == 24


def test_cancellation_exactly_at_cutoff_is_allowed():
    starts_at = dt.datetime(2026, 3, 3, 10, 0, tzinfo=dt.timezone.utc)

    check_cancellation_window(starts_at, starts_at - dt.timedelta(hours=24), 24)
    check_cancellation_window(starts_at, starts_at - dt.timedelta(days=3), 24)


def test_zero_hour_window_allows_cancelling_until_start():
    starts_at = dt.datetime(2026, 3, 3, 10, 0, tzinfo=dt.timezone.utc)

    check_cancellation_window(starts_at, starts_at, 0)
    with pytest.raises(PolicyViolation):
        check_cancellation_window(starts_at, starts_at + dt.timedelta(minutes=1), 0)

"""Double-booking detection shared by the create and reschedule paths."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, List, Optional, Protocol, Sequence

from booking_core.exceptions import ConflictError
from booking_core.scheduling.state_machine import is_active

logger = logging.getLogger(__name__)


class ActiveAppointmentSource(Protocol):
    async def find_active_for_day(
        self, salon_id: str, day: date, staff_id: Optional[str] = None
    ) -> List[Any]: ...


def find_conflicts(
    candidate_covers: Sequence[str],
    appointments: Iterable[Any],
    exclude_appointment_id: Optional[str] = None,
) -> List[Any]:
    """Active appointments whose slot-run shares a label with ``candidate_covers``."""
    wanted = set(candidate_covers)
    clashes = []
    for appointment in appointments:
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if not is_active(appointment.status):
            continue
        if wanted.intersection(appointment.covers or [appointment.time]):
            clashes.append(appointment)
    return clashes


class ConflictDetector:
    """Checks a candidate slot-run against the stored bookings for a salon day."""

    def __init__(self, appointments: ActiveAppointmentSource) -> None:
        self._appointments = appointments

    async def conflicting_appointments(
        self,
        salon_id: str,
        day: date,
        candidate_covers: Sequence[str],
        exclude_appointment_id: Optional[str] = None,
        staff_id: Optional[str] = None,
    ) -> List[Any]:
        existing = await self._appointments.find_active_for_day(salon_id, day, staff_id=staff_id)
        return find_conflicts(candidate_covers, existing, exclude_appointment_id)

    async def has_conflict(
        self,
        salon_id: str,
        day: date,
        candidate_covers: Sequence[str],
        exclude_appointment_id: Optional[str] = None,
        staff_id: Optional[str] = None,
    ) -> bool:
        """Yes/no form of the double-booking check; :meth:`ensure_free` is the raising form.

        Used where a caller only needs to know whether the run is taken, without
        the conflict details.
        """
        clashes = await self.conflicting_appointments(
            salon_id, day, candidate_covers, exclude_appointment_id, staff_id
        )
        return bool(clashes)

    async def ensure_free(
        self,
        salon_id: str,
        day: date,
        candidate_covers: Sequence[str],
        exclude_appointment_id: Optional[str] = None,
        staff_id: Optional[str] = None,
    ) -> None:
        """Raise :class:`ConflictError` if any label of the run is already held."""
        clashes = await self.conflicting_appointments(
            salon_id, day, candidate_covers, exclude_appointment_id, staff_id
        )
        if clashes:
            held = {label for clash in clashes for label in (clash.covers or [clash.time])}
            taken = sorted(held.intersection(candidate_covers))
            logger.info(
                f"Slot conflict for salon={salon_id} date={day} covers={list(candidate_covers)} "
                f"with appointments={[c.id for c in clashes]}"
            )
            raise ConflictError(
                message="The requested time overlaps an existing appointment",
                details={
                    "date": day.isoformat(),
                    "requested": list(candidate_covers),
                    "taken": taken,
                },
            )

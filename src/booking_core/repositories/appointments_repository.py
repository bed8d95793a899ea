"""Appointments repository for data access operations."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.database.models import Appointment, Salon
from booking_core.exceptions import DatabaseError
from booking_core.repositories.base import BaseRepository
from booking_core.scheduling.state_machine import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


class AppointmentsRepository(BaseRepository[Appointment]):
    """Repository for appointment data access operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Appointment, session)

    async def find_active_for_day(
        self, salon_id: str, day: date, staff_id: Optional[str] = None
    ) -> List[Appointment]:
        """Active appointments of a salon on one calendar day.

        With ``staff_id`` the result is narrowed to that staff member's bookings
        plus the unassigned ones, which may still be served by anyone.
        """
        try:
            query = select(Appointment).where(
                Appointment.salon_id == salon_id,
                Appointment.date == day,
                Appointment.status.in_(sorted(ACTIVE_STATUSES)),
            )
            if staff_id is not None:
                query = query.where(
                    or_(Appointment.staff_id == staff_id, Appointment.staff_id.is_(None))
                )
            result = await self.session.execute(query.order_by(Appointment.time))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error getting active appointments for salon {salon_id} on {day}: {e}")
            raise DatabaseError("Failed to retrieve appointments") from e

    def _filtered(
        self,
        query,
        customer_id: Optional[str] = None,
        salon_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        day: Optional[date] = None,
    ):
        if customer_id is not None:
            query = query.where(Appointment.customer_id == customer_id)
        if salon_id is not None:
            query = query.where(Appointment.salon_id == salon_id)
        if owner_id is not None:
            query = query.join(Salon, Salon.id == Appointment.salon_id).where(Salon.owner_id == owner_id)
        if staff_id is not None:
            query = query.where(Appointment.staff_id == staff_id)
        if statuses:
            query = query.where(Appointment.status.in_(list(statuses)))
        if day is not None:
            query = query.where(Appointment.date == day)
        return query

    async def search(
        self,
        customer_id: Optional[str] = None,
        salon_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        day: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Appointment]:
        """Filtered appointment listing, newest day first."""
        try:
            query = self._filtered(
                select(Appointment), customer_id, salon_id, owner_id, staff_id, statuses, day
            )
            query = (
                query.order_by(Appointment.date.desc(), Appointment.time.desc())
                .offset(skip)
                .limit(limit)
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error searching appointments: {e}")
            raise DatabaseError("Failed to retrieve appointments") from e

    async def count_by_filter(
        self,
        customer_id: Optional[str] = None,
        salon_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        day: Optional[date] = None,
    ) -> int:
        try:
            query = self._filtered(
                select(func.count(Appointment.id)),
                customer_id,
                salon_id,
                owner_id,
                staff_id,
                statuses,
                day,
            )
            result = await self.session.execute(query)
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Error counting appointments: {e}")
            raise DatabaseError("Failed to count appointments") from e

    async def update_if_status(
        self, id: str, expected_statuses: Iterable[str], **values: Any
    ) -> Optional[Appointment]:
        """Conditionally update an appointment.

        The row is written only while its status is still one of
        ``expected_statuses``. Returns the refreshed appointment, or ``None`` when
        a concurrent writer moved it first.
        """
        expected = [str(getattr(s, "value", s)) for s in expected_statuses]
        try:
            result = await self.session.execute(
                update(Appointment)
                .where(Appointment.id == id, Appointment.status.in_(expected))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.info(f"Conditional update of appointment {id} skipped; status not in {expected}")
                return None

            refreshed = await self.session.execute(
                select(Appointment)
                .where(Appointment.id == id)
                .execution_options(populate_existing=True)
            )
            return refreshed.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error updating appointment {id}: {e}")
            await self.session.rollback()
            raise DatabaseError("Failed to update appointment") from e

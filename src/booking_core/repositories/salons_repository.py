"""Salon and service repositories (lookups consumed by the scheduling core)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.database.models import Salon, Service
from booking_core.exceptions import DatabaseError
from booking_core.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class SalonsRepository(BaseRepository[Salon]):
    """Repository for salon data access operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Salon, session)

    async def update_booking_policy(
        self,
        salon: Salon,
        booking_settings: Optional[Dict[str, Any]] = None,
        operating_hours: Optional[Dict[str, Any]] = None,
        staff_ids: Optional[List[str]] = None,
    ) -> Salon:
        """Replace the stored booking settings, operating hours and/or staff roster.

        New dict objects are assigned so the JSON columns are flagged dirty.
        """
        try:
            if booking_settings is not None:
                salon.booking_settings = dict(booking_settings)
            if operating_hours is not None:
                salon.operating_hours = dict(operating_hours)
            if staff_ids is not None:
                salon.staff_ids = list(staff_ids)
            await self.session.flush()
            await self.session.refresh(salon)
            logger.debug(f"Updated booking policy for salon {salon.id}")
            return salon
        except SQLAlchemyError as e:
            logger.error(f"Error updating booking policy for salon {salon.id}: {e}")
            await self.session.rollback()
            raise DatabaseError("Failed to update salon booking policy") from e


class ServicesRepository(BaseRepository[Service]):
    """Repository for salon service data access operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Service, session)

    async def get_for_salon(self, service_id: str, salon_id: str) -> Optional[Service]:
        """Return the service only if it belongs to ``salon_id``."""
        try:
            result = await self.session.execute(
                select(Service).where(Service.id == service_id, Service.salon_id == salon_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error getting service {service_id} for salon {salon_id}: {e}")
            raise DatabaseError("Failed to retrieve Service") from e

"""Salon booking policy service."""

from __future__ import annotations

import logging
from typing import Any, Dict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.auth.actors import Actor, AdminActor, OwnerActor
from booking_core.database.models import Salon
from booking_core.exceptions import AuthorizationError, NotFoundError, ValidationError
from booking_core.models.salons import (
    BookingPolicyResponse,
    BookingPolicyUpdateRequest,
    DayHoursResponse,
    EffectiveBookingSettingsResponse,
)
from booking_core.repositories.salons_repository import SalonsRepository
from booking_core.scheduling.policy import WEEKDAYS, PolicyResolver

logger = logging.getLogger(__name__)


class SalonsService:
    """Reads and updates a salon's booking settings and operating hours."""

    def __init__(self, session: AsyncSession, resolver: PolicyResolver) -> None:
        self._session = session
        self._repo = SalonsRepository(session)
        self._resolver = resolver

    async def _get_salon(self, salon_id: str) -> Salon:
        salon = await self._repo.get_by_id(salon_id)
        if salon is None:
            raise NotFoundError("Salon", salon_id)
        return salon

    def _to_response(self, salon: Salon) -> BookingPolicyResponse:
        settings = self._resolver.resolve(salon)
        return BookingPolicyResponse(
            salon_id=salon.id,
            timezone=self._resolver.timezone(salon).key,
            booking_settings=EffectiveBookingSettingsResponse(**settings.to_dict()),
            operating_hours={
                weekday: DayHoursResponse(**hours.to_dict())
                for weekday, hours in self._resolver.weekly_hours(salon).items()
            },
            staff_ids=list(salon.staff_ids or []),
        )

    async def get_booking_policy(self, salon_id: str) -> BookingPolicyResponse:
        """Effective policy with every default filled in."""
        return self._to_response(await self._get_salon(salon_id))

    async def update_booking_policy(
        self, actor: Actor, salon_id: str, request: BookingPolicyUpdateRequest
    ) -> BookingPolicyResponse:
        """Merge a partial update into the salon's stored policy.

        Only the fields present in the request change; stored fields the request
        omits are kept, and fields never stored keep falling back to defaults.
        """
        salon = await self._get_salon(salon_id)
        if not (
            isinstance(actor, AdminActor)
            or (isinstance(actor, OwnerActor) and salon.owner_id == actor.user_id)
        ):
            raise AuthorizationError("Only the salon owner can change its booking policy")

        booking_settings = None
        if request.booking_settings is not None:
            changes = request.booking_settings.model_dump(exclude_none=True)
            booking_settings = {**(salon.booking_settings or {}), **changes}

        operating_hours = None
        if request.operating_hours is not None:
            unknown = sorted(set(request.operating_hours) - set(WEEKDAYS))
            if unknown:
                raise ValidationError(
                    "Unknown weekday in operating hours",
                    errors={"operating_hours": unknown},
                )
            operating_hours: Dict[str, Any] = dict(salon.operating_hours or {})
            for weekday, hours in request.operating_hours.items():
                operating_hours[weekday] = hours.model_dump(exclude_none=True)

        if request.timezone is not None:
            try:
                ZoneInfo(request.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValidationError("Unknown timezone", errors={"timezone": request.timezone})
            salon.timezone = request.timezone

        staff_ids = None
        if request.staff_ids is not None:
            staff_ids = list(dict.fromkeys(s.strip() for s in request.staff_ids if s.strip()))

        salon = await self._repo.update_booking_policy(
            salon, booking_settings=booking_settings, operating_hours=operating_hours, staff_ids=staff_ids
        )
        await self._session.commit()
        logger.info(f"Booking policy updated for salon {salon.id} by {actor.role.value} {actor.user_id}")
        return self._to_response(salon)


def get_salons_service_for_session(session: AsyncSession, resolver: PolicyResolver) -> SalonsService:
    """Create a SalonsService bound to a DB session."""
    return SalonsService(session, resolver)

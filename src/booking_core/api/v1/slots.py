"""Slot availability endpoint."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from booking_core.dependencies import get_appointments_service
from booking_core.models.appointments import AvailabilityResponse
from booking_core.services.appointments_service import AppointmentsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get(
    "",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="List available slots",
    description=(
        "Return the contiguous slot-runs that can still be booked for a service on a given day. "
        "An empty list comes with a message when the salon is closed or the same-day cutoff has passed."
    ),
)
async def get_available_slots(
    day: date = Query(..., alias="date", description="Calendar day (YYYY-MM-DD)"),
    service_id: str = Query(..., alias="serviceId"),
    salon_id: str = Query(..., alias="salonId"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AvailabilityResponse:
    return await service.get_available_slots(salon_id, service_id, day, staff_id=staff_id)

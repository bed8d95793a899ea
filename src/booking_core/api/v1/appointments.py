"""Appointment booking and lifecycle endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from booking_core.auth.actors import Actor
from booking_core.auth.dependencies import get_current_actor
from booking_core.dependencies import get_appointments_service
from booking_core.models.appointments import (
    AppointmentCreateRequest,
    AppointmentListResponse,
    AppointmentRescheduleRequest,
    AppointmentResponse,
    AppointmentStatusUpdateRequest,
)
from booking_core.services.appointments_service import AppointmentsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    description="Reserve a slot-run for a service. The appointment starts out pending.",
)
async def create_appointment(
    request: AppointmentCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    return await service.create_appointment(actor, request)


@router.get(
    "",
    response_model=AppointmentListResponse,
    summary="List appointments",
    description="Customers see their own bookings; owners and staff see their salon's.",
)
async def list_appointments(
    status_filter: Optional[List[str]] = Query(None, alias="status"),
    day: Optional[date] = Query(None, alias="date"),
    salon_id: Optional[str] = Query(None, alias="salonId"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentListResponse:
    return await service.list_appointments(
        actor, statuses=status_filter, day=day, salon_id=salon_id, skip=skip, limit=limit
    )


@router.get(
    "/completed",
    response_model=AppointmentListResponse,
    summary="List completed bookings",
)
async def list_completed_bookings(
    salon_id: Optional[str] = Query(None, alias="salonId"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentListResponse:
    return await service.list_completed(actor, salon_id=salon_id, skip=skip, limit=limit)


@router.get("/{appointment_id}", response_model=AppointmentResponse, summary="Get an appointment")
async def get_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    return await service.get_appointment(actor, appointment_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    summary="Change appointment status",
    description="Accept, reject, start, complete or cancel an appointment.",
)
async def update_appointment_status(
    appointment_id: str,
    request: AppointmentStatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    return await service.update_status(actor, appointment_id, request.status)


@router.patch(
    "/{appointment_id}/no-show",
    response_model=AppointmentResponse,
    summary="Mark an appointment as a no-show",
)
async def mark_no_show(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    return await service.mark_no_show(actor, appointment_id)


@router.put(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    summary="Reschedule an appointment",
    description="Move an active appointment to another day and slot. Its status does not change.",
)
async def reschedule_appointment(
    appointment_id: str,
    request: AppointmentRescheduleRequest,
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    return await service.reschedule(actor, appointment_id, request.date, request.time)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    summary="Cancel an appointment",
)
async def cancel_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    return await service.cancel(actor, appointment_id)

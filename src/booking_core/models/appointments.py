"""Pydantic models for slot availability and appointment endpoints."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

StatusTarget = Literal["accepted", "rejected", "in-progress", "completed", "cancelled"]


class SlotRunResponse(BaseModel):
    """A bookable run of consecutive slots."""

    start: str = Field(..., description="First slot label (HH:MM)")
    end: str = Field(..., description="Last slot label (HH:MM)")
    covers: List[str] = Field(..., description="Every slot label the service occupies")


class AvailabilityResponse(BaseModel):
    """Response model for the slot availability query."""

    salon_id: str
    service_id: str
    date: dt.date
    slot_interval: Optional[int] = Field(None, description="Slot granularity in minutes")
    blocks_needed: Optional[int] = Field(None, description="Slots one booking of this service occupies")
    slots: List[SlotRunResponse] = Field(default_factory=list)
    message: Optional[str] = Field(None, description="Why no slots are offered, when applicable")


class AppointmentCreateRequest(BaseModel):
    """Request model for booking an appointment."""

    salon_id: str = Field(..., description="Salon to book at")
    service_id: str = Field(..., description="Service to book (must belong to the salon)")
    date: dt.date = Field(..., description="Calendar day of the appointment")
    time: str = Field(..., pattern=CLOCK_PATTERN, description="Slot start label (HH:MM)")
    staff_id: Optional[str] = Field(None, description="Optional staff member")
    notes: Optional[str] = Field(None, max_length=2000)
    customer_id: Optional[str] = Field(
        None, description="Customer to book for (admins only; customers always book for themselves)"
    )


class AppointmentStatusUpdateRequest(BaseModel):
    """Request model for a status transition."""

    status: StatusTarget


class AppointmentRescheduleRequest(BaseModel):
    """Request model for moving an appointment to another day/slot."""

    date: dt.date
    time: str = Field(..., pattern=CLOCK_PATTERN)


class AppointmentResponse(BaseModel):
    """Response model for an appointment."""

    id: str
    salon_id: str
    service_id: str
    customer_id: str
    staff_id: Optional[str] = None
    date: dt.date
    time: str
    covers: List[str] = Field(default_factory=list)
    duration_minutes: int
    status: str
    amount: Decimal
    discount: Decimal
    notes: Optional[str] = None
    accepted_at: Optional[dt.datetime] = None
    rejected_at: Optional[dt.datetime] = None
    started_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None
    cancelled_at: Optional[dt.datetime] = None
    no_show_at: Optional[dt.datetime] = None
    cancelled_by: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_model(cls, appointment: Any) -> "AppointmentResponse":
        """Build the response from an ``Appointment`` ORM row."""
        return cls(
            id=appointment.id,
            salon_id=appointment.salon_id,
            service_id=appointment.service_id,
            customer_id=appointment.customer_id,
            staff_id=appointment.staff_id,
            date=appointment.date,
            time=appointment.time,
            covers=list(appointment.covers or []),
            duration_minutes=appointment.duration_minutes,
            status=appointment.status,
            amount=appointment.amount,
            discount=appointment.discount,
            notes=appointment.notes,
            accepted_at=appointment.accepted_at,
            rejected_at=appointment.rejected_at,
            started_at=appointment.started_at,
            completed_at=appointment.completed_at,
            cancelled_at=appointment.cancelled_at,
            no_show_at=appointment.no_show_at,
            cancelled_by=appointment.cancelled_by,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class AppointmentListResponse(BaseModel):
    """Paginated appointment listing."""

    items: List[AppointmentResponse]
    total: int
    skip: int
    limit: int

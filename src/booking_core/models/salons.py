"""Pydantic models for salon booking policy endpoints."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from booking_core.models.appointments import CLOCK_PATTERN


class BookingSettingsUpdate(BaseModel):
    """Partial booking settings. Omitted fields keep their current value."""

    min_advance_booking_hours: Optional[int] = Field(None, ge=0)
    max_advance_booking_days: Optional[int] = Field(None, ge=0)
    slot_interval: Optional[int] = Field(None, gt=0, le=24 * 60)
    allow_same_day_booking: Optional[bool] = None
    cancellation_hours: Optional[int] = Field(None, ge=0)


class DayHoursModel(BaseModel):
    """Opening window for one weekday."""

    open: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    close: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    closed: bool = False

    @model_validator(mode="after")
    def check_window(self) -> "DayHoursModel":
        """Open days need both bounds, with opening before closing."""
        if self.closed:
            return self
        if self.open is None or self.close is None:
            raise ValueError("Both 'open' and 'close' are required unless the day is closed")
        if self.open >= self.close:
            raise ValueError("'open' must be earlier than 'close'")
        return self


class BookingPolicyUpdateRequest(BaseModel):
    """Request model for updating a salon's booking policy."""

    booking_settings: Optional[BookingSettingsUpdate] = None
    operating_hours: Optional[Dict[str, DayHoursModel]] = Field(
        None, description="Keyed by lowercase weekday name; unlisted days are left unchanged"
    )
    timezone: Optional[str] = Field(None, description="IANA timezone name")
    staff_ids: Optional[List[str]] = Field(
        None, description="Full staff roster; bookings may only be assigned to these ids"
    )


class DayHoursResponse(BaseModel):
    open: str
    close: str
    closed: bool


class EffectiveBookingSettingsResponse(BaseModel):
    min_advance_booking_hours: int
    max_advance_booking_days: int
    slot_interval: int
    allow_same_day_booking: bool
    cancellation_hours: int


class BookingPolicyResponse(BaseModel):
    """Effective booking policy for a salon, with defaults applied."""

    salon_id: str
    timezone: str
    booking_settings: EffectiveBookingSettingsResponse
    operating_hours: Dict[str, DayHoursResponse]
    staff_ids: List[str] = Field(default_factory=list)

"""Pydantic models for notifications endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class NotificationResponse(BaseModel):
    """Response model for a notification record."""

    id: str
    type: str = Field(..., description="Event type, e.g. appointment_accepted")
    message: str
    appointment_id: Optional[str] = None
    salon_id: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_model(cls, notification: Any) -> "NotificationResponse":
        return cls(
            id=notification.id,
            type=notification.type,
            message=notification.message,
            appointment_id=notification.appointment_id,
            salon_id=notification.salon_id,
            is_read=notification.is_read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    """A page of the caller's notifications."""

    items: List[NotificationResponse]
    total: int
    unread_count: int
    page: int
    limit: int


class MarkAllReadResponse(BaseModel):
    updated: int

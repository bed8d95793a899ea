"""SQLAlchemy database models."""

import uuid
import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Salon(Base):
    """Salon database model.

    ``operating_hours`` maps lowercase weekday names to ``{"open", "close", "closed"}``.
    ``booking_settings`` holds only the fields the owner customised; everything else
    falls back to system defaults when resolved.
    ``staff_ids`` is the roster of staff members a booking may be assigned to.
    """

    __tablename__ = "salons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="unisex", nullable=False)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    operating_hours: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    booking_settings: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    staff_ids: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    services: Mapped[list["Service"]] = relationship(
        "Service", back_populates="salon", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation of Salon."""
        return f"<Salon(id={self.id}, name={self.name})>"


class Service(Base):
    """Bookable salon service. Belongs to exactly one salon."""

    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid, index=True)
    salon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("salons.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    salon: Mapped["Salon"] = relationship("Salon", back_populates="services")

    def __repr__(self) -> str:
        """String representation of Service."""
        return f"<Service(id={self.id}, name={self.name}, duration={self.duration_minutes})>"


class Appointment(Base):
    """Appointment database model.

    ``covers`` is the slot-run frozen at booking (or reschedule) time; it is what
    conflict detection compares against.
    """

    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_salon_id_date", "salon_id", "date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid, index=True)

    salon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("salons.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("services.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    customer_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    staff_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    covers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)

    accepted_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        """String representation of Appointment."""
        return f"<Appointment(id={self.id}, date={self.date}, time={self.time}, status={self.status})>"


class Notification(Base):
    """In-app notification addressed to a user about an appointment.

    ``appointment_id`` is a plain reference: notifications are written in their own
    transaction and outlive the appointment they mention.
    """

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_id_is_read", "user_id", "is_read"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid, index=True)

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    appointment_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    salon_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:
        """String representation of Notification."""
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"

"""Repositories package."""

from booking_core.repositories.appointments_repository import AppointmentsRepository
from booking_core.repositories.base import BaseRepository
from booking_core.repositories.notifications_repository import NotificationsRepository
from booking_core.repositories.salons_repository import SalonsRepository, ServicesRepository

__all__ = [
    "BaseRepository",
    "AppointmentsRepository",
    "NotificationsRepository",
    "SalonsRepository",
    "ServicesRepository",
]

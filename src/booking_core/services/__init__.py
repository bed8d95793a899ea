"""Services package."""

from booking_core.services.appointments_service import (
    AppointmentsService,
    get_appointments_service_for_session,
)
from booking_core.services.notifications_service import (
    DatabaseNotificationSink,
    NotificationSink,
    NotificationsService,
    get_notifications_service_for_session,
)
from booking_core.services.salons_service import SalonsService, get_salons_service_for_session

__all__ = [
    "AppointmentsService",
    "get_appointments_service_for_session",
    "DatabaseNotificationSink",
    "NotificationSink",
    "NotificationsService",
    "get_notifications_service_for_session",
    "SalonsService",
    "get_salons_service_for_session",
]

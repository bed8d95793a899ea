"""Database connection and session management."""

from booking_core.database.connection import (
    check_connection,
    create_engine,
    get_database_url,
)
from booking_core.database.models import (
    Appointment,
    Base,
    Notification,
    Salon,
    Service,
)
from booking_core.database.session import (
    Database,
    close_db,
    get_session,
    init_db,
)

__all__ = [
    # Models
    "Base",
    "Salon",
    "Service",
    "Appointment",
    "Notification",
    # Connection
    "create_engine",
    "get_database_url",
    "check_connection",
    # Session
    "Database",
    "get_session",
    "init_db",
    "close_db",
]

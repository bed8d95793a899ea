"""FastAPI dependencies.

Process-wide collaborators (policy resolver, slot locks, notification sink,
clock) live on ``app.state`` and are set up in the application lifespan.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from booking_core.database.session import get_session
from booking_core.scheduling.availability import utcnow
from booking_core.services.appointments_service import (
    AppointmentsService,
    get_appointments_service_for_session,
)
from booking_core.services.notifications_service import (
    NotificationsService,
    get_notifications_service_for_session,
)
from booking_core.services.salons_service import SalonsService, get_salons_service_for_session


def get_appointments_service(
    request: Request, session: AsyncSession = Depends(get_session)
) -> AppointmentsService:
    state = request.app.state
    return get_appointments_service_for_session(
        session,
        resolver=state.policy_resolver,
        locks=state.slot_locks,
        notifier=getattr(state, "notifier", None),
        clock=getattr(state, "clock", utcnow),
    )


def get_salons_service(request: Request, session: AsyncSession = Depends(get_session)) -> SalonsService:
    return get_salons_service_for_session(session, request.app.state.policy_resolver)


def get_notifications_service(session: AsyncSession = Depends(get_session)) -> NotificationsService:
    return get_notifications_service_for_session(session)


__all__ = [
    "get_session",
    "get_appointments_service",
    "get_salons_service",
    "get_notifications_service",
]

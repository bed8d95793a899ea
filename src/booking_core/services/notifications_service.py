"""In-app notifications: delivery sink and the user's inbox."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_core.database.models import Notification
from booking_core.exceptions import NotFoundError
from booking_core.models.notifications import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from booking_core.repositories.notifications_repository import NotificationsRepository

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = "appointment_created"
APPOINTMENT_ACCEPTED = "appointment_accepted"
APPOINTMENT_REJECTED = "appointment_rejected"
APPOINTMENT_CANCELLED = "appointment_cancelled"
APPOINTMENT_NO_SHOW = "appointment_no_show"
APPOINTMENT_RESCHEDULED = "appointment_rescheduled"


class NotificationSink(Protocol):
    """Something that delivers a notification to one user."""

    async def notify(
        self,
        user_id: str,
        type: str,
        message: str,
        appointment_id: Optional[str] = None,
        salon_id: Optional[str] = None,
    ) -> None: ...


class DatabaseNotificationSink:
    """Stores notifications in the inbox table.

    Each delivery runs in its own session so a failed notification never rolls back
    the booking change that triggered it.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def notify(
        self,
        user_id: str,
        type: str,
        message: str,
        appointment_id: Optional[str] = None,
        salon_id: Optional[str] = None,
    ) -> None:
        async with self._session_factory() as session:
            repo = NotificationsRepository(session)
            await repo.create(
                user_id=user_id,
                type=type,
                message=message,
                appointment_id=appointment_id,
                salon_id=salon_id,
            )
            await session.commit()
        logger.debug(f"Notification {type} stored for user {user_id}")


class NotificationsService:
    """Service for a user's notification inbox."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = NotificationsRepository(session)

    async def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> NotificationListResponse:
        skip = (page - 1) * limit
        items = await self._repo.list_for_user(user_id, unread_only=unread_only, skip=skip, limit=limit)
        total = await self._repo.count_for_user(user_id, unread_only=unread_only)
        unread = await self._repo.count_for_user(user_id, unread_only=True)
        return NotificationListResponse(
            items=[NotificationResponse.from_model(n) for n in items],
            total=total,
            unread_count=unread,
            page=page,
            limit=limit,
        )

    async def _get_owned(self, user_id: str, notification_id: str) -> Notification:
        notification = await self._repo.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        return notification

    async def mark_as_read(self, user_id: str, notification_id: str) -> NotificationResponse:
        notification = await self._get_owned(user_id, notification_id)
        if not notification.is_read:
            notification = await self._repo.update(
                notification.id, is_read=True, read_at=datetime.now(timezone.utc)
            )
        return NotificationResponse.from_model(notification)

    async def mark_all_as_read(self, user_id: str) -> MarkAllReadResponse:
        updated = await self._repo.mark_all_read(user_id, datetime.now(timezone.utc))
        logger.info(f"Marked {updated} notifications read for user {user_id}")
        return MarkAllReadResponse(updated=updated)

    async def delete_notification(self, user_id: str, notification_id: str) -> Dict[str, Any]:
        notification = await self._get_owned(user_id, notification_id)
        await self._repo.delete(notification.id)
        return {"deleted": True, "id": notification_id}


def get_notifications_service_for_session(session: AsyncSession) -> NotificationsService:
    """Create a NotificationsService bound to a DB session."""
    return NotificationsService(session)

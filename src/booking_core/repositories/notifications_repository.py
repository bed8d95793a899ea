"""Notifications repository for data access operations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.database.models import Notification
from booking_core.exceptions import DatabaseError
from booking_core.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class NotificationsRepository(BaseRepository[Notification]):
    """Repository for notification data access operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Notification, session)

    async def list_for_user(
        self, user_id: str, unread_only: bool = False, skip: int = 0, limit: int = 50
    ) -> List[Notification]:
        """Return a user's notifications, newest first."""
        try:
            query = select(Notification).where(Notification.user_id == user_id)
            if unread_only:
                query = query.where(Notification.is_read.is_(False))
            query = query.order_by(Notification.created_at.desc()).offset(skip).limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing notifications for user {user_id}: {e}")
            raise DatabaseError("Failed to retrieve notifications") from e

    async def count_for_user(self, user_id: str, unread_only: bool = False) -> int:
        try:
            query = select(func.count(Notification.id)).where(Notification.user_id == user_id)
            if unread_only:
                query = query.where(Notification.is_read.is_(False))
            result = await self.session.execute(query)
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Error counting notifications for user {user_id}: {e}")
            raise DatabaseError("Failed to count notifications") from e

    async def get_for_user(self, notification_id: str, user_id: str) -> Optional[Notification]:
        """Return a notification only if it is addressed to ``user_id``."""
        try:
            result = await self.session.execute(
                select(Notification).where(
                    Notification.id == notification_id, Notification.user_id == user_id
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error getting notification {notification_id}: {e}")
            raise DatabaseError("Failed to retrieve notification") from e

    async def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        """Mark every unread notification of a user as read. Returns the row count."""
        try:
            result = await self.session.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True, read_at=read_at)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Error marking notifications read for user {user_id}: {e}")
            await self.session.rollback()
            raise DatabaseError("Failed to update notifications") from e

"""Tests for notification delivery and the inbox."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.exceptions import NotFoundError
from booking_core.services.notifications_service import (
    APPOINTMENT_ACCEPTED,
    APPOINTMENT_CREATED,
    DatabaseNotificationSink,
    NotificationsService,
)


@pytest.fixture
def database_sink(session_factory):
    return DatabaseNotificationSink(session_factory)


@pytest.mark.asyncio
async def test_sink_stores_notification(session: AsyncSession, database_sink):
    """Delivered notifications appear in the recipient's inbox, unread."""
    await database_sink.notify(
        "user-1", APPOINTMENT_ACCEPTED, "Your appointment was accepted", appointment_id="a-1", salon_id="s-1"
    )

    inbox = await NotificationsService(session).list_notifications("user-1")

    assert inbox.total == 1
    assert inbox.unread_count == 1
    item = inbox.items[0]
    assert item.type == APPOINTMENT_ACCEPTED
    assert item.appointment_id == "a-1"
    assert item.salon_id == "s-1"
    assert item.is_read is False


@pytest.mark.asyncio
async def test_inbox_is_per_user_and_paginated(session: AsyncSession, database_sink):
    for i in range(3):
        await database_sink.notify("user-1", APPOINTMENT_CREATED, f"Request {i}")
    await database_sink.notify("user-2", APPOINTMENT_CREATED, "Someone else's")
    service = NotificationsService(session)

    first_page = await service.list_notifications("user-1", page=1, limit=2)
    second_page = await service.list_notifications("user-1", page=2, limit=2)

    assert first_page.total == 3
    assert len(first_page.items) == 2
    assert len(second_page.items) == 1
    assert (await service.list_notifications("user-2")).total == 1


@pytest.mark.asyncio
async def test_mark_as_read(session: AsyncSession, database_sink):
    await database_sink.notify("user-1", APPOINTMENT_CREATED, "One")
    await database_sink.notify("user-1", APPOINTMENT_CREATED, "Two")
    service = NotificationsService(session)
    target = (await service.list_notifications("user-1")).items[0]

    marked = await service.mark_as_read("user-1", target.id)

    assert marked.is_read is True
    assert marked.read_at is not None
    unread = await service.list_notifications("user-1", unread_only=True)
    assert unread.total == 1
    assert unread.unread_count == 1


@pytest.mark.asyncio
async def test_mark_all_as_read(session: AsyncSession, database_sink):
    for i in range(3):
        await database_sink.notify("user-1", APPOINTMENT_CREATED, f"Request {i}")
    service = NotificationsService(session)

    result = await service.mark_all_as_read("user-1")

    assert result.updated == 3
    assert (await service.list_notifications("user-1")).unread_count == 0
    assert (await service.mark_all_as_read("user-1")).updated == 0


@pytest.mark.asyncio
async def test_other_users_notifications_are_hidden(session: AsyncSession, database_sink):
    """Reading or deleting someone else's notification looks like it does not exist."""
    await database_sink.notify("user-1", APPOINTMENT_CREATED, "Private")
    service = NotificationsService(session)
    notification_id = (await service.list_notifications("user-1")).items[0].id

    with pytest.raises(NotFoundError):
        await service.mark_as_read("user-2", notification_id)
    with pytest.raises(NotFoundError):
        await service.delete_notification("user-2", notification_id)

    assert await service.delete_notification("user-1", notification_id) == {
        "deleted": True,
        "id": notification_id,
    }
    assert (await service.list_notifications("user-1")).total == 0

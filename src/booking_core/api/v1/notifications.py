"""Notification inbox endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from booking_core.auth.actors import Actor
from booking_core.auth.dependencies import get_current_actor
from booking_core.dependencies import get_notifications_service
from booking_core.models.notifications import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from booking_core.services.notifications_service import NotificationsService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse, summary="List my notifications")
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: NotificationsService = Depends(get_notifications_service),
) -> NotificationListResponse:
    return await service.list_notifications(actor.user_id, unread_only=unread_only, page=page, limit=limit)


@router.put("/read-all", response_model=MarkAllReadResponse, summary="Mark all notifications read")
async def mark_all_as_read(
    actor: Actor = Depends(get_current_actor),
    service: NotificationsService = Depends(get_notifications_service),
) -> MarkAllReadResponse:
    return await service.mark_all_as_read(actor.user_id)


@router.put("/{notification_id}/read", response_model=NotificationResponse, summary="Mark a notification read")
async def mark_as_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    service: NotificationsService = Depends(get_notifications_service),
) -> NotificationResponse:
    return await service.mark_as_read(actor.user_id, notification_id)


@router.delete("/{notification_id}", summary="Delete a notification")
async def delete_notification(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    service: NotificationsService = Depends(get_notifications_service),
) -> Dict[str, Any]:
    return await service.delete_notification(actor.user_id, notification_id)

"""Notification bell endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.middleware.auth import get_current_user
from baydigital.models.notification import Notification
from baydigital.services.database import get_db_session
from baydigital.services.notifications import NotificationService, format_notification_time

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


class NotificationView(Notification):
    """Notification with a relative timestamp for display."""

    time_ago: str


class UnreadCountResponse(BaseModel):
    unread_count: int


class BulkUpdateResponse(BaseModel):
    updated: int


def _view(row) -> NotificationView:
    data = Notification.model_validate(row).model_dump()
    return NotificationView(**data, time_ago=format_notification_time(row.created_at))


@router.get("", response_model=list[NotificationView])
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[NotificationView]:
    """Page of the caller's notifications, newest first."""
    service = NotificationService(db_session)
    rows = await service.get_notifications(current_user["user_id"], limit=limit, offset=offset)
    return [_view(row) for row in rows]


@router.get("/recent", response_model=list[NotificationView])
async def recent_notifications(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[NotificationView]:
    service = NotificationService(db_session)
    rows = await service.get_recent_notifications(current_user["user_id"])
    return [_view(row) for row in rows]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    service = NotificationService(db_session)
    return UnreadCountResponse(unread_count=await service.get_unread_count(current_user["user_id"]))


@router.post("/read-all", response_model=BulkUpdateResponse)
async def mark_all_read(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> BulkUpdateResponse:
    service = NotificationService(db_session)
    return BulkUpdateResponse(updated=await service.mark_all_as_read(current_user["user_id"]))


@router.delete("/read", response_model=BulkUpdateResponse)
async def delete_read(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> BulkUpdateResponse:
    """Clear every notification the caller has already read."""
    service = NotificationService(db_session)
    return BulkUpdateResponse(updated=await service.delete_all_read(current_user["user_id"]))


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    notification_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> None:
    service = NotificationService(db_session)
    await service.mark_as_read(notification_id, current_user["user_id"])


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> None:
    service = NotificationService(db_session)
    await service.delete_notification(notification_id, current_user["user_id"])

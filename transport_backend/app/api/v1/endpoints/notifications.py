"""
Notification API endpoints.

Every signed-in user manages their own notifications only.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from transport_backend.app.core.dependencies import get_current_user
from transport_backend.app.db.session import get_db
from transport_backend.app.models.enums import NotificationStatus, NotificationType
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.services import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=ActionResult)
async def list_notifications(
    status: Optional[NotificationStatus] = Query(None),
    type: Optional[NotificationType] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List current user's notifications, newest first."""
    return await notification_service.get_notifications(db, current_user, status, type, limit)


@router.get("/unread-count", response_model=ActionResult)
async def unread_count(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await notification_service.get_unread_count(db, current_user)


@router.patch("/read-all", response_model=ActionResult)
async def mark_all_notifications_read(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await notification_service.mark_all_as_read(db, current_user)


@router.get("/{notification_id}", response_model=ActionResult)
async def get_notification(
    notification_id: int = Path(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await notification_service.get_notification(db, current_user, notification_id)


@router.patch("/{notification_id}/read", response_model=ActionResult)
async def mark_notification_read(
    notification_id: int = Path(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a specific notification as read."""
    return await notification_service.mark_as_read(db, current_user, notification_id)


@router.delete("/{notification_id}", response_model=ActionResult)
async def delete_notification(
    notification_id: int = Path(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await notification_service.delete_notification(db, current_user, notification_id)

"""
Notification Service.

Handles creation and state management of in-app notifications.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from datetime import datetime, timezone
from typing import List, Optional

from transport_backend.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from transport_backend.app.models.enums import NotificationStatus, NotificationType, UserRole
from transport_backend.app.models.notification import Notification
from transport_backend.app.models.user import User
from transport_backend.app.schemas.actions import ActionResult
from transport_backend.app.schemas.notification import NotificationResponse
from transport_backend.app.services.actions import action


class NotificationService:

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.GENERAL,
        link: Optional[str] = None
    ) -> Notification:
        """Create a single notification."""
        notif = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link=link,
            status=NotificationStatus.UNREAD,
        )
        db.add(notif)
        await db.flush()  # Caller commits
        return notif

    @staticmethod
    async def notify_admins(
        db: AsyncSession,
        title: str,
        message: str,
        type: NotificationType = NotificationType.GENERAL,
        link: Optional[str] = None
    ) -> int:
        """Send the same notification to every active admin."""
        result = await db.execute(
            select(User.id).where(User.role == UserRole.ADMIN, User.is_active == True)
        )
        admin_ids = result.scalars().all()

        db.add_all([
            Notification(user_id=uid, title=title, message=message, type=type, link=link)
            for uid in admin_ids
        ])
        await db.flush()
        return len(admin_ids)

    @staticmethod
    async def unread_count(db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.status == NotificationStatus.UNREAD
            )
        )
        return result.scalar() or 0

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: str,
        status: Optional[NotificationStatus] = None,
        type: Optional[NotificationType] = None,
        limit: int = 50
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if status:
            query = query.where(Notification.status == status)
        if type:
            query = query.where(Notification.type == type)
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_owned(db: AsyncSession, notification_id: int, user_id: str) -> Notification:
        notif = await db.get(Notification, notification_id)
        if not notif:
            raise ResourceNotFoundError("Notification", notification_id)
        if notif.user_id != user_id:
            raise InsufficientPermissionsError("Unauthorized")
        return notif


# Actions on the caller's own notifications

@action("Failed to fetch notifications")
async def get_notifications(
    db: AsyncSession,
    identity: dict,
    status: Optional[NotificationStatus] = None,
    type: Optional[NotificationType] = None,
    limit: int = 50
) -> ActionResult:
    notifications = await NotificationService.list_for_user(db, identity["user_id"], status, type, limit)
    return ActionResult.ok(data=[NotificationResponse.model_validate(n) for n in notifications])


@action("Failed to fetch unread count")
async def get_unread_count(db: AsyncSession, identity: dict) -> ActionResult:
    count = await NotificationService.unread_count(db, identity["user_id"])
    return ActionResult.ok(data={"count": count})


@action("Failed to fetch notification")
async def get_notification(db: AsyncSession, identity: dict, notification_id: int) -> ActionResult:
    notif = await NotificationService.get_owned(db, notification_id, identity["user_id"])
    return ActionResult.ok(data=NotificationResponse.model_validate(notif))


@action("Failed to mark notification as read")
async def mark_as_read(db: AsyncSession, identity: dict, notification_id: int) -> ActionResult:
    notif = await NotificationService.get_owned(db, notification_id, identity["user_id"])
    notif.status = NotificationStatus.READ
    notif.read_at = datetime.now(timezone.utc)
    await db.commit()
    return ActionResult.ok("Notification marked as read")


@action("Failed to mark all notifications as read")
async def mark_all_as_read(db: AsyncSession, identity: dict) -> ActionResult:
    stmt = update(Notification).where(
        Notification.user_id == identity["user_id"],
        Notification.status == NotificationStatus.UNREAD
    ).values(
        status=NotificationStatus.READ,
        read_at=datetime.now(timezone.utc)
    )
    result = await db.execute(stmt)
    await db.commit()
    return ActionResult.ok("All notifications marked as read", data={"count": result.rowcount})


@action("Failed to delete notification")
async def delete_notification(db: AsyncSession, identity: dict, notification_id: int) -> ActionResult:
    await NotificationService.get_owned(db, notification_id, identity["user_id"])
    await db.execute(delete(Notification).where(Notification.id == notification_id))
    await db.commit()
    return ActionResult.ok("Notification deleted")

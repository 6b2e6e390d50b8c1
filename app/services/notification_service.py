"""
Per-user in-app notifications stored in Redis
"""

from datetime import datetime
from typing import List, Optional

from ..core.exceptions import AuthenticationRequiredException, NotificationNotFoundException
from ..core.logging_config import get_logger
from ..models.notification_models import AppNotification, NotificationKind
from ..models.report_models import Report
from ..models.user_models import AppUser
from .redis_service import RedisCollection, redis_service

logger = get_logger("notification_service")


class NotificationService:
    """Create and manage notifications for report owners"""

    def __init__(self, collection: Optional[RedisCollection] = None):
        self.collection = collection or RedisCollection("notification", redis_service.get_redis)

    async def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        report_id: Optional[str] = None
    ) -> AppNotification:
        notification = AppNotification(
            user_id=user_id,
            kind=kind,
            title=title,
            message=message,
            report_id=report_id,
            created_at=datetime.now()
        )
        notification.id = self.collection.add(notification.model_dump(mode="json", exclude={"id"}))
        logger.debug(f"Notification {notification.id} ({kind.value}) for {user_id}")
        return notification

    async def notify_reporter(self, report: Report, kind: NotificationKind, title: str, message: str) -> None:
        """Notify the owner of a report; notification failures never fail the caller"""
        try:
            await self.notify(report.reporter_id, kind, title, message, report_id=report.id)
        except Exception as e:
            logger.warning(f"⚠️ Could not notify {report.reporter_id} about report {report.id}: {e}")

    def _owned(self, actor: Optional[AppUser]) -> List[AppNotification]:
        if actor is None:
            raise AuthenticationRequiredException("You must be logged in")
        return [
            AppNotification(**doc) for doc in self.collection.all()
            if doc.get("user_id") == actor.uid
        ]

    async def list_notifications(self, actor: Optional[AppUser], unread_only: bool = False) -> List[AppNotification]:
        notifications = self._owned(actor)
        if unread_only:
            notifications = [n for n in notifications if not n.read]
        return notifications

    async def unread_count(self, actor: Optional[AppUser]) -> int:
        return len([n for n in self._owned(actor) if not n.read])

    def _get_owned(self, actor: Optional[AppUser], notification_id: str) -> AppNotification:
        if actor is None:
            raise AuthenticationRequiredException("You must be logged in")
        doc = self.collection.get(notification_id)
        if not doc or doc.get("user_id") != actor.uid:
            raise NotificationNotFoundException(f"Notification {notification_id} not found")
        return AppNotification(**doc)

    async def mark_read(self, actor: Optional[AppUser], notification_id: str) -> AppNotification:
        notification = self._get_owned(actor, notification_id)
        self.collection.update(notification_id, {"read": True})
        notification.read = True
        return notification

    async def mark_all_read(self, actor: Optional[AppUser]) -> int:
        unread = [n for n in self._owned(actor) if not n.read]
        for notification in unread:
            self.collection.update(notification.id, {"read": True})
        return len(unread)

    async def delete(self, actor: Optional[AppUser], notification_id: str) -> None:
        self._get_owned(actor, notification_id)
        self.collection.delete(notification_id)

    async def delete_all(self, actor: Optional[AppUser]) -> int:
        owned = self._owned(actor)
        for notification in owned:
            self.collection.delete(notification.id)
        logger.info(f"🗑️ Deleted {len(owned)} notifications for {actor.uid}")
        return len(owned)


# Global notification service instance
notification_service = NotificationService()

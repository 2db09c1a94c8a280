# nyaya_mitra/services/notification_service.py

from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nyaya_mitra.core.logger import logger
from nyaya_mitra.db.models import Notification, NotificationPriority, NotificationType
from nyaya_mitra.utils.exceptions import NotificationNotFoundError
from nyaya_mitra.utils.helpers import Pagination, paginate, utcnow


class NotificationService:
    """
    Writes and reads in-app notifications.

    `notify` is fire-and-forget: a failed insert is rolled back and logged,
    never raised, so a notification problem cannot fail the request or job
    that triggered it.
    """

    def notify(
        self,
        db: Session,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.info,
        category: str = "general",
        priority: NotificationPriority = NotificationPriority.normal,
    ) -> Optional[Notification]:
        try:
            notification = Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=type,
                category=category,
                priority=priority,
            )
            db.add(notification)
            db.commit()
            return notification
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to create notification for user %s (%s)", user_id, title)
            return None

    def list_for_user(
        self,
        db: Session,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> Tuple[List[Notification], Pagination]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        return paginate(query, page, limit)

    def unread_count(self, db: Session, user_id: int) -> int:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    def mark_read(self, db: Session, user_id: int, notification_id: int) -> Notification:
        notification = (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if not notification:
            raise NotificationNotFoundError()

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            db.commit()
        return notification

    def mark_all_read(self, db: Session, user_id: int) -> int:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated


notification_service = NotificationService()

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from nyaya_mitra.api.deps import AuthenticatedUser, get_current_user
from nyaya_mitra.db import schemas
from nyaya_mitra.db.database import get_db
from nyaya_mitra.services.notification_service import notification_service

router = APIRouter()


@router.get("")
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, pagination = notification_service.list_for_user(
        db, current_user.id, page=page, limit=limit, unread_only=unread_only,
    )
    return {
        "notifications": [schemas.NotificationOut.model_validate(n) for n in items],
        "unreadCount": notification_service.unread_count(db, current_user.id),
        "pagination": pagination,
    }


@router.put("/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = notification_service.mark_read(db, current_user.id, notification_id)
    return {
        "message": "Notification marked as read",
        "notification": schemas.NotificationOut.model_validate(notification),
    }


@router.post("/mark-all-read")
def mark_all_read(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = notification_service.mark_all_read(db, current_user.id)
    return {"message": "All notifications marked as read", "updatedCount": updated}

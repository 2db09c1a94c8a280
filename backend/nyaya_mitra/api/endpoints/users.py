from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from nyaya_mitra.api.deps import AuthenticatedUser, admin_only, get_current_user
from nyaya_mitra.core.logger import logger
from nyaya_mitra.db import models, schemas
from nyaya_mitra.db.database import get_db
from nyaya_mitra.db.models import CaseStatus, UserRole
from nyaya_mitra.services.document_service import document_service
from nyaya_mitra.utils.exceptions import ApiError, NoUpdateFieldsError, UserNotFoundError
from nyaya_mitra.utils.helpers import paginate

router = APIRouter()


def _load_user(db: Session, user_id: int) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise UserNotFoundError()
    return user


@router.get("/profile")
def get_profile(current_user: AuthenticatedUser = Depends(get_current_user), db: Session = Depends(get_db)):
    user = _load_user(db, current_user.id)
    return {"user": schemas.UserPublic.model_validate(user)}


@router.put("/profile")
def update_profile(
    payload: schemas.ProfileUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial profile update: fullName, phone, address."""
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("full_name", "") is None:
        del updates["full_name"]
    if not updates:
        raise NoUpdateFieldsError()

    user = _load_user(db, current_user.id)
    for key, value in updates.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return {"message": "Profile updated successfully", "user": schemas.UserPublic.model_validate(user)}


@router.get("/dashboard", response_model=schemas.DashboardOut)
def get_dashboard(current_user: AuthenticatedUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """Latest cases, documents, unread notifications and SOS alerts, with counts."""
    user_id = current_user.id

    cases = db.query(models.LegalCase).filter(models.LegalCase.user_id == user_id)
    documents = db.query(models.Document).filter(models.Document.user_id == user_id)
    unread = db.query(models.Notification).filter(
        models.Notification.user_id == user_id, models.Notification.is_read.is_(False)
    )
    alerts = db.query(models.SOSAlert).filter(models.SOSAlert.user_id == user_id)

    latest_cases = cases.order_by(models.LegalCase.created_at.desc(), models.LegalCase.id.desc()).limit(5)
    latest_documents = documents.order_by(models.Document.created_at.desc(), models.Document.id.desc()).limit(5)
    latest_unread = unread.order_by(models.Notification.created_at.desc(), models.Notification.id.desc()).limit(10)
    latest_alerts = alerts.order_by(models.SOSAlert.created_at.desc(), models.SOSAlert.id.desc()).limit(3)

    return schemas.DashboardOut(
        cases=[schemas.CaseSummaryOut.model_validate(c) for c in latest_cases],
        documents=[schemas.DocumentSummaryOut.model_validate(d) for d in latest_documents],
        notifications=[schemas.NotificationOut.model_validate(n) for n in latest_unread],
        sos_alerts=[schemas.SOSAlertSummaryOut.model_validate(a) for a in latest_alerts],
        stats=schemas.DashboardStats(
            total_cases=cases.count(),
            active_cases=cases.filter(
                models.LegalCase.status.in_([CaseStatus.pending, CaseStatus.in_progress])
            ).count(),
            total_documents=documents.count(),
            unread_notifications=unread.count(),
        ),
    )

# ============================================================================
# Admin
# ============================================================================

@router.get("/all")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[UserRole] = Query(None),
    _admin: AuthenticatedUser = Depends(admin_only),
    db: Session = Depends(get_db),
):
    query = db.query(models.User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.User.username.ilike(pattern),
                models.User.email.ilike(pattern),
                models.User.full_name.ilike(pattern),
            )
        )
    if role is not None:
        query = query.filter(models.User.role == role)
    users, pagination = paginate(query.order_by(models.User.created_at.desc(), models.User.id.desc()), page, limit)
    return {
        "users": [schemas.UserPublic.model_validate(u) for u in users],
        "pagination": pagination,
    }


@router.put("/{user_id}/status")
def update_user_status(
    user_id: int,
    payload: schemas.UserStatusUpdate,
    admin: AuthenticatedUser = Depends(admin_only),
    db: Session = Depends(get_db),
):
    if user_id == admin.id:
        raise ApiError("Cannot modify your own account status", 400, "CANNOT_MODIFY_SELF")

    user = _load_user(db, user_id)
    user.is_active = payload.is_active
    if payload.is_verified is not None:
        user.is_verified = payload.is_verified
    db.commit()
    db.refresh(user)
    logger.info(
        "User %s status changed by admin %s: active=%s verified=%s",
        user.id, admin.id, user.is_active, user.is_verified,
    )
    return {"message": "User status updated successfully", "user": schemas.UserPublic.model_validate(user)}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    admin: AuthenticatedUser = Depends(admin_only),
    db: Session = Depends(get_db),
):
    if user_id == admin.id:
        raise ApiError("Cannot delete your own account", 400, "CANNOT_DELETE_SELF")

    user = _load_user(db, user_id)
    stored_paths = document_service.stored_paths_for_user(db, user.id)
    db.delete(user)
    db.commit()
    document_service.remove_files(stored_paths)
    logger.warning("User %s deleted by admin %s (%s stored files removed)", user_id, admin.id, len(stored_paths))
    return {"message": "User deleted successfully"}

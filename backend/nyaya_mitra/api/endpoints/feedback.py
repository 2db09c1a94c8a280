from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from nyaya_mitra.api.deps import AuthenticatedUser, get_current_user, get_optional_user
from nyaya_mitra.db import schemas
from nyaya_mitra.db.database import get_db
from nyaya_mitra.db.models import CivicFeedback, NotificationType
from nyaya_mitra.services.notification_service import notification_service
from nyaya_mitra.utils.helpers import paginate

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_feedback(
    payload: schemas.FeedbackCreate,
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Civic feedback. Anonymous submissions are stored without a user link."""
    linked_user_id = None if payload.is_anonymous or current_user is None else current_user.id

    feedback = CivicFeedback(
        user_id=linked_user_id,
        category=payload.category,
        subject=payload.subject,
        description=payload.description,
        location=payload.location,
        priority=payload.priority,
        is_anonymous=payload.is_anonymous or current_user is None,
    )
    db.add(feedback)
    db.commit()
    db.refresh(feedback)

    if linked_user_id is not None:
        notification_service.notify(
            db,
            linked_user_id,
            "Civic Feedback Submitted",
            f'Your feedback "{feedback.subject}" has been submitted. '
            f"Tracking number: {feedback.tracking_number}",
            type=NotificationType.success,
            category="feedback",
        )

    return {
        "message": "Feedback submitted successfully",
        "feedbackId": feedback.id,
        "trackingNumber": feedback.tracking_number,
    }


@router.get("")
def list_feedback(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = (
        db.query(CivicFeedback)
        .filter(CivicFeedback.user_id == current_user.id)
        .order_by(CivicFeedback.created_at.desc(), CivicFeedback.id.desc())
    )
    items, pagination = paginate(query, page, limit)
    return {
        "feedback": [schemas.FeedbackOut.model_validate(f) for f in items],
        "pagination": pagination,
    }

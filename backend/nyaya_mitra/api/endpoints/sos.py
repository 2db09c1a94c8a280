"""
SOS emergency alerts
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from nyaya_mitra.api.deps import AuthenticatedUser, get_current_user, get_optional_user, lawyer_or_admin
from nyaya_mitra.core.logger import logger
from nyaya_mitra.db import schemas
from nyaya_mitra.db.database import get_db
from nyaya_mitra.db.models import (
    AlertStatus,
    AlertType,
    NotificationPriority,
    NotificationType,
    Severity,
    SOSAlert,
)
from nyaya_mitra.services.notification_service import notification_service
from nyaya_mitra.utils.exceptions import AlertNotFoundError, ApiError, NoUpdateFieldsError
from nyaya_mitra.utils.helpers import paginate, utcnow

router = APIRouter()

EMERGENCY_CONTACTS = {
    "police": {"national": "100", "women": "1091", "cyber": "1930"},
    "medical": {"ambulance": "108", "emergency": "102"},
    "fire": "101",
    "disaster": "1078",
    "helplines": {
        "childHelpline": "1098",
        "elderlyHelpline": "1291",
        "mentalHealth": "9152987821",
    },
}

STATUS_MESSAGES = {
    AlertStatus.responded: "Your SOS alert has been responded to by authorities.",
    AlertStatus.resolved: "Your SOS alert has been resolved.",
    AlertStatus.cancelled: "Your SOS alert has been cancelled.",
    AlertStatus.active: "Your SOS alert is active again.",
}


def _alert_out(alert: SOSAlert) -> schemas.SOSAlertOut:
    out = schemas.SOSAlertOut.model_validate(alert)
    if alert.responder is not None:
        out.responder_name = alert.responder.full_name
    return out


def _get_owned_alert(db: Session, alert_id: int, user_id: int) -> SOSAlert:
    alert = db.query(SOSAlert).filter(SOSAlert.id == alert_id, SOSAlert.user_id == user_id).first()
    if not alert:
        raise AlertNotFoundError()
    return alert


def _apply_status(alert: SOSAlert, new_status: AlertStatus) -> None:
    now = utcnow()
    alert.status = new_status
    if new_status == AlertStatus.responded and alert.response_time is None:
        alert.response_time = now
    if new_status == AlertStatus.resolved and alert.resolved_at is None:
        alert.resolved_at = now


@router.post("/alert", status_code=status.HTTP_201_CREATED)
def create_alert(
    payload: schemas.SOSAlertCreate,
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    alert = SOSAlert(
        user_id=current_user.id if current_user else None,
        alert_type=payload.alert_type,
        description=payload.description,
        location_lat=payload.location_lat,
        location_lng=payload.location_lng,
        address=payload.address,
        emergency_contacts=payload.emergency_contacts,
        severity=payload.severity,
        is_test_alert=payload.is_test_alert,
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)
    logger.warning(
        "SOS alert %s created: type=%s severity=%s user=%s test=%s",
        alert.id, alert.alert_type.value, alert.severity.value, alert.user_id, alert.is_test_alert,
    )

    if current_user:
        notification_service.notify(
            db,
            current_user.id,
            f"SOS Alert Created - {alert.alert_type.value.upper()}",
            f"Your {alert.alert_type.value} emergency alert has been created and relevant authorities have been notified.",
            type=NotificationType.warning,
            category="sos",
            priority=NotificationPriority.urgent if alert.severity == Severity.critical else NotificationPriority.high,
        )

    return {"message": "SOS alert created successfully", "alert": _alert_out(alert)}


@router.get("/alerts")
def list_alerts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[AlertStatus] = Query(None, alias="status"),
    alert_type: Optional[AlertType] = Query(None, alias="alertType"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(SOSAlert).filter(SOSAlert.user_id == current_user.id)
    if status_filter is not None:
        query = query.filter(SOSAlert.status == status_filter)
    if alert_type is not None:
        query = query.filter(SOSAlert.alert_type == alert_type)
    alerts, pagination = paginate(query.order_by(SOSAlert.created_at.desc(), SOSAlert.id.desc()), page, limit)
    return {"alerts": [_alert_out(a) for a in alerts], "pagination": pagination}


@router.put("/alerts/{alert_id}")
def update_alert(
    alert_id: int,
    payload: schemas.SOSAlertUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise NoUpdateFieldsError()

    alert = _get_owned_alert(db, alert_id, current_user.id)
    previous_status = alert.status

    if "status" in updates:
        _apply_status(alert, updates["status"])
    if "response_notes" in updates:
        alert.response_notes = updates["response_notes"]
    db.commit()
    db.refresh(alert)

    if alert.status != previous_status:
        notification_service.notify(
            db,
            current_user.id,
            "SOS Alert Status Updated",
            STATUS_MESSAGES[alert.status],
            type=NotificationType.info,
            category="sos",
        )

    return {"message": "SOS alert updated successfully", "alert": _alert_out(alert)}


@router.post("/alerts/{alert_id}/respond")
def respond_to_alert(
    alert_id: int,
    payload: Optional[schemas.SOSRespondRequest] = None,
    responder: AuthenticatedUser = Depends(lawyer_or_admin),
    db: Session = Depends(get_db),
):
    """Lawyers and admins take ownership of an alert as responder."""
    alert = db.get(SOSAlert, alert_id)
    if alert is None:
        raise AlertNotFoundError()
    if alert.status in (AlertStatus.resolved, AlertStatus.cancelled):
        raise ApiError("Alert is already closed", 400, "ALERT_CLOSED")

    alert.responder_id = responder.id
    _apply_status(alert, AlertStatus.responded)
    if payload and payload.response_notes:
        alert.response_notes = payload.response_notes
    db.commit()
    db.refresh(alert)
    logger.info("SOS alert %s responded by user %s", alert.id, responder.id)

    if alert.user_id:
        notification_service.notify(
            db,
            alert.user_id,
            "SOS Alert Status Updated",
            STATUS_MESSAGES[AlertStatus.responded],
            type=NotificationType.info,
            category="sos",
            priority=NotificationPriority.high,
        )

    return {"message": "SOS alert marked as responded", "alert": _alert_out(alert)}


@router.delete("/alerts/{alert_id}")
def delete_alert(
    alert_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    alert = _get_owned_alert(db, alert_id, current_user.id)
    if alert.status not in (AlertStatus.resolved, AlertStatus.cancelled):
        raise ApiError(
            "Cannot delete active alerts. Please resolve or cancel first.",
            400,
            "CANNOT_DELETE_ACTIVE_ALERT",
        )
    db.delete(alert)
    db.commit()
    return {"message": "SOS alert deleted successfully"}


@router.get("/emergency-contacts")
def emergency_contacts():
    return {"emergencyContacts": EMERGENCY_CONTACTS}


@router.get("/stats")
def alert_stats(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(SOSAlert.alert_type, SOSAlert.status, func.count(SOSAlert.id))
        .filter(SOSAlert.user_id == current_user.id)
        .group_by(SOSAlert.alert_type, SOSAlert.status)
        .all()
    )
    by_type = {t.value: 0 for t in AlertType}
    total = active = resolved = 0
    for alert_type, alert_status, count in rows:
        total += count
        by_type[alert_type.value] += count
        if alert_status == AlertStatus.active:
            active += count
        elif alert_status == AlertStatus.resolved:
            resolved += count

    return {
        "stats": {
            "total": total,
            "active": active,
            "resolved": resolved,
            "byType": by_type,
        }
    }

"""
Whistleblower reports. Submission and status lookup are public; the public
report id is the only handle an anonymous reporter gets.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from nyaya_mitra.api.deps import AuthenticatedUser, admin_only, get_optional_user
from nyaya_mitra.core.logger import logger
from nyaya_mitra.db import schemas
from nyaya_mitra.db.database import get_db
from nyaya_mitra.db.models import NotificationType, ReportStatus, WhistleblowerReport
from nyaya_mitra.services.notification_service import notification_service
from nyaya_mitra.utils.exceptions import ReportNotFoundError
from nyaya_mitra.utils.helpers import generate_report_id, paginate

router = APIRouter()


def _get_report(db: Session, report_id: str) -> WhistleblowerReport:
    report = db.query(WhistleblowerReport).filter(WhistleblowerReport.report_id == report_id).first()
    if not report:
        raise ReportNotFoundError()
    return report


@router.post("/report", status_code=status.HTTP_201_CREATED)
def submit_report(
    payload: schemas.ReportCreate,
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    anonymous = payload.is_anonymous or current_user is None
    report = WhistleblowerReport(
        reporter_id=None if anonymous else current_user.id,
        report_id=generate_report_id(),
        title=payload.title,
        description=payload.description,
        category=payload.category,
        is_anonymous=anonymous,
        severity=payload.severity,
        organization_involved=payload.organization_involved,
        estimated_impact=payload.estimated_impact,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info("Whistleblower report %s submitted (anonymous=%s)", report.report_id, anonymous)

    if not anonymous:
        notification_service.notify(
            db,
            current_user.id,
            "Whistleblower Report Submitted",
            f"Your report has been submitted securely. Reference ID: {report.report_id}",
            type=NotificationType.success,
            category="whistleblower",
        )

    return {
        "message": "Report submitted successfully. Keep your report ID to check its status.",
        "reportId": report.report_id,
        "anonymousAccess": anonymous,
    }


@router.get("/status/{report_id}", response_model=schemas.ReportStatusOut)
def report_status(report_id: str, db: Session = Depends(get_db)):
    report = _get_report(db, report_id)
    return schemas.ReportStatusOut.model_validate(report)


@router.get("/reports")
def list_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    _admin: AuthenticatedUser = Depends(admin_only),
    db: Session = Depends(get_db),
):
    query = db.query(WhistleblowerReport)
    if status_filter is not None:
        query = query.filter(WhistleblowerReport.status == status_filter)
    query = query.order_by(WhistleblowerReport.created_at.desc(), WhistleblowerReport.id.desc())
    reports, pagination = paginate(query, page, limit)
    return {
        "reports": [schemas.ReportOut.model_validate(r) for r in reports],
        "pagination": pagination,
    }


@router.put("/reports/{report_id}/status")
def update_report_status(
    report_id: str,
    payload: schemas.ReportStatusUpdate,
    admin: AuthenticatedUser = Depends(admin_only),
    db: Session = Depends(get_db),
):
    report = _get_report(db, report_id)
    report.status = payload.status
    db.commit()
    db.refresh(report)
    logger.info("Report %s → status=%s by admin %s", report.report_id, report.status.value, admin.id)

    if report.reporter_id and not report.is_anonymous:
        notification_service.notify(
            db,
            report.reporter_id,
            "Whistleblower Report Updated",
            f"Report {report.report_id} is now {report.status.value.replace('_', ' ')}.",
            type=NotificationType.info,
            category="whistleblower",
        )

    return {"message": "Report status updated", "report": schemas.ReportOut.model_validate(report)}

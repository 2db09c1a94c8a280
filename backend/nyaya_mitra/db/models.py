"""
SQLAlchemy ORM Models
"""

from __future__ import annotations

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from nyaya_mitra.db.database import Base
from nyaya_mitra.utils.helpers import feedback_tracking_number, utcnow

# ============================================================================
# Enums
# ============================================================================

class UserRole(str, enum.Enum):
    """User roles"""
    citizen = "citizen"
    lawyer = "lawyer"
    admin = "admin"

class DocumentStatus(str, enum.Enum):
    """Document analysis status"""
    processing = "processing"
    completed = "completed"
    failed = "failed"

class NotificationType(str, enum.Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"

class NotificationPriority(str, enum.Enum):
    normal = "normal"
    high = "high"
    urgent = "urgent"

class CaseStatus(str, enum.Enum):
    """Case status enum"""
    pending = "pending"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"

class Priority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"

class AlertType(str, enum.Enum):
    """SOS alert kinds"""
    police = "police"
    medical = "medical"
    legal = "legal"
    fire = "fire"
    general = "general"

class Severity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

class AlertStatus(str, enum.Enum):
    active = "active"
    responded = "responded"
    resolved = "resolved"
    cancelled = "cancelled"

class FeedbackPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"

class FeedbackStatus(str, enum.Enum):
    submitted = "submitted"
    in_review = "in_review"
    resolved = "resolved"
    closed = "closed"

class ReportStatus(str, enum.Enum):
    """Whistleblower report lifecycle"""
    submitted = "submitted"
    under_review = "under_review"
    investigating = "investigating"
    resolved = "resolved"
    dismissed = "dismissed"

class ConsultationType(str, enum.Enum):
    chat = "chat"
    video = "video"
    phone = "phone"
    in_person = "in_person"

class ConsultationStatus(str, enum.Enum):
    scheduled = "scheduled"
    completed = "completed"
    cancelled = "cancelled"

# ============================================================================
# Users & sessions
# ============================================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    phone = Column(String(20))
    address = Column(Text)
    profile_image = Column(String(500))
    role = Column(SQLEnum(UserRole, name="user_role"), nullable=False, default=UserRole.citizen)

    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    last_login_at = Column(DateTime)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    documents = relationship("Document", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    cases = relationship(
        "LegalCase",
        back_populates="owner",
        foreign_keys="LegalCase.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    sos_alerts = relationship(
        "SOSAlert",
        back_populates="user",
        foreign_keys="SOSAlert.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class UserSession(Base):
    """
    Persisted login. `session_token` holds the current access token and is
    replaced on refresh; `is_active` is flipped on logout.
    """
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_token = Column(String(512), unique=True, nullable=False)
    refresh_token = Column(String(512), unique=True, nullable=False)
    device_info = Column(JSON)
    ip_address = Column(String(64))
    user_agent = Column(Text)
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_accessed = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="sessions")

# ============================================================================
# Cases & documents
# ============================================================================

class LegalCase(Base):
    __tablename__ = "legal_cases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    case_number = Column(String(50), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    case_type = Column(String(100))
    status = Column(SQLEnum(CaseStatus, name="case_status"), nullable=False, default=CaseStatus.pending)
    priority = Column(SQLEnum(Priority, name="case_priority"), nullable=False, default=Priority.medium)
    court_name = Column(String(255))
    judge_name = Column(String(255))
    next_hearing_date = Column(DateTime)
    assigned_lawyer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="cases", foreign_keys=[user_id])
    documents = relationship("Document", back_populates="case", passive_deletes=True)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    case_id = Column(Integer, ForeignKey("legal_cases.id", ondelete="SET NULL"), nullable=True, index=True)

    original_filename = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_type = Column(String(150), nullable=False)
    file_size = Column(Integer, nullable=False)

    status = Column(
        SQLEnum(DocumentStatus, name="document_status", create_constraint=True),
        nullable=False,
        default=DocumentStatus.processing,
    )
    analysis_result = Column(JSON)
    summary = Column(Text)
    confidence_score = Column(Float)
    processing_time = Column(Float)
    error_message = Column(Text)
    analyzed_at = Column(DateTime)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="documents")
    case = relationship("LegalCase", back_populates="documents")

    __table_args__ = (
        Index("ix_documents_user_created", "user_id", "created_at"),
    )

# ============================================================================
# Notifications
# ============================================================================

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(SQLEnum(NotificationType, name="notification_type"), nullable=False, default=NotificationType.info)
    category = Column(String(50), nullable=False, default="general")
    priority = Column(
        SQLEnum(NotificationPriority, name="notification_priority"),
        nullable=False,
        default=NotificationPriority.normal,
    )
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="notifications")

# ============================================================================
# Civic modules
# ============================================================================

class SOSAlert(Base):
    __tablename__ = "sos_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    alert_type = Column(SQLEnum(AlertType, name="alert_type"), nullable=False)
    description = Column(Text, nullable=False)
    location_lat = Column(Float)
    location_lng = Column(Float)
    address = Column(String(500))
    emergency_contacts = Column(JSON)
    severity = Column(SQLEnum(Severity, name="alert_severity"), nullable=False, default=Severity.medium)
    status = Column(SQLEnum(AlertStatus, name="alert_status"), nullable=False, default=AlertStatus.active)
    is_test_alert = Column(Boolean, nullable=False, default=False)
    responder_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    response_notes = Column(Text)
    response_time = Column(DateTime)
    resolved_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="sos_alerts", foreign_keys=[user_id])
    responder = relationship("User", foreign_keys=[responder_id])


class CivicFeedback(Base):
    __tablename__ = "civic_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    category = Column(String(100), nullable=False)
    subject = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(200))
    priority = Column(SQLEnum(FeedbackPriority, name="feedback_priority"), nullable=False, default=FeedbackPriority.medium)
    status = Column(SQLEnum(FeedbackStatus, name="feedback_status"), nullable=False, default=FeedbackStatus.submitted)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def tracking_number(self) -> str:
        return feedback_tracking_number(self.id)


class WhistleblowerReport(Base):
    __tablename__ = "whistleblower_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reporter_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    report_id = Column(String(40), unique=True, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False)
    is_anonymous = Column(Boolean, nullable=False, default=True)
    severity = Column(SQLEnum(Severity, name="report_severity"), nullable=False, default=Severity.medium)
    organization_involved = Column(String(200))
    estimated_impact = Column(Text)
    status = Column(SQLEnum(ReportStatus, name="report_status"), nullable=False, default=ReportStatus.submitted)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Consultation(Base):
    __tablename__ = "legal_consultations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    lawyer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    consultation_type = Column(SQLEnum(ConsultationType, name="consultation_type"), nullable=False)
    scheduled_at = Column(DateTime)
    duration_minutes = Column(Integer, default=30)
    status = Column(
        SQLEnum(ConsultationStatus, name="consultation_status"),
        nullable=False,
        default=ConsultationStatus.scheduled,
    )
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)

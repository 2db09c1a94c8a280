"""
Pydantic validation schemas

Request and response bodies use camelCase on the wire; snake_case field
names are accepted on input as well.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from nyaya_mitra.db.models import (
    AlertStatus,
    AlertType,
    CaseStatus,
    DocumentStatus,
    FeedbackPriority,
    FeedbackStatus,
    NotificationPriority,
    NotificationType,
    Priority,
    ReportStatus,
    Severity,
    UserRole,
)
from nyaya_mitra.utils.helpers import isoformat_utc
from nyaya_mitra.utils.validators import validate_mobile, validate_password_strength, validate_username


def _trimmed(min_length: int = None, max_length: int = None):
    return Annotated[str, StringConstraints(strip_whitespace=True, min_length=min_length, max_length=max_length)]


# Columns hold naive UTC; on the wire every timestamp carries a trailing Z.
UtcDatetime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=str, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

# ============================================================================
# Auth Schemas
# ============================================================================

class RegisterRequest(CamelModel):
    """Registration schema"""
    username: _trimmed(3, 50)
    email: EmailStr
    password: str
    full_name: _trimmed(2, 100)
    phone: Optional[_trimmed(max_length=20)] = None
    role: UserRole = UserRole.citizen

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        if not validate_username(v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not validate_mobile(v):
            raise ValueError("Invalid phone number")
        return v

    @field_validator("role")
    @classmethod
    def check_role(cls, v: UserRole) -> UserRole:
        if v == UserRole.admin:
            raise ValueError("Role must be citizen or lawyer")
        return v


class LoginRequest(CamelModel):
    """Login schema"""
    email: EmailStr
    password: str = Field(..., min_length=1)
    remember_me: bool = False

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshTokenRequest(CamelModel):
    refresh_token: Optional[str] = None


class LogoutRequest(CamelModel):
    token: Optional[str] = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class AccessTokenResponse(CamelModel):
    access_token: str

# ============================================================================
# User Schemas
# ============================================================================

class UserPublic(CamelModel):
    id: int
    username: str
    email: str
    full_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: UserRole
    is_verified: bool
    is_active: bool
    created_at: UtcDatetime
    last_login_at: Optional[UtcDatetime] = None


class AuthResponse(CamelModel):
    message: str
    user: UserPublic
    tokens: TokenPair


class ProfileUpdate(CamelModel):
    full_name: Optional[_trimmed(2, 100)] = None
    phone: Optional[_trimmed(max_length=20)] = None
    address: Optional[_trimmed(max_length=500)] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        if v and not validate_mobile(v):
            raise ValueError("Invalid phone number")
        return v


class UserStatusUpdate(CamelModel):
    is_active: bool
    is_verified: Optional[bool] = None

# ============================================================================
# Document Schemas
# ============================================================================

class EntitySet(CamelModel):
    persons: List[str] = []
    organizations: List[str] = []
    dates: List[str] = []
    locations: List[str] = []


class AnalysisPayload(CamelModel):
    """Structured result attached to a document after analysis"""
    summary: str
    key_points: List[str] = []
    entities: EntitySet = Field(default_factory=EntitySet)
    legal_references: List[str] = []
    confidence_score: float
    processing_time: float


class DocumentUploadOut(CamelModel):
    id: int
    original_filename: str
    file_type: str
    file_size: int
    status: DocumentStatus


class DocumentOut(DocumentUploadOut):
    case_id: Optional[int] = None
    case_number: Optional[str] = None
    case_title: Optional[str] = None
    summary: Optional[str] = None
    confidence_score: Optional[float] = None
    error_message: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class DocumentAnalysisOut(DocumentOut):
    analysis: Optional[AnalysisPayload] = None
    processing_time: Optional[float] = None
    analyzed_at: Optional[UtcDatetime] = None

# ============================================================================
# Notification Schemas
# ============================================================================

class NotificationOut(CamelModel):
    id: int
    title: str
    message: str
    type: NotificationType
    category: str
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[UtcDatetime] = None
    created_at: UtcDatetime

# ============================================================================
# SOS Schemas
# ============================================================================

class SOSAlertCreate(CamelModel):
    alert_type: AlertType
    description: _trimmed(10, 1000)
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[_trimmed(max_length=500)] = None
    emergency_contacts: Optional[List[Dict[str, Any]]] = None
    severity: Severity = Severity.medium
    is_test_alert: bool = False


class SOSAlertUpdate(CamelModel):
    status: Optional[AlertStatus] = None
    response_notes: Optional[_trimmed(max_length=1000)] = None


class SOSRespondRequest(CamelModel):
    response_notes: Optional[_trimmed(max_length=1000)] = None


class SOSAlertOut(CamelModel):
    id: int
    alert_type: AlertType
    description: str
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    address: Optional[str] = None
    emergency_contacts: Optional[List[Dict[str, Any]]] = None
    severity: Severity
    status: AlertStatus
    is_test_alert: bool
    responder_id: Optional[int] = None
    responder_name: Optional[str] = None
    response_notes: Optional[str] = None
    response_time: Optional[UtcDatetime] = None
    resolved_at: Optional[UtcDatetime] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

# ============================================================================
# Civic Feedback Schemas
# ============================================================================

class FeedbackCreate(CamelModel):
    category: _trimmed(2, 100)
    subject: _trimmed(5, 200)
    description: _trimmed(20, 2000)
    location: Optional[_trimmed(max_length=200)] = None
    is_anonymous: bool = False
    priority: FeedbackPriority = FeedbackPriority.medium


class FeedbackOut(CamelModel):
    id: int
    tracking_number: str
    category: str
    subject: str
    description: str
    location: Optional[str] = None
    priority: FeedbackPriority
    status: FeedbackStatus
    is_anonymous: bool
    created_at: UtcDatetime
    updated_at: UtcDatetime

# ============================================================================
# Whistleblower Schemas
# ============================================================================

class ReportCreate(CamelModel):
    title: _trimmed(10, 200)
    description: _trimmed(50, 5000)
    category: _trimmed(2, 100)
    is_anonymous: bool = True
    severity: Severity = Severity.medium
    organization_involved: Optional[_trimmed(max_length=200)] = None
    estimated_impact: Optional[_trimmed(max_length=2000)] = None


class ReportStatusUpdate(CamelModel):
    status: ReportStatus


class ReportStatusOut(CamelModel):
    """Public view of a report, keyed by its public id"""
    report_id: str
    title: str
    status: ReportStatus
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ReportOut(ReportStatusOut):
    id: int
    category: str
    description: str
    severity: Severity
    is_anonymous: bool
    organization_involved: Optional[str] = None
    estimated_impact: Optional[str] = None

# ============================================================================
# Dashboard Schemas
# ============================================================================

class CaseSummaryOut(CamelModel):
    id: int
    case_number: str
    title: str
    status: CaseStatus
    priority: Priority
    created_at: UtcDatetime


class DocumentSummaryOut(CamelModel):
    id: int
    original_filename: str
    status: DocumentStatus
    created_at: UtcDatetime


class SOSAlertSummaryOut(CamelModel):
    id: int
    alert_type: AlertType
    status: AlertStatus
    created_at: UtcDatetime


class DashboardStats(CamelModel):
    total_cases: int
    active_cases: int
    total_documents: int
    unread_notifications: int


class DashboardOut(CamelModel):
    cases: List[CaseSummaryOut]
    documents: List[DocumentSummaryOut]
    notifications: List[NotificationOut]
    sos_alerts: List[SOSAlertSummaryOut]
    stats: DashboardStats

"""
Custom exception classes

Every error a handler raises on purpose is an ApiError: an HTTPException that
also carries a machine-readable `code` for the JSON error envelope.
"""
from typing import Any, Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    """Base API error with a stable error code"""
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "API_ERROR",
        details: Optional[Any] = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


class NoUpdateFieldsError(ApiError):
    def __init__(self):
        super().__init__("No valid fields to update", 400, "NO_UPDATE_FIELDS")


# ----------------------------------------------------------------------------
# Authentication
# ----------------------------------------------------------------------------

class NoTokenError(ApiError):
    """Raised when a protected route is called without any credential"""
    def __init__(self):
        super().__init__("Access denied. No token provided.", 401, "NO_TOKEN")


class InvalidTokenError(ApiError):
    """JWT signature or format is invalid"""
    def __init__(self):
        super().__init__("Invalid token.", 401, "JWT_INVALID")


class TokenExpiredError(ApiError):
    def __init__(self):
        super().__init__("Token expired.", 401, "TOKEN_EXPIRED")


class InvalidOrExpiredTokenError(ApiError):
    """JWT is fine but no active, unexpired session holds it"""
    def __init__(self):
        super().__init__("Invalid or expired token.", 401, "INVALID_TOKEN")


class AccountDeactivatedError(ApiError):
    def __init__(self):
        super().__init__("Account is deactivated.", 401, "ACCOUNT_DEACTIVATED")


class InvalidCredentialsError(ApiError):
    def __init__(self):
        super().__init__("Invalid email or password", 401, "INVALID_CREDENTIALS")


class UserExistsError(ApiError):
    def __init__(self):
        super().__init__("User already exists with this email or username", 409, "USER_EXISTS")


class RefreshTokenRequiredError(ApiError):
    def __init__(self):
        super().__init__("Refresh token is required", 400, "REFRESH_TOKEN_REQUIRED")


class InvalidRefreshTokenError(ApiError):
    def __init__(self):
        super().__init__("Invalid refresh token", 401, "INVALID_REFRESH_TOKEN")


class AuthRequiredError(ApiError):
    def __init__(self):
        super().__init__("Authentication required.", 401, "AUTH_REQUIRED")


class InsufficientPermissionsError(ApiError):
    """Raised when the user's role is not allowed on a route"""
    def __init__(self):
        super().__init__("Insufficient permissions.", 403, "INSUFFICIENT_PERMISSIONS")


# ----------------------------------------------------------------------------
# Resources
# ----------------------------------------------------------------------------

class NotFoundError(ApiError):
    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, 404, code)


class UserNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("User not found", "USER_NOT_FOUND")


class DocumentNotFoundError(NotFoundError):
    """Raised when document doesn't exist or belongs to someone else"""
    def __init__(self):
        super().__init__("Document not found", "DOCUMENT_NOT_FOUND")


class CaseNotFoundError(NotFoundError):
    """Raised when case doesn't exist or belongs to someone else"""
    def __init__(self):
        super().__init__("Case not found or access denied", "CASE_NOT_FOUND")


class NotificationNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Notification not found", "NOTIFICATION_NOT_FOUND")


class AlertNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("SOS alert not found", "ALERT_NOT_FOUND")


class ReportNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Report not found", "REPORT_NOT_FOUND")


# ----------------------------------------------------------------------------
# Uploads
# ----------------------------------------------------------------------------

class NoFileError(ApiError):
    def __init__(self):
        super().__init__("No file uploaded", 400, "NO_FILE")


class InvalidFileTypeError(ApiError):
    def __init__(self, content_type: Optional[str] = None):
        super().__init__(
            "Invalid file type. Only PDF, images, and Word documents are allowed.",
            400,
            "INVALID_FILE_TYPE",
            {"contentType": content_type} if content_type else None,
        )


class FileTooLargeError(ApiError):
    def __init__(self, max_bytes: int):
        super().__init__(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
            413,
            "FILE_TOO_LARGE",
        )

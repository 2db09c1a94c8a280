"""
Exception handlers

Every error response has the same envelope:

    {"error": <message>, "code": <CODE>, "timestamp": <ISO-8601>, "path": <url path>}

Outside production, `details` (when present) and `stack` are added.
"""
import traceback
from typing import Any, Optional

import jwt
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nyaya_mitra.core.config import settings
from nyaya_mitra.core.logger import logger
from nyaya_mitra.utils.exceptions import ApiError
from nyaya_mitra.utils.helpers import isoformat_utc

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "FILE_TOO_LARGE",
    429: "RATE_LIMITED",
}


def error_response(
    request: Request,
    status_code: int,
    message: str,
    code: str,
    details: Optional[Any] = None,
    exc: Optional[BaseException] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    if settings.is_production and status_code >= 500:
        message = "Internal Server Error"

    body = {
        "error": message,
        "code": code,
        "timestamp": isoformat_utc(),
        "path": request.url.path,
    }
    if not settings.is_production:
        if details is not None:
            body["details"] = jsonable_encoder(details)
        if exc is not None and exc.__traceback__ is not None:
            body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(
        request, exc.status_code, exc.detail, exc.code,
        details=exc.details, exc=exc, headers=getattr(exc, "headers", None),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = "API endpoint not found"
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(request, exc.status_code, message, code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in errors
    ]
    return error_response(request, 400, "Validation failed", "VALIDATION_ERROR", details=details)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    text = str(exc.orig or exc).upper()
    if "UNIQUE" in text or "DUPLICATE" in text:
        return error_response(request, 409, "Duplicate entry. Resource already exists.", "DUPLICATE_ENTRY", exc=exc)
    if "FOREIGN KEY" in text:
        return error_response(request, 400, "Invalid reference. Related resource not found.", "FOREIGN_KEY_ERROR", exc=exc)
    logger.warning("Integrity error on %s: %s", request.url.path, exc)
    return error_response(request, 400, "Database constraint violated.", "CONSTRAINT_ERROR", exc=exc)


async def jwt_error_handler(request: Request, exc: jwt.PyJWTError) -> JSONResponse:
    if isinstance(exc, jwt.ExpiredSignatureError):
        return error_response(request, 401, "Token expired", "TOKEN_EXPIRED")
    return error_response(request, 401, "Invalid token", "INVALID_TOKEN")


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit exceeded for %s on %s (%s)", request.client.host if request.client else "-", request.url.path, exc.detail)
    return error_response(
        request,
        429,
        "Too many requests from this IP, please try again later.",
        "RATE_LIMITED",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, str(exc) or "Internal Server Error", "INTERNAL_ERROR", exc=exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(jwt.PyJWTError, jwt_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

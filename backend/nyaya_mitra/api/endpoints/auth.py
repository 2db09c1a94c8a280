from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.orm import Session

from nyaya_mitra.api.deps import AuthenticatedUser, get_current_user
from nyaya_mitra.core.config import settings
from nyaya_mitra.core.rate_limit import get_client_ip, limiter
from nyaya_mitra.core.security import extract_token
from nyaya_mitra.db import models, schemas
from nyaya_mitra.db.database import get_db
from nyaya_mitra.services.auth_service import ClientInfo, auth_service
from nyaya_mitra.utils.exceptions import UserNotFoundError

router = APIRouter()


def _client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def _auth_payload(message: str, user: models.User, tokens) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        message=message,
        user=schemas.UserPublic.model_validate(user),
        tokens=schemas.TokenPair(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.AuthResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def register(request: Request, payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and log it in."""
    user, tokens = auth_service.register(db, payload, _client_info(request))
    return _auth_payload("User registered successfully", user, tokens)


@router.post("/login", response_model=schemas.AuthResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def login(request: Request, payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    """Login endpoint. Email is normalized to lowercase for consistency with register."""
    user, tokens = auth_service.login(
        db,
        payload.email,
        payload.password,
        _client_info(request),
        remember_me=payload.remember_me,
    )
    return _auth_payload("Login successful", user, tokens)


@router.post("/refresh-token", response_model=schemas.AccessTokenResponse)
def refresh_token(
    payload: Optional[schemas.RefreshTokenRequest] = Body(None),
    db: Session = Depends(get_db),
):
    access_token = auth_service.refresh_access_token(db, payload.refresh_token if payload else None)
    return schemas.AccessTokenResponse(access_token=access_token)


@router.post("/logout")
def logout(
    request: Request,
    payload: Optional[schemas.LogoutRequest] = Body(None),
    db: Session = Depends(get_db),
):
    """Deactivate the caller's session. Always succeeds."""
    token = extract_token(request) or (payload.token if payload else None)
    auth_service.logout(db, token)
    return {"message": "Logged out successfully"}


@router.get("/me")
def me(current_user: AuthenticatedUser = Depends(get_current_user), db: Session = Depends(get_db)):
    user = db.get(models.User, current_user.id)
    if user is None:
        raise UserNotFoundError()
    return {"user": schemas.UserPublic.model_validate(user)}

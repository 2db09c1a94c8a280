# nyaya_mitra/services/auth_service.py
"""
Session issuer: registration, login, token refresh and logout.

Every successful login or registration creates one `UserSession` row that
holds the access token (`session_token`) and the refresh token. The request
authenticator only accepts access tokens that an active, unexpired session
still holds, so logging out revokes a token before its JWT expiry.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

import jwt
from sqlalchemy import or_
from sqlalchemy.orm import Session

from nyaya_mitra.core.config import settings
from nyaya_mitra.core.logger import logger
from nyaya_mitra.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from nyaya_mitra.db import schemas
from nyaya_mitra.db.models import NotificationType, User, UserSession
from nyaya_mitra.services.notification_service import notification_service
from nyaya_mitra.utils.exceptions import (
    AccountDeactivatedError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    RefreshTokenRequiredError,
    UserExistsError,
)
from nyaya_mitra.utils.helpers import utcnow

WELCOME_TITLE = "Welcome to Nyaya Mitra!"
WELCOME_MESSAGE = (
    "Your account has been created successfully. "
    "Explore our legal services and get the help you need."
)


@dataclass
class ClientInfo:
    """Where a login came from, stored on the session row"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_info: Dict[str, Any] = field(default_factory=lambda: {"device": "web"})


@dataclass
class IssuedTokens:
    access_token: str
    refresh_token: str
    expires_at: datetime


class AuthService:

    def __init__(self):
        self._dummy_hash: Optional[str] = None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _token_lifetimes(self, remember_me: bool) -> Tuple[timedelta, timedelta]:
        if remember_me:
            return (
                timedelta(days=settings.REMEMBER_ME_ACCESS_TOKEN_EXPIRE_DAYS),
                timedelta(days=settings.REMEMBER_ME_REFRESH_TOKEN_EXPIRE_DAYS),
            )
        return (
            timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    def _burn_password_check(self, password: str) -> None:
        """Spend one bcrypt comparison so unknown emails cost the same as wrong passwords."""
        if self._dummy_hash is None:
            self._dummy_hash = get_password_hash("nyaya-mitra-timing-guard")
        verify_password(password, self._dummy_hash)

    def _issue_session(
        self,
        db: Session,
        user: User,
        client: ClientInfo,
        remember_me: bool = False,
    ) -> IssuedTokens:
        access_ttl, refresh_ttl = self._token_lifetimes(remember_me)
        claims = {"sub": user.id, "username": user.username, "role": user.role.value}

        access_token = create_access_token(claims, access_ttl)
        refresh_token = create_refresh_token({"sub": user.id}, refresh_ttl)
        now = utcnow()
        expires_at = now + refresh_ttl

        db.add(
            UserSession(
                user_id=user.id,
                session_token=access_token,
                refresh_token=refresh_token,
                device_info=client.device_info,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
                expires_at=expires_at,
                is_active=True,
                created_at=now,
                last_accessed=now,
            )
        )
        db.commit()
        return IssuedTokens(access_token, refresh_token, expires_at)

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    def register(
        self,
        db: Session,
        payload: schemas.RegisterRequest,
        client: ClientInfo,
    ) -> Tuple[User, IssuedTokens]:
        existing = (
            db.query(User.id)
            .filter(or_(User.email == payload.email, User.username == payload.username))
            .first()
        )
        if existing:
            raise UserExistsError()

        user = User(
            username=payload.username,
            email=payload.email,
            password_hash=get_password_hash(payload.password),
            full_name=payload.full_name,
            phone=payload.phone,
            role=payload.role,
            is_active=True,
            is_verified=False,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("User registered: id=%s username=%s role=%s", user.id, user.username, user.role.value)

        notification_service.notify(
            db,
            user.id,
            WELCOME_TITLE,
            WELCOME_MESSAGE,
            type=NotificationType.success,
            category="account",
        )

        tokens = self._issue_session(db, user, client)
        return user, tokens

    def login(
        self,
        db: Session,
        email: str,
        password: str,
        client: ClientInfo,
        remember_me: bool = False,
    ) -> Tuple[User, IssuedTokens]:
        email = (email or "").strip().lower()
        user = db.query(User).filter(User.email == email).first()

        if user is None:
            self._burn_password_check(password)
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            logger.info("Failed login for user id=%s", user.id)
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDeactivatedError()

        user.last_login_at = utcnow()
        tokens = self._issue_session(db, user, client, remember_me=remember_me)
        db.refresh(user)
        logger.info("User logged in: id=%s remember_me=%s", user.id, remember_me)
        return user, tokens

    def refresh_access_token(self, db: Session, refresh_token: Optional[str]) -> str:
        if not refresh_token:
            raise RefreshTokenRequiredError()

        try:
            payload = decode_refresh_token(refresh_token)
        except jwt.PyJWTError:
            raise InvalidRefreshTokenError()

        session = (
            db.query(UserSession)
            .filter(
                UserSession.refresh_token == refresh_token,
                UserSession.is_active.is_(True),
                UserSession.expires_at > utcnow(),
            )
            .first()
        )
        if session is None or str(session.user_id) != str(payload.get("sub")):
            raise InvalidRefreshTokenError()

        user = session.user
        if not user.is_active:
            raise AccountDeactivatedError()

        access_token = create_access_token(
            {"sub": user.id, "username": user.username, "role": user.role.value},
            timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        session.session_token = access_token
        session.last_accessed = utcnow()
        db.commit()
        return access_token

    def logout(self, db: Session, token: Optional[str]) -> bool:
        """Deactivate the session holding `token`. Unknown tokens are a no-op."""
        if not token:
            return False
        updated = (
            db.query(UserSession)
            .filter(UserSession.session_token == token, UserSession.is_active.is_(True))
            .update({"is_active": False}, synchronize_session=False)
        )
        db.commit()
        return bool(updated)


auth_service = AuthService()

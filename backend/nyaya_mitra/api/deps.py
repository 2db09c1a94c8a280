# nyaya_mitra/api/deps.py

from typing import Callable, Optional

import jwt
from fastapi import Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from nyaya_mitra.core.logger import logger
from nyaya_mitra.core.security import decode_access_token, extract_token
from nyaya_mitra.db.database import get_db
from nyaya_mitra.db.models import User, UserRole, UserSession
from nyaya_mitra.utils.exceptions import (
    AccountDeactivatedError,
    ApiError,
    AuthRequiredError,
    InsufficientPermissionsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    NoTokenError,
    TokenExpiredError,
)
from nyaya_mitra.utils.helpers import utcnow


class AuthenticatedUser(BaseModel):
    """Identity attached to request.state.user for the rest of the request"""
    id: int
    username: str
    email: str
    role: UserRole
    is_verified: bool


# ============================================================================
# Token -> identity
# ============================================================================

def resolve_identity(db: Session, token: str) -> AuthenticatedUser:
    """
    Validate a bearer token against its JWT signature and its session row.
    """
    try:
        decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.PyJWTError:
        raise InvalidTokenError()

    row = (
        db.query(UserSession, User)
        .join(User, User.id == UserSession.user_id)
        .filter(
            UserSession.session_token == token,
            UserSession.is_active.is_(True),
            UserSession.expires_at > utcnow(),
        )
        .first()
    )
    if row is None:
        raise InvalidOrExpiredTokenError()

    session, user = row
    if not user.is_active:
        raise AccountDeactivatedError()

    session.last_accessed = utcnow()
    db.commit()

    return AuthenticatedUser(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        is_verified=bool(user.is_verified),
    )

# ============================================================================
# Dependencies
# ============================================================================

def get_current_user(request: Request, db: Session = Depends(get_db)) -> AuthenticatedUser:
    """
    Require a valid session token (header, cookie or query param).
    """
    token = extract_token(request)
    if not token:
        raise NoTokenError()

    user = resolve_identity(db, token)
    request.state.user = user
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[AuthenticatedUser]:
    """
    Same lookup as get_current_user but never fails: anonymous callers get None.
    """
    request.state.user = None
    token = extract_token(request)
    if not token:
        return None

    try:
        user = resolve_identity(db, token)
    except ApiError as exc:
        logger.debug("Optional auth ignored token: %s", exc.code)
        return None

    request.state.user = user
    return user


def require_roles(*roles: UserRole) -> Callable[..., AuthenticatedUser]:
    """
    Build a dependency that admits only the given roles. Runs the
    authenticator first, so it can be used on its own.
    """
    allowed = frozenset(roles)

    def _role_checker(
        request: Request,
        _user: Optional[AuthenticatedUser] = Depends(get_current_user),
    ) -> AuthenticatedUser:
        user = getattr(request.state, "user", None)
        if user is None:
            raise AuthRequiredError()
        if user.role not in allowed:
            raise InsufficientPermissionsError()
        return user

    return _role_checker


admin_only = require_roles(UserRole.admin)
lawyer_or_admin = require_roles(UserRole.lawyer, UserRole.admin)

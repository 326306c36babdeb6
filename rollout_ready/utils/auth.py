# rollout_ready/utils/auth.py
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from rollout_ready.config.security import SecurityConfig
from rollout_ready.database import get_db
from rollout_ready.exceptions import UnauthorizedError
from rollout_ready.models.user import User, UserSession
from rollout_ready.utils.security import create_access_token, verify_token

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def create_session(db: Session, user: User) -> str:
    """Issue a token for ``user`` and record it in the session table."""
    token = create_access_token(data={
        "sub": str(user.id),
        "username": user.username,
        "system_role": user.system_role.value,
    })
    db.add(UserSession(
        user_id=user.id,
        token=token,
        expires_at=datetime.utcnow() + timedelta(days=SecurityConfig.SESSION['duration_days']),
    ))
    db.commit()
    return token


def validate_session(db: Session, token: str) -> Optional[User]:
    """Return the active user behind ``token``, or None.

    The session row is authoritative: a correctly signed token whose row was
    deleted (logout) or has expired is rejected. Expired rows are removed here.
    """
    if not token:
        return None

    session = db.query(UserSession).filter(UserSession.token == token).first()
    if session is None:
        return None

    if session.expires_at < datetime.utcnow():
        db.delete(session)
        db.commit()
        return None

    if verify_token(token) is None:
        return None

    user = session.user
    if user is None or not user.is_active:
        return None
    return user


def logout(db: Session, token: str) -> int:
    deleted = db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
    db.commit()
    return deleted


def cleanup_expired_sessions(db: Session) -> int:
    deleted = db.query(UserSession).filter(
        UserSession.expires_at < datetime.utcnow()
    ).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info(f"Removed {deleted} expired sessions")
    return deleted


def get_request_token(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Bearer header first, then the auth cookie set at login."""
    if bearer:
        return bearer
    return request.cookies.get(SecurityConfig.SESSION['cookie_name'])


def get_current_user(
    token: Optional[str] = Depends(get_request_token),
    db: Session = Depends(get_db),
) -> User:
    if not token:
        raise UnauthorizedError("Not authenticated")

    user = validate_session(db, token)
    if user is None:
        raise UnauthorizedError("Invalid or expired session")
    return user

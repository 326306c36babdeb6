# rollout_ready/routers/auth.py
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from rollout_ready.config.security import SecurityConfig
from rollout_ready.database import get_db
from rollout_ready.models.user import User
from rollout_ready.schemas.common import MessageOut
from rollout_ready.schemas.tokens import RegisterOut, Token
from rollout_ready.schemas.user import UserLogin, UserOut, UserRegister
from rollout_ready.services.users import UserService
from rollout_ready.utils import auth as session_manager
from rollout_ready.utils.auth import get_current_user, get_request_token

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SecurityConfig.SESSION['cookie_name'],
        value=token,
        httponly=True,
        secure=SecurityConfig.SESSION['cookie_secure'],
        samesite="lax",
        max_age=SecurityConfig.SESSION['duration_days'] * 24 * 60 * 60,
        path="/",
    )


@router.post("/register", response_model=RegisterOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, response: Response, db: Session = Depends(get_db)):
    """Create a USER account and sign it in"""
    user = UserService(db).register(payload)
    token = session_manager.create_session(db, user)
    _set_session_cookie(response, token)
    return {
        "message": "Account created successfully",
        "access_token": token,
        "token_type": "bearer",
        "user": user,
    }


@router.post("/login", response_model=Token)
def login(payload: UserLogin, response: Response, db: Session = Depends(get_db)):
    user = UserService(db).authenticate(payload.username, payload.password)
    token = session_manager.create_session(db, user)
    _set_session_cookie(response, token)
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": user,
    }


@router.post("/logout", response_model=MessageOut)
def logout(
    response: Response,
    token: Optional[str] = Depends(get_request_token),
    db: Session = Depends(get_db),
):
    """End the presented session; succeeds even without one"""
    if token:
        session_manager.logout(db, token)
    response.delete_cookie(SecurityConfig.SESSION['cookie_name'], path="/")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user

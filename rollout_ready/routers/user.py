# rollout_ready/routers/user.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rollout_ready.database import get_db
from rollout_ready.models.user import User
from rollout_ready.schemas.common import MessageOut
from rollout_ready.schemas.user import (
    PasswordReset,
    PasswordResetOut,
    UserCreate,
    UserDetail,
    UserOut,
    UserUpdate,
)
from rollout_ready.services.users import UserService
from rollout_ready.utils.auth import get_current_user
from rollout_ready.utils.permissions import Action, require

router = APIRouter()


@router.get("/", response_model=List[UserOut])
def get_all_users(
    job_role_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List users; ``job_role_id`` narrows the list for the assignment picker"""
    require(current_user, Action.VIEW_USERS)
    return UserService(db).list_users(job_role_id=job_role_id)


@router.get("/{user_id}", response_model=UserDetail)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    user = UserService(db).get_user(user_id)
    if user.id != current_user.id:
        require(current_user, Action.VIEW_USERS)
    return user


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require(current_user, Action.MANAGE_USERS)
    return UserService(db).create_user(payload)


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = UserService(db)
    target = service.get_user(user_id)
    require(current_user, Action.UPDATE_PROFILE, target)
    return service.update_user(user_id, payload, current_user)


@router.delete("/{user_id}", response_model=MessageOut)
def deactivate_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Soft delete: the account is deactivated, its history stays"""
    require(current_user, Action.MANAGE_USERS)
    user = UserService(db).deactivate_user(user_id)
    return {"message": f"User {user.username} deactivated successfully"}


@router.post("/{user_id}/reset-password", response_model=PasswordResetOut)
def reset_password(
    user_id: int,
    payload: PasswordReset,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require(current_user, Action.RESET_PASSWORD)
    user, temporary = UserService(db).reset_password(user_id, payload, current_user)
    if temporary:
        return {
            "message": f"Password for {user.username} has been reset to a generated value",
            "temporary_password": temporary,
        }
    return {"message": f"Password for {user.username} has been reset"}

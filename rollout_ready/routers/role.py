# rollout_ready/routers/role.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rollout_ready.database import get_db
from rollout_ready.models.user import User
from rollout_ready.schemas.common import MessageOut
from rollout_ready.schemas.role import RoleCreate, RoleDetail, RoleOut, RoleUpdate
from rollout_ready.services.catalog import CatalogService
from rollout_ready.utils.auth import get_current_user
from rollout_ready.utils.permissions import Action, require

router = APIRouter()


@router.get("/", response_model=List[RoleOut])
def get_roles(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return CatalogService(db).list_roles()


@router.get("/{role_id}", response_model=RoleDetail)
def get_role(role_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return CatalogService(db).get_role(role_id)


@router.post("/", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(payload: RoleCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require(current_user, Action.MANAGE_CATALOG)
    return CatalogService(db).create_role(payload)


@router.put("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: int,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require(current_user, Action.MANAGE_CATALOG)
    return CatalogService(db).update_role(role_id, payload)


@router.delete("/{role_id}", response_model=MessageOut)
def delete_role(role_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Refused while the role is filled on any project; templates go with it"""
    require(current_user, Action.MANAGE_CATALOG)
    CatalogService(db).delete_role(role_id)
    return {"message": "Role deleted successfully"}

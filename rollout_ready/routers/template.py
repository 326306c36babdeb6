# rollout_ready/routers/template.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rollout_ready.database import get_db
from rollout_ready.models.user import User
from rollout_ready.schemas.common import MessageOut
from rollout_ready.schemas.template import TemplateCreate, TemplateOut, TemplateUpdate
from rollout_ready.services.catalog import CatalogService
from rollout_ready.utils.auth import get_current_user
from rollout_ready.utils.permissions import Action, require

router = APIRouter()


@router.get("/", response_model=List[TemplateOut])
def get_templates(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return CatalogService(db).list_templates()


@router.get("/{template_id}", response_model=TemplateOut)
def get_template(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return CatalogService(db).get_template(template_id)


@router.post("/", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require(current_user, Action.MANAGE_CATALOG)
    return CatalogService(db).create_template(payload)


@router.put("/{template_id}", response_model=TemplateOut)
def update_template(
    template_id: int,
    payload: TemplateUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace the template and its whole task list"""
    require(current_user, Action.MANAGE_CATALOG)
    return CatalogService(db).update_template(template_id, payload)


@router.delete("/{template_id}", response_model=MessageOut)
def delete_template(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require(current_user, Action.MANAGE_CATALOG)
    CatalogService(db).delete_template(template_id)
    return {"message": "Template deleted successfully"}

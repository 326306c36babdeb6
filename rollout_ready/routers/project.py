# rollout_ready/routers/project.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rollout_ready.database import get_db
from rollout_ready.models.user import User
from rollout_ready.schemas.common import MessageOut
from rollout_ready.schemas.project import ManualTaskCreate, ProjectCreate, ProjectCreated, ProjectOut, ProjectUpdate
from rollout_ready.schemas.task import ProjectTaskOut
from rollout_ready.services.file_storage import FileStorageService, get_file_storage
from rollout_ready.services.projects import ProjectService
from rollout_ready.services.task_lifecycle import TaskService
from rollout_ready.utils.auth import get_current_user
from rollout_ready.utils.permissions import Action, require

router = APIRouter()


@router.get("/", response_model=List[ProjectOut])
def get_projects(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ProjectService(db).list_projects()


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ProjectService(db).get_project(project_id)


@router.post("/", response_model=ProjectCreated, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a project, fill its roles and generate their checklist tasks"""
    require(current_user, Action.MANAGE_PROJECTS)
    return ProjectService(db).create_project(payload)


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    require(current_user, Action.MANAGE_PROJECTS)
    return ProjectService(db, storage).update_project(project_id, payload)


@router.delete("/{project_id}", response_model=MessageOut)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    require(current_user, Action.MANAGE_PROJECTS)
    ProjectService(db, storage).delete_project(project_id)
    return {"message": "Project deleted successfully"}


@router.get("/{project_id}/tasks", response_model=List[ProjectTaskOut])
def get_project_tasks(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return TaskService(db).list_project_tasks(project_id)


@router.post("/{project_id}/tasks", response_model=ProjectTaskOut, status_code=status.HTTP_201_CREATED)
def create_manual_task(
    project_id: int,
    payload: ManualTaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a one-off task that no template produced"""
    require(current_user, Action.MANAGE_PROJECTS)
    return TaskService(db).create_manual_task(
        project_id, payload.project_role_id, payload.description, payload.due_date
    )

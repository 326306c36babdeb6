# rollout_ready/routers/task.py
import mimetypes
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from rollout_ready.database import get_db
from rollout_ready.models.user import User
from rollout_ready.schemas.common import MessageOut
from rollout_ready.schemas.task import (
    ProjectTaskOut,
    ProjectTaskUpdate,
    TaskAttachmentOut,
    TaskDeleted,
    UserTasksOut,
)
from rollout_ready.services.file_storage import FileStorageService, get_file_storage
from rollout_ready.services.task_lifecycle import TaskService
from rollout_ready.utils.auth import get_current_user
from rollout_ready.utils.permissions import Action, require

router = APIRouter()


def _upload_mime_type(file: UploadFile) -> str:
    """Browser-declared type, falling back to the extension for generic uploads"""
    declared = (file.content_type or "").lower()
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(file.filename or "")
    return guessed or declared or "application/octet-stream"


@router.get("/tasks/user/{username}", response_model=UserTasksOut)
def get_user_tasks(username: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Dashboard: a user's tasks across projects with summary counts"""
    require(current_user, Action.VIEW_USER_TASKS, username)
    service = TaskService(db)
    user = service.get_user(username)
    return service.user_tasks(user)


@router.get("/tasks/{task_id}", response_model=ProjectTaskOut)
def get_task(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    task = TaskService(db).get_task(task_id)
    require(current_user, Action.VIEW_TASK, task)
    return task


@router.patch("/tasks/{task_id}", response_model=ProjectTaskOut)
def update_task(
    task_id: int,
    payload: ProjectTaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Partial update of status, comments, time spent or completion date"""
    service = TaskService(db)
    require(current_user, Action.UPDATE_TASK, service.get_task(task_id))
    return service.update_task(task_id, payload.model_dump(exclude_unset=True))


@router.delete("/tasks/{task_id}", response_model=TaskDeleted)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    require(current_user, Action.DELETE_TASK)
    return TaskService(db, storage).delete_task(task_id)


# File Attachment Endpoints
@router.get("/tasks/{task_id}/attachments", response_model=List[TaskAttachmentOut])
def get_task_attachments(
    task_id: int,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    service = TaskService(db, storage)
    require(current_user, Action.VIEW_TASK, service.get_task(task_id))
    return service.list_attachments(task_id)


@router.post("/tasks/{task_id}/attachments", response_model=TaskAttachmentOut, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    task_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Upload one file to a task; size and type are checked before it is stored"""
    service = TaskService(db, storage)
    require(current_user, Action.MANAGE_ATTACHMENTS, service.get_task(task_id))

    content = await file.read()
    return service.add_attachment(
        task_id,
        original_filename=file.filename,
        mime_type=_upload_mime_type(file),
        content=content,
        uploaded_by=current_user.username,
    )


@router.get("/attachments/{attachment_id}")
def download_attachment(
    attachment_id: int,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    service = TaskService(db, storage)
    attachment = service.get_attachment(attachment_id)
    require(current_user, Action.VIEW_TASK, service.get_task(attachment.task_id))

    attachment, file_path = service.get_attachment_file(attachment_id)
    return FileResponse(
        path=file_path,
        filename=attachment.original_filename,
        media_type=attachment.mime_type,
    )


@router.delete("/attachments/{attachment_id}", response_model=MessageOut)
def delete_attachment(
    attachment_id: int,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    service = TaskService(db, storage)
    attachment = service.get_attachment(attachment_id)
    require(current_user, Action.MANAGE_ATTACHMENTS, service.get_task(attachment.task_id))

    service.delete_attachment(attachment_id)
    return {"message": "Attachment deleted successfully"}

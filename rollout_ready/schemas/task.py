from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List

from rollout_ready.models.task import TaskStatus
from .common import RoleBasic, UserBasic, ProjectBasic


class ProjectTaskUpdate(BaseModel):
    status: Optional[TaskStatus] = None
    comments: Optional[str] = None
    time_spent_minutes: Optional[int] = Field(default=None, ge=0)
    completed_at: Optional[datetime] = None


# Task Attachment Schemas
class TaskAttachmentOut(BaseModel):
    id: int
    task_id: int
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    uploaded_by: str
    created_at: datetime

    model_config = {
        "from_attributes": True
    }


class TemplateTaskFlags(BaseModel):
    id: int
    description: str
    is_recurring: bool
    is_critical: bool

    model_config = {
        "from_attributes": True
    }


class TaskAssignment(BaseModel):
    id: int
    role: RoleBasic
    user: UserBasic

    model_config = {
        "from_attributes": True
    }


class ProjectTaskOut(BaseModel):
    id: int
    project_id: int
    template_task_id: Optional[int] = None
    project_role_id: int
    description: str
    due_date: date
    status: TaskStatus
    comments: Optional[str] = None
    time_spent_minutes: int = 0
    is_critical: bool = False
    is_recurring: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Related objects
    project: ProjectBasic
    project_role: TaskAssignment
    template_task: Optional[TemplateTaskFlags] = None
    attachments: List[TaskAttachmentOut] = []

    model_config = {
        "from_attributes": True
    }


class DeletedTask(BaseModel):
    id: int
    description: str
    project: str
    assigned_to: str


class TaskDeleted(BaseModel):
    message: str
    deleted_task: DeletedTask


class TaskSummary(BaseModel):
    total_tasks: int
    todo_tasks: int
    in_progress_tasks: int
    done_tasks: int
    overdue_tasks: int
    critical_tasks: int
    active_projects: int


class ProjectTaskGroup(BaseModel):
    project: ProjectBasic
    roles: List[RoleBasic]
    tasks: List[ProjectTaskOut]


class UserTasksOut(BaseModel):
    summary: TaskSummary
    project_tasks: List[ProjectTaskGroup]
    all_tasks: List[ProjectTaskOut]

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict
from datetime import date, datetime

from .common import RoleBasic, UserBasic, clean_text, require_text


class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = None
    start_date: date
    # role id -> user id; a null user leaves the role unfilled
    role_assignments: Dict[int, Optional[int]] = {}

    @field_validator('name')
    @classmethod
    def name_required(cls, v):
        return require_text(v, "Project name")

    @field_validator('description')
    @classmethod
    def trim_description(cls, v):
        return clean_text(v)


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    # Only roles present here are touched; a null user clears the role
    role_assignments: Optional[Dict[int, Optional[int]]] = None

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if v is None:
            return v
        return require_text(v, "Project name")

    @field_validator('description')
    @classmethod
    def trim_description(cls, v):
        return clean_text(v)


class ProjectRoleOut(BaseModel):
    id: int
    role_id: int
    user_id: int
    role: RoleBasic
    user: UserBasic

    model_config = {
        "from_attributes": True
    }


class ProjectOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    start_date: date
    created_at: datetime
    updated_at: Optional[datetime] = None
    project_roles: List[ProjectRoleOut] = []
    task_count: int = 0

    model_config = {
        "from_attributes": True
    }


class ProjectCreated(BaseModel):
    project: ProjectOut
    project_roles: int
    project_tasks: int


class ManualTaskCreate(BaseModel):
    project_role_id: int
    description: str
    due_date: date

    @field_validator('description')
    @classmethod
    def description_required(cls, v):
        return require_text(v, "Task description")

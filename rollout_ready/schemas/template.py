from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime

from .common import RoleBasic, clean_text, require_text


class TemplateTaskIn(BaseModel):
    description: str
    offset_days: int = 0
    is_recurring: bool = False
    is_critical: bool = False

    @field_validator('description')
    @classmethod
    def description_required(cls, v):
        return require_text(v, "Task description")


class TemplateCreate(BaseModel):
    name: str
    description: Optional[str] = None
    role_id: int
    auto_assign: bool = False
    tasks: List[TemplateTaskIn] = []

    @field_validator('name')
    @classmethod
    def name_required(cls, v):
        return require_text(v, "Template name")

    @field_validator('description')
    @classmethod
    def trim_description(cls, v):
        return clean_text(v)


class TemplateUpdate(TemplateCreate):
    """Edits replace the whole task list; there is no partial patching."""
    pass


class TemplateTaskOut(BaseModel):
    id: int
    template_id: int
    description: str
    offset_days: int
    is_recurring: bool
    is_critical: bool

    model_config = {
        "from_attributes": True
    }


class TemplateOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    role_id: int
    auto_assign: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    role: RoleBasic
    template_tasks: List[TemplateTaskOut] = []
    task_count: int = 0

    model_config = {
        "from_attributes": True
    }

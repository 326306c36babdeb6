from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime

from .common import clean_text, require_text


class RoleCreate(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def name_required(cls, v):
        return require_text(v, "Role name")

    @field_validator('description')
    @classmethod
    def trim_description(cls, v):
        return clean_text(v)


class RoleUpdate(RoleCreate):
    pass


class TemplateSummary(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    auto_assign: bool
    task_count: int = 0

    model_config = {
        "from_attributes": True
    }


class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    template_count: int = 0
    project_role_count: int = 0

    model_config = {
        "from_attributes": True
    }


class RoleDetail(RoleOut):
    templates: List[TemplateSummary] = []

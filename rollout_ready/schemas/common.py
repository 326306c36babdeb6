from pydantic import BaseModel
from typing import Optional
from datetime import date

from rollout_ready.models.user import SystemRole


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trim a free-text field; blank becomes None"""
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_text(value: str, field_name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{field_name} is required")
    return value


class RoleBasic(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = {
        "from_attributes": True
    }


class UserBasic(BaseModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    system_role: SystemRole

    model_config = {
        "from_attributes": True
    }


class ProjectBasic(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    start_date: date

    model_config = {
        "from_attributes": True
    }


class MessageOut(BaseModel):
    message: str

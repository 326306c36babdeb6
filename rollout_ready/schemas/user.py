from pydantic import BaseModel, EmailStr, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from rollout_ready.models.user import SystemRole
from .common import RoleBasic, ProjectBasic, clean_text, require_text


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    system_role: SystemRole = SystemRole.USER
    job_role_id: Optional[int] = None

    @field_validator('username')
    @classmethod
    def username_required(cls, v):
        return require_text(v, "Username").lower()

    @field_validator('first_name', 'last_name')
    @classmethod
    def trim_names(cls, v):
        return clean_text(v)


class UserRegister(BaseModel):
    first_name: str
    last_name: str
    username: str
    email: EmailStr
    password: str
    confirm_password: str

    @field_validator('first_name', 'last_name', 'username')
    @classmethod
    def fields_required(cls, v, info):
        return require_text(v, info.field_name.replace('_', ' ').capitalize())

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError('Passwords do not match')
        return self


class UserLogin(BaseModel):
    username: str  # username or email
    password: str


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    system_role: Optional[SystemRole] = None
    job_role_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator('username')
    @classmethod
    def username_not_blank(cls, v):
        if v is None:
            return v
        return require_text(v, "Username").lower()

    @field_validator('first_name', 'last_name')
    @classmethod
    def trim_names(cls, v):
        return clean_text(v)


class PasswordReset(BaseModel):
    new_password: Optional[str] = None
    generate_random: bool = False


class PasswordResetOut(BaseModel):
    message: str
    temporary_password: Optional[str] = None


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    system_role: SystemRole
    job_role_id: Optional[int] = None
    job_role: Optional[RoleBasic] = None
    is_active: bool
    created_at: datetime
    project_role_count: int = 0

    model_config = {
        "from_attributes": True
    }


class UserAssignment(BaseModel):
    id: int
    project: ProjectBasic
    role: RoleBasic

    model_config = {
        "from_attributes": True
    }


class UserDetail(UserOut):
    project_roles: List[UserAssignment] = []

from .common import RoleBasic, UserBasic, ProjectBasic, MessageOut
from .user import UserCreate, UserRegister, UserLogin, UserUpdate, UserOut, UserDetail, PasswordReset, PasswordResetOut
from .tokens import Token, RegisterOut
from .role import RoleCreate, RoleUpdate, RoleOut, RoleDetail, TemplateSummary
from .template import TemplateCreate, TemplateUpdate, TemplateTaskIn, TemplateTaskOut, TemplateOut
from .project import ProjectCreate, ProjectUpdate, ProjectOut, ProjectRoleOut, ProjectCreated, ManualTaskCreate
from .task import ProjectTaskUpdate, ProjectTaskOut, TaskAttachmentOut, TaskDeleted, TaskSummary, ProjectTaskGroup, UserTasksOut

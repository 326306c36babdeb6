from .user import User, UserSession, SystemRole
from .role import Role, Template, TemplateTask
from .project import Project, ProjectRole
from .task import ProjectTask, TaskAttachment, TaskStatus

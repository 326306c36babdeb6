# rollout_ready/utils/permissions.py
"""Single authorization policy consumed by every router and service.

``authorize(principal, action, resource)`` answers allow/deny; ``require``
raises ``ForbiddenError`` on deny. Resources are what an action
targets (a ProjectTask for task actions, a User or a username for self-service
actions).
"""
import enum
from typing import Any, Optional

from rollout_ready.exceptions import ForbiddenError
from rollout_ready.models.user import SystemRole, User
from rollout_ready.models.task import ProjectTask


class Action(str, enum.Enum):
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"
    UPDATE_PROFILE = "update_profile"
    RESET_PASSWORD = "reset_password"
    MANAGE_CATALOG = "manage_catalog"
    MANAGE_PROJECTS = "manage_projects"
    VIEW_TASK = "view_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    MANAGE_ATTACHMENTS = "manage_attachments"
    VIEW_USER_TASKS = "view_user_tasks"


STAFF_ROLES = {SystemRole.ADMIN, SystemRole.MANAGER}

# Actions decided purely on the principal's system role
ROLE_RULES = {
    Action.VIEW_USERS: STAFF_ROLES,
    Action.MANAGE_USERS: {SystemRole.ADMIN},
    Action.RESET_PASSWORD: {SystemRole.ADMIN},
    Action.MANAGE_CATALOG: STAFF_ROLES,
    Action.MANAGE_PROJECTS: STAFF_ROLES,
    Action.DELETE_TASK: STAFF_ROLES,
}

# Actions open to the resource owner, plus the listed system roles
OWNER_ACTIONS = {
    Action.UPDATE_PROFILE: {SystemRole.ADMIN},
    Action.VIEW_TASK: STAFF_ROLES,
    Action.UPDATE_TASK: STAFF_ROLES,
    Action.MANAGE_ATTACHMENTS: STAFF_ROLES,
    Action.VIEW_USER_TASKS: STAFF_ROLES,
}


def _is_owner(principal: User, resource: Any) -> bool:
    if isinstance(resource, ProjectTask):
        return resource.project_role is not None and resource.project_role.user_id == principal.id
    if isinstance(resource, User):
        return resource.id == principal.id
    if isinstance(resource, str):
        return resource.strip().lower() == principal.username
    return False


def authorize(principal: Optional[User], action: Action, resource: Any = None) -> bool:
    if principal is None or not principal.is_active:
        return False

    if action in ROLE_RULES:
        return principal.system_role in ROLE_RULES[action]

    if action in OWNER_ACTIONS:
        if principal.system_role in OWNER_ACTIONS[action]:
            return True
        return _is_owner(principal, resource)

    return False


def require(principal: Optional[User], action: Action, resource: Any = None) -> None:
    if not authorize(principal, action, resource):
        raise ForbiddenError(f"You don't have permission to {action.value.replace('_', ' ')}")

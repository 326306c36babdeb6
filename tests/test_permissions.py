import pytest

from rollout_ready.exceptions import ForbiddenError
from rollout_ready.models import ProjectRole, ProjectTask, User
from rollout_ready.models.user import SystemRole
from rollout_ready.utils.permissions import Action, authorize, require


def _user(user_id, system_role=SystemRole.USER, is_active=True):
    return User(id=user_id, username=f"user{user_id}", system_role=system_role, is_active=is_active)


def _task_for(user):
    return ProjectTask(id=1, project_role=ProjectRole(id=1, user_id=user.id))


ADMIN = _user(1, SystemRole.ADMIN)
MANAGER = _user(2, SystemRole.MANAGER)
OWNER = _user(3)
OTHER = _user(4)


@pytest.mark.parametrize("principal, allowed", [
    (ADMIN, True),
    (MANAGER, True),
    (OWNER, True),
    (OTHER, False),
])
@pytest.mark.parametrize("action", [Action.VIEW_TASK, Action.UPDATE_TASK, Action.MANAGE_ATTACHMENTS])
def test_task_actions_open_to_assignee_and_staff(principal, allowed, action):
    assert authorize(principal, action, _task_for(OWNER)) is allowed


@pytest.mark.parametrize("action, roles", [
    (Action.VIEW_USERS, {SystemRole.ADMIN, SystemRole.MANAGER}),
    (Action.MANAGE_CATALOG, {SystemRole.ADMIN, SystemRole.MANAGER}),
    (Action.MANAGE_PROJECTS, {SystemRole.ADMIN, SystemRole.MANAGER}),
    (Action.DELETE_TASK, {SystemRole.ADMIN, SystemRole.MANAGER}),
    (Action.MANAGE_USERS, {SystemRole.ADMIN}),
    (Action.RESET_PASSWORD, {SystemRole.ADMIN}),
])
def test_role_only_actions(action, roles):
    for principal in (ADMIN, MANAGER, OWNER):
        assert authorize(principal, action) is (principal.system_role in roles)


def test_task_deletion_ignores_ownership():
    assert authorize(OWNER, Action.DELETE_TASK, _task_for(OWNER)) is False


def test_profile_updates():
    assert authorize(OWNER, Action.UPDATE_PROFILE, OWNER)
    assert not authorize(OWNER, Action.UPDATE_PROFILE, OTHER)
    assert not authorize(MANAGER, Action.UPDATE_PROFILE, OWNER)
    assert authorize(ADMIN, Action.UPDATE_PROFILE, OWNER)


def test_user_dashboard_visibility():
    assert authorize(OWNER, Action.VIEW_USER_TASKS, OWNER)
    assert not authorize(OTHER, Action.VIEW_USER_TASKS, OWNER)
    assert authorize(MANAGER, Action.VIEW_USER_TASKS, OWNER)


def test_user_dashboard_by_username():
    assert authorize(OWNER, Action.VIEW_USER_TASKS, " User3 ")
    assert not authorize(OWNER, Action.VIEW_USER_TASKS, "user4")
    assert not authorize(OWNER, Action.VIEW_USER_TASKS, "nobody")
    assert authorize(MANAGER, Action.VIEW_USER_TASKS, "nobody")


def test_unassigned_task_is_staff_only():
    orphan = ProjectTask(id=2)
    assert not authorize(OWNER, Action.VIEW_TASK, orphan)
    assert authorize(MANAGER, Action.VIEW_TASK, orphan)


def test_inactive_or_missing_principal_is_denied():
    inactive_admin = _user(9, SystemRole.ADMIN, is_active=False)
    assert not authorize(inactive_admin, Action.VIEW_USERS)
    assert not authorize(None, Action.VIEW_TASK, _task_for(OWNER))


def test_require_raises_forbidden():
    require(ADMIN, Action.MANAGE_USERS)

    with pytest.raises(ForbiddenError) as exc:
        require(OTHER, Action.UPDATE_TASK, _task_for(OWNER))
    assert exc.value.message == "You don't have permission to update task"

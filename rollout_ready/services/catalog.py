# rollout_ready/services/catalog.py
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from rollout_ready.exceptions import ConflictError, NotFoundError, ValidationError
from rollout_ready.models.project import ProjectRole
from rollout_ready.models.role import Role, Template, TemplateTask
from rollout_ready.models.task import ProjectTask
from rollout_ready.schemas.role import RoleCreate, RoleUpdate
from rollout_ready.schemas.template import TemplateCreate, TemplateUpdate, TemplateTaskIn

logger = logging.getLogger(__name__)


class CatalogService:
    """Roles, their templates and template tasks, with referential guards.

    - a role name is unique
    - a role filled on any project cannot be deleted
    - a template whose tasks have been materialized cannot be deleted
    - a template edit replaces its whole task list
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, conflict_message: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(conflict_message)

    # Roles

    def list_roles(self) -> List[Role]:
        return (
            self.db.query(Role)
            .options(selectinload(Role.templates), selectinload(Role.project_roles))
            .order_by(Role.name)
            .all()
        )

    def get_role(self, role_id: int) -> Role:
        role = (
            self.db.query(Role)
            .options(selectinload(Role.templates).selectinload(Template.template_tasks))
            .filter(Role.id == role_id)
            .first()
        )
        if not role:
            raise NotFoundError("Role not found")
        return role

    def _ensure_role_name_free(self, name: str, exclude_id: int = None) -> None:
        query = self.db.query(Role.id).filter(Role.name == name)
        if exclude_id is not None:
            query = query.filter(Role.id != exclude_id)
        if query.first():
            raise ConflictError("A role with this name already exists")

    def create_role(self, payload: RoleCreate) -> Role:
        self._ensure_role_name_free(payload.name)

        role = Role(name=payload.name, description=payload.description)
        self.db.add(role)
        self._commit("A role with this name already exists")
        logger.info(f"Role created: {role.name} (id={role.id})")
        return self.get_role(role.id)

    def update_role(self, role_id: int, payload: RoleUpdate) -> Role:
        role = self.get_role(role_id)
        self._ensure_role_name_free(payload.name, exclude_id=role_id)

        role.name = payload.name
        role.description = payload.description
        self._commit("A role with this name already exists")
        return self.get_role(role_id)

    def delete_role(self, role_id: int) -> None:
        role = self.get_role(role_id)

        in_use = self.db.query(ProjectRole.id).filter(ProjectRole.role_id == role_id).count()
        if in_use > 0:
            raise ConflictError(
                f"Cannot delete role that is assigned to {in_use} project(s). "
                "Remove it from all projects first."
            )

        template_ids = [t.id for t in role.templates]
        self._detach_generated_tasks(template_ids)

        self.db.delete(role)
        self._commit("Role is still referenced and cannot be deleted")
        logger.info(f"Role {role_id} deleted with {len(template_ids)} templates")

    # Templates

    def list_templates(self) -> List[Template]:
        return (
            self.db.query(Template)
            .join(Template.role)
            .options(joinedload(Template.role), selectinload(Template.template_tasks))
            .order_by(Role.name, Template.name)
            .all()
        )

    def get_template(self, template_id: int) -> Template:
        template = (
            self.db.query(Template)
            .options(joinedload(Template.role), selectinload(Template.template_tasks))
            .filter(Template.id == template_id)
            .first()
        )
        if not template:
            raise NotFoundError("Template not found")
        return template

    def _require_role(self, role_id: int) -> Role:
        role = self.db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise ValidationError("Selected role does not exist")
        return role

    @staticmethod
    def _build_tasks(tasks: List[TemplateTaskIn]) -> List[TemplateTask]:
        return [
            TemplateTask(
                description=task.description,
                offset_days=task.offset_days,
                is_recurring=task.is_recurring,
                is_critical=task.is_critical,
            )
            for task in tasks
        ]

    def create_template(self, payload: TemplateCreate) -> Template:
        self._require_role(payload.role_id)

        template = Template(
            name=payload.name,
            description=payload.description,
            role_id=payload.role_id,
            auto_assign=payload.auto_assign,
            template_tasks=self._build_tasks(payload.tasks),
        )
        self.db.add(template)
        self._commit("Template could not be saved")
        logger.info(f"Template created: {template.name} with {len(payload.tasks)} tasks")
        return self.get_template(template.id)

    def update_template(self, template_id: int, payload: TemplateUpdate) -> Template:
        """Replace the template's fields and its entire task list in one commit."""
        template = self.get_template(template_id)
        self._require_role(payload.role_id)

        old_ids = [t.id for t in template.template_tasks]
        self._detach_generated_tasks_by_task_ids(old_ids)

        template.name = payload.name
        template.description = payload.description
        template.role_id = payload.role_id
        template.auto_assign = payload.auto_assign
        template.template_tasks = self._build_tasks(payload.tasks)

        self._commit("Template could not be saved")
        logger.info(f"Template {template_id} replaced: {len(old_ids)} -> {len(payload.tasks)} tasks")
        return self.get_template(template_id)

    def delete_template(self, template_id: int) -> None:
        template = self.get_template(template_id)

        in_use = (
            self.db.query(ProjectTask.id)
            .join(TemplateTask, ProjectTask.template_task_id == TemplateTask.id)
            .filter(TemplateTask.template_id == template_id)
            .count()
        )
        if in_use > 0:
            raise ConflictError(
                f"Cannot delete template: {in_use} project task(s) were generated from it"
            )

        self.db.delete(template)
        self._commit("Template is still referenced and cannot be deleted")
        logger.info(f"Template {template_id} deleted")

    # Generated tasks keep their description snapshot when the blueprint goes away

    def _detach_generated_tasks(self, template_ids: List[int]) -> None:
        if not template_ids:
            return
        task_ids = [
            row.id for row in
            self.db.query(TemplateTask.id).filter(TemplateTask.template_id.in_(template_ids)).all()
        ]
        self._detach_generated_tasks_by_task_ids(task_ids)

    def _detach_generated_tasks_by_task_ids(self, template_task_ids: List[int]) -> None:
        if not template_task_ids:
            return
        self.db.query(ProjectTask).filter(
            ProjectTask.template_task_id.in_(template_task_ids)
        ).update({ProjectTask.template_task_id: None}, synchronize_session=False)

# rollout_ready/services/task_generator.py
"""Materialize template tasks into project tasks when a role is filled.

For every auto-assign template owned by an assignment's role, each template
task becomes one ProjectTask due ``start_date + offset_days`` calendar days.
The unique key (project, template task, project role) lives in the database;
an insert that hits it is treated as "already generated" and skipped, so
re-running generation never duplicates work, even under concurrent requests.

The generator only flushes. Committing (or rolling back the whole batch) is
the caller's job, which keeps a project save and its generated tasks in one
transaction.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Union

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, selectinload

from rollout_ready.models.project import ProjectRole
from rollout_ready.models.role import Template, TemplateTask
from rollout_ready.models.task import ProjectTask, TaskStatus

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO NOTHING
_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

_GENERATION_KEY = ["project_id", "template_task_id", "project_role_id"]


def compute_due_date(start_date: Union[date, datetime], offset_days: int) -> date:
    """Calendar-day offset from the project start; no business-day skipping."""
    if isinstance(start_date, datetime):
        start_date = start_date.date()
    return start_date + timedelta(days=offset_days)


class TaskGenerator:
    def __init__(self, db: Session):
        self.db = db

    def auto_assign_templates(self, role_ids: Iterable[int]) -> List[Template]:
        role_ids = set(role_ids)
        if not role_ids:
            return []
        return (
            self.db.query(Template)
            .options(selectinload(Template.template_tasks))
            .filter(Template.auto_assign.is_(True), Template.role_id.in_(role_ids))
            .order_by(Template.id)
            .all()
        )

    def generate_tasks(
        self,
        project_id: int,
        project_start_date: Union[date, datetime],
        role_assignments: Iterable[ProjectRole],
    ) -> int:
        """
        Create the missing tasks for ``role_assignments``

        Args:
            project_id: Project the assignments belong to
            project_start_date: Anchor date for due-date offsets
            role_assignments: Newly created or re-confirmed ProjectRole rows

        Returns:
            Number of tasks created by this call
        """
        assignments = [a for a in role_assignments if a is not None]
        if not assignments:
            return 0

        # Assignment rows must exist before tasks can reference them
        self.db.flush()

        templates = self.auto_assign_templates(a.role_id for a in assignments)

        created = 0
        for assignment in assignments:
            for template in templates:
                if template.role_id != assignment.role_id:
                    continue
                for template_task in template.template_tasks:
                    if self._create_task(project_id, project_start_date, assignment, template_task):
                        created += 1

        logger.info(
            f"Generated {created} tasks for project {project_id} "
            f"from {len(templates)} auto-assign templates across {len(assignments)} role assignments"
        )
        return created

    def _create_task(
        self,
        project_id: int,
        project_start_date: Union[date, datetime],
        assignment: ProjectRole,
        template_task: TemplateTask,
    ) -> bool:
        values = {
            "project_id": project_id,
            "template_task_id": template_task.id,
            "project_role_id": assignment.id,
            "description": template_task.description,
            "due_date": compute_due_date(project_start_date, template_task.offset_days),
            "status": TaskStatus.TODO,
            "time_spent_minutes": 0,
        }

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is not None:
            stmt = insert(ProjectTask).values(**values).on_conflict_do_nothing(index_elements=_GENERATION_KEY)
            result = self.db.execute(stmt)
            return result.rowcount == 1

        # Other backends: existence check, the unique constraint still backs it
        exists = self.db.query(ProjectTask.id).filter(
            ProjectTask.project_id == project_id,
            ProjectTask.template_task_id == template_task.id,
            ProjectTask.project_role_id == assignment.id,
        ).first()
        if exists:
            return False
        self.db.add(ProjectTask(**values))
        self.db.flush()
        return True

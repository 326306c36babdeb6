# rollout_ready/services/projects.py
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from rollout_ready.exceptions import ConflictError, NotFoundError, ValidationError
from rollout_ready.models.project import Project, ProjectRole
from rollout_ready.models.role import Role
from rollout_ready.models.user import User
from rollout_ready.schemas.project import ProjectCreate, ProjectUpdate
from rollout_ready.services.file_storage import FileStorageService, file_storage as default_storage
from rollout_ready.services.task_generator import TaskGenerator

logger = logging.getLogger(__name__)


class ProjectService:
    """Projects and their role -> user assignment map.

    A save (project fields, assignment changes and the tasks generated for
    them) is one transaction: any failure rolls the whole request back.
    """

    def __init__(self, db: Session, storage: Optional[FileStorageService] = None):
        self.db = db
        self.storage = storage or default_storage
        self.generator = TaskGenerator(db)

    def _project_query(self):
        return self.db.query(Project).options(
            selectinload(Project.project_roles).selectinload(ProjectRole.role),
            selectinload(Project.project_roles).selectinload(ProjectRole.user),
            selectinload(Project.project_tasks),
        )

    def list_projects(self) -> List[Project]:
        return self._project_query().order_by(Project.start_date.desc(), Project.id.desc()).all()

    def get_project(self, project_id: int) -> Project:
        project = self._project_query().filter(Project.id == project_id).first()
        if not project:
            raise NotFoundError("Project not found")
        return project

    def _validate_assignments(self, assignments: Dict[int, Optional[int]]) -> None:
        """Every referenced role and user must exist; checked before any write."""
        role_ids = set(assignments)
        if role_ids:
            found = {r.id for r in self.db.query(Role.id).filter(Role.id.in_(role_ids)).all()}
            missing = sorted(role_ids - found)
            if missing:
                raise ValidationError(f"Role with ID {missing[0]} not found")

        user_ids = {u for u in assignments.values() if u is not None}
        if user_ids:
            found = {u.id for u in self.db.query(User.id).filter(User.id.in_(user_ids)).all()}
            missing = sorted(user_ids - found)
            if missing:
                raise ValidationError(f"User with ID {missing[0]} not found")

    def _stored_files(self, tasks) -> List[Tuple[int, str]]:
        return [(a.task_id, a.filename) for task in tasks for a in task.attachments]

    def _remove_files(self, stored: List[Tuple[int, str]]) -> None:
        for task_id, filename in stored:
            self.storage.delete_file(task_id, filename)

    @contextmanager
    def _transaction(self):
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Project save rejected by a constraint: {e.orig}")
            raise ConflictError("Project could not be saved: conflicting role assignment")
        except Exception:
            self.db.rollback()
            raise

    def create_project(self, payload: ProjectCreate) -> dict:
        """
        Create a project, its assignments and their generated tasks

        Returns:
            ``{"project", "project_roles", "project_tasks"}`` with the two counts
        """
        self._validate_assignments(payload.role_assignments)

        with self._transaction():
            project = Project(
                name=payload.name,
                description=payload.description,
                start_date=payload.start_date,
            )
            self.db.add(project)
            self.db.flush()

            assignments = []
            for role_id, user_id in sorted(payload.role_assignments.items()):
                if user_id is None:
                    continue
                assignment = ProjectRole(project_id=project.id, role_id=role_id, user_id=user_id)
                self.db.add(assignment)
                assignments.append(assignment)

            created = self.generator.generate_tasks(project.id, project.start_date, assignments)

        logger.info(
            f"Project created: {payload.name} (id={project.id}) "
            f"with {len(assignments)} role assignments and {created} tasks"
        )
        return {
            "project": self.get_project(project.id),
            "project_roles": len(assignments),
            "project_tasks": created,
        }

    def update_project(self, project_id: int, payload: ProjectUpdate) -> Project:
        """
        Partial update. For assignments, only roles named in the mapping change:
        a user id fills or reassigns the role (tasks stay attached to the
        assignment), null removes the assignment together with its tasks.
        """
        project = self.get_project(project_id)
        changes = payload.model_dump(exclude_unset=True)
        role_assignments = changes.pop("role_assignments", None)

        if role_assignments:
            self._validate_assignments(role_assignments)

        if "name" in changes and changes["name"] is None:
            raise ValidationError("Project name is required")
        if "start_date" in changes and changes["start_date"] is None:
            raise ValidationError("Start date is required")

        removed_files = []
        with self._transaction():
            for field, value in changes.items():
                setattr(project, field, value)

            created = 0
            if role_assignments:
                current = {pr.role_id: pr for pr in project.project_roles}
                confirmed = []
                for role_id, user_id in sorted(role_assignments.items()):
                    existing = current.get(role_id)
                    if user_id is not None:
                        if existing:
                            existing.user_id = user_id
                        else:
                            existing = ProjectRole(project_id=project.id, role_id=role_id, user_id=user_id)
                            self.db.add(existing)
                        confirmed.append(existing)
                    elif existing:
                        removed_files.extend(self._stored_files(existing.project_tasks))
                        for task in list(existing.project_tasks):
                            if task in project.project_tasks:
                                project.project_tasks.remove(task)
                        project.project_roles.remove(existing)
                        self.db.delete(existing)

                created = self.generator.generate_tasks(project.id, project.start_date, confirmed)

        self._remove_files(removed_files)

        logger.info(f"Project {project_id} updated; {created} new tasks generated")
        return self.get_project(project_id)

    def delete_project(self, project_id: int) -> None:
        project = self.get_project(project_id)
        stored = self._stored_files(project.project_tasks)

        self.db.delete(project)
        self.db.commit()
        self._remove_files(stored)
        logger.info(f"Project {project_id} deleted with {len(stored)} stored files")


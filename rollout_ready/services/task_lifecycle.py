# rollout_ready/services/task_lifecycle.py
import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from rollout_ready.exceptions import NotFoundError, ValidationError
from rollout_ready.models.project import Project, ProjectRole
from rollout_ready.models.task import ProjectTask, TaskAttachment, TaskStatus
from rollout_ready.models.user import User
from rollout_ready.services.file_storage import FileStorageService, file_storage as default_storage

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("status", "comments", "time_spent_minutes", "completed_at")


def parse_status(value: Any) -> TaskStatus:
    """Coerce ``value`` to a TaskStatus or fail with a ValidationError."""
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValidationError("Invalid status. Must be TODO, IN_PROGRESS, or DONE")


class TaskService:
    """State changes and queries for individual project tasks.

    Every mutating method touches only the task or attachment it is given and
    commits before returning. Stored attachment bytes go through
    ``FileStorageService``; the metadata row is the source of truth.
    """

    def __init__(self, db: Session, storage: Optional[FileStorageService] = None):
        self.db = db
        self.storage = storage or default_storage

    def _task_query(self):
        return self.db.query(ProjectTask).options(
            joinedload(ProjectTask.project),
            joinedload(ProjectTask.project_role).joinedload(ProjectRole.role),
            joinedload(ProjectTask.project_role).joinedload(ProjectRole.user),
            joinedload(ProjectTask.template_task),
        )

    def get_task(self, task_id: int) -> ProjectTask:
        task = self._task_query().filter(ProjectTask.id == task_id).first()
        if not task:
            raise NotFoundError("Task not found")
        return task

    def list_project_tasks(self, project_id: int) -> List[ProjectTask]:
        if not self.db.query(Project.id).filter(Project.id == project_id).first():
            raise NotFoundError("Project not found")
        return (
            self._task_query()
            .filter(ProjectTask.project_id == project_id)
            .order_by(ProjectTask.due_date, ProjectTask.id)
            .all()
        )

    def create_manual_task(
        self, project_id: int, project_role_id: int, description: str, due_date: date
    ) -> ProjectTask:
        """Add a task that no template produced to one of the project's assignments."""
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise NotFoundError("Project not found")

        assignment = self.db.query(ProjectRole).filter(
            ProjectRole.id == project_role_id,
            ProjectRole.project_id == project_id,
        ).first()
        if not assignment:
            raise ValidationError("Role assignment does not belong to this project")

        description = (description or "").strip()
        if not description:
            raise ValidationError("Description is required")

        task = ProjectTask(
            project_id=project_id,
            project_role_id=assignment.id,
            template_task_id=None,
            description=description,
            due_date=due_date,
            status=TaskStatus.TODO,
        )
        self.db.add(task)
        self.db.commit()
        logger.info(f"Manual task {task.id} created on project {project_id}")
        return self.get_task(task.id)

    def update_task(self, task_id: int, changes: Dict[str, Any]) -> ProjectTask:
        """
        Partial update: only keys present in ``changes`` are applied

        A move to DONE stamps ``completed_at`` and a move away from DONE
        clears it, unless the caller passes ``completed_at`` explicitly.

        Raises:
            NotFoundError: unknown task
            ValidationError: bad status or negative time
        """
        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

        # Validate everything before the row is touched
        new_status = None
        if changes.get("status") is not None:
            new_status = parse_status(changes["status"])

        if "time_spent_minutes" in changes:
            minutes = changes["time_spent_minutes"]
            if minutes is None or minutes < 0:
                raise ValidationError("Time spent must be zero or more minutes")

        task = self.get_task(task_id)

        if new_status is not None:
            previous = task.status
            task.status = new_status
            if "completed_at" not in changes:
                if new_status == TaskStatus.DONE and previous != TaskStatus.DONE:
                    task.completed_at = datetime.utcnow()
                elif new_status != TaskStatus.DONE:
                    task.completed_at = None

        if "comments" in changes:
            comments = (changes["comments"] or "").strip()
            task.comments = comments or None

        if "time_spent_minutes" in changes:
            task.time_spent_minutes = changes["time_spent_minutes"]

        if "completed_at" in changes:
            task.completed_at = changes["completed_at"]

        task.updated_at = datetime.utcnow()
        self.db.commit()
        logger.info(f"Task {task_id} updated: {sorted(changes)}")
        return self.get_task(task_id)

    def delete_task(self, task_id: int) -> Dict[str, Any]:
        task = self.get_task(task_id)

        assignee = task.project_role.user if task.project_role else None
        summary = {
            "id": task.id,
            "description": task.description,
            "project": task.project.name,
            "assigned_to": assignee.full_name if assignee else "",
        }
        stored = [(a.task_id, a.filename) for a in task.attachments]

        self.db.delete(task)
        self.db.commit()

        for owner_id, filename in stored:
            self.storage.delete_file(owner_id, filename)

        logger.info(f"Task {task_id} deleted along with {len(stored)} attachments")
        return {"message": "Task deleted successfully", "deleted_task": summary}

    # Attachments

    def list_attachments(self, task_id: int) -> List[TaskAttachment]:
        self.get_task(task_id)
        return (
            self.db.query(TaskAttachment)
            .filter(TaskAttachment.task_id == task_id)
            .order_by(TaskAttachment.created_at.desc(), TaskAttachment.id.desc())
            .all()
        )

    def get_attachment(self, attachment_id: int) -> TaskAttachment:
        attachment = self.db.query(TaskAttachment).filter(TaskAttachment.id == attachment_id).first()
        if not attachment:
            raise NotFoundError("Attachment not found")
        return attachment

    def add_attachment(
        self,
        task_id: int,
        original_filename: str,
        mime_type: str,
        content: bytes,
        uploaded_by: str,
    ) -> TaskAttachment:
        """
        Validate, store and record one uploaded file

        Nothing reaches the disk unless validation passes. If the metadata
        commit fails the stored file is removed again.
        """
        self.get_task(task_id)
        self.storage.validate_file(original_filename, mime_type, len(content))

        stored_name = self.storage.save_bytes(task_id, original_filename, content)
        attachment = TaskAttachment(
            task_id=task_id,
            filename=stored_name,
            original_filename=original_filename,
            file_size=len(content),
            mime_type=mime_type,
            uploaded_by=uploaded_by,
        )
        try:
            self.db.add(attachment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.storage.delete_file(task_id, stored_name)
            raise

        self.db.refresh(attachment)
        logger.info(f"Attachment {attachment.id} ({original_filename}) added to task {task_id} by {uploaded_by}")
        return attachment

    def get_attachment_file(self, attachment_id: int) -> Tuple[TaskAttachment, str]:
        """Return the attachment and the path of its bytes; 404 if either is gone."""
        attachment = self.get_attachment(attachment_id)
        path = self.storage.get_file_path(attachment.task_id, attachment.filename)
        if not path:
            raise NotFoundError("File not found")
        return attachment, path

    def delete_attachment(self, attachment_id: int) -> None:
        attachment = self.get_attachment(attachment_id)
        task_id, stored_name = attachment.task_id, attachment.filename

        self.db.delete(attachment)
        self.db.commit()

        if not self.storage.delete_file(task_id, stored_name):
            logger.warning(f"Attachment {attachment_id} had no stored file")
        logger.info(f"Attachment {attachment_id} deleted from task {task_id}")

    # Dashboard

    def get_user(self, username: str) -> User:
        user = self.db.query(User).filter(User.username == username.strip().lower()).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def user_tasks(self, user: User) -> Dict[str, Any]:
        """Tasks assigned to ``user`` across projects, grouped, plus summary counts."""
        tasks = (
            self._task_query()
            .join(ProjectTask.project_role)
            .filter(ProjectRole.user_id == user.id)
            .order_by(ProjectTask.due_date.asc(), ProjectTask.created_at.desc())
            .all()
        )

        groups = OrderedDict()
        for task in tasks:
            group = groups.setdefault(task.project_id, {
                "project": task.project,
                "roles": [],
                "tasks": [],
            })
            role = task.project_role.role
            if role not in group["roles"]:
                group["roles"].append(role)
            group["tasks"].append(task)

        today = date.today()
        open_tasks = [t for t in tasks if t.status != TaskStatus.DONE]
        summary = {
            "total_tasks": len(tasks),
            "todo_tasks": sum(1 for t in tasks if t.status == TaskStatus.TODO),
            "in_progress_tasks": sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            "done_tasks": sum(1 for t in tasks if t.status == TaskStatus.DONE),
            "overdue_tasks": sum(1 for t in open_tasks if t.due_date < today),
            "critical_tasks": sum(1 for t in open_tasks if t.is_critical),
            "active_projects": len(groups),
        }

        return {
            "summary": summary,
            "project_tasks": list(groups.values()),
            "all_tasks": tasks,
        }

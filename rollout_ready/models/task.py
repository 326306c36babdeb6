# rollout_ready/models/task.py
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from rollout_ready.database import Base
import enum
from datetime import datetime


class TaskStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class ProjectTask(Base):
    __tablename__ = "project_tasks"
    __table_args__ = (
        # A template task is generated at most once per role assignment
        UniqueConstraint(
            "project_id", "template_task_id", "project_role_id",
            name="uq_project_task_generation",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    template_task_id = Column(Integer, ForeignKey("template_tasks.id", ondelete="SET NULL"), nullable=True, index=True)
    project_role_id = Column(Integer, ForeignKey("project_roles.id", ondelete="CASCADE"), nullable=False, index=True)

    # Snapshot of the template text; later template edits don't touch it
    description = Column(Text, nullable=False)
    due_date = Column(Date, nullable=False)

    status = Column(Enum(TaskStatus), default=TaskStatus.TODO, nullable=False)
    comments = Column(Text, nullable=True)
    time_spent_minutes = Column(Integer, default=0, nullable=False)

    # System dates
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    project = relationship("Project", back_populates="project_tasks")
    project_role = relationship("ProjectRole", back_populates="project_tasks")
    template_task = relationship("TemplateTask", back_populates="project_tasks")
    attachments = relationship(
        "TaskAttachment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="desc(TaskAttachment.created_at)",
    )

    @property
    def is_critical(self) -> bool:
        return bool(self.template_task and self.template_task.is_critical)

    @property
    def is_recurring(self) -> bool:
        return bool(self.template_task and self.template_task.is_recurring)


class TaskAttachment(Base):
    __tablename__ = "task_attachments"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("project_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)  # Stored filename (with UUID)
    original_filename = Column(String(255), nullable=False)  # Original filename
    file_size = Column(Integer, nullable=False)  # File size in bytes
    mime_type = Column(String(100), nullable=False)  # MIME type
    uploaded_by = Column(String(100), nullable=False)  # Uploader's username
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    task = relationship("ProjectTask", back_populates="attachments")

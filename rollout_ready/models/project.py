# rollout_ready/models/project.py
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from rollout_ready.database import Base
from datetime import datetime


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)  # Anchor for every generated due date
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    project_roles = relationship("ProjectRole", back_populates="project", cascade="all, delete-orphan")
    project_tasks = relationship(
        "ProjectTask",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectTask.due_date",
    )

    @property
    def task_count(self) -> int:
        return len(self.project_tasks)


class ProjectRole(Base):
    """One user filling one role on one project."""
    __tablename__ = "project_roles"
    __table_args__ = (
        UniqueConstraint("project_id", "role_id", name="uq_project_role"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="project_roles")
    role = relationship("Role", back_populates="project_roles")
    user = relationship("User", back_populates="project_roles")
    project_tasks = relationship("ProjectTask", back_populates="project_role", cascade="all, delete-orphan")

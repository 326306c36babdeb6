# rollout_ready/models/role.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from rollout_ready.database import Base
from datetime import datetime


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    templates = relationship(
        "Template",
        back_populates="role",
        cascade="all, delete-orphan",
        order_by="Template.name",
    )
    project_roles = relationship("ProjectRole", back_populates="role")
    users = relationship("User", back_populates="job_role", foreign_keys="User.job_role_id")

    @property
    def template_count(self) -> int:
        return len(self.templates)

    @property
    def project_role_count(self) -> int:
        return len(self.project_roles)


class Template(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)

    # Materialize tasks automatically when the role is filled on a project
    auto_assign = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    role = relationship("Role", back_populates="templates")
    template_tasks = relationship(
        "TemplateTask",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateTask.offset_days",
    )

    @property
    def task_count(self) -> int:
        return len(self.template_tasks)


class TemplateTask(Base):
    __tablename__ = "template_tasks"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    offset_days = Column(Integer, nullable=False, default=0)  # Days relative to project start, may be negative
    is_recurring = Column(Boolean, default=False, nullable=False)
    is_critical = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    template = relationship("Template", back_populates="template_tasks")
    project_tasks = relationship("ProjectTask", back_populates="template_task", passive_deletes=True)

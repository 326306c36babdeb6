"""
Demo data for Rollout Ready
Users, job roles, auto-assign checklists and one sample rollout project.
Every step looks rows up by their natural key first, so seeding twice is safe.
"""

import logging
from datetime import date
from typing import Dict

from sqlalchemy.orm import Session

from rollout_ready.config.security import SecurityConfig
from rollout_ready.models.project import Project, ProjectRole
from rollout_ready.models.role import Role, Template, TemplateTask
from rollout_ready.models.user import SystemRole, User
from rollout_ready.services.task_generator import TaskGenerator
from rollout_ready.utils.security import hash_password

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "username": "admin",
        "email": "admin@rolloutready.com",
        "password": "admin123",
        "first_name": "System",
        "last_name": "Administrator",
        "system_role": SystemRole.ADMIN,
    },
    {
        "username": "manager",
        "email": "manager@rolloutready.com",
        "password": "manager123",
        "first_name": "Project",
        "last_name": "Manager",
        "system_role": SystemRole.MANAGER,
    },
    {
        "username": "alice",
        "email": "alice@rolloutready.com",
        "password": "user123",
        "first_name": "Alice",
        "last_name": "Johnson",
        "system_role": SystemRole.USER,
    },
    {
        "username": "bob",
        "email": "bob@rolloutready.com",
        "password": "user123",
        "first_name": "Bob",
        "last_name": "Smith",
        "system_role": SystemRole.USER,
    },
    {
        "username": "charlie",
        "email": "charlie@rolloutready.com",
        "password": "user123",
        "first_name": "Charlie",
        "last_name": "Brown",
        "system_role": SystemRole.USER,
    },
]

DEMO_ROLES = [
    {"name": "Project Manager", "description": "Overall project coordination and management"},
    {"name": "Infrastructure Lead", "description": "Technical infrastructure setup and management"},
    {"name": "Security Architect", "description": "Security assessment and implementation"},
    {"name": "Business Analyst", "description": "Business requirements and process analysis"},
]

# Keyed by owning role name
DEMO_TEMPLATES = [
    {
        "role": "Project Manager",
        "name": "Project Manager Checklist",
        "description": "Standard tasks for project managers",
        "auto_assign": True,
        "tasks": [
            {"description": "Create project charter and scope document", "offset_days": -14, "is_critical": True},
            {"description": "Conduct stakeholder kickoff meeting", "offset_days": -7, "is_critical": True},
            {"description": "Finalize project timeline and milestones", "offset_days": 0, "is_critical": True},
            {"description": "Weekly status report to stakeholders", "offset_days": 7, "is_recurring": True},
        ],
    },
    {
        "role": "Infrastructure Lead",
        "name": "Infrastructure Setup Checklist",
        "description": "Technical infrastructure preparation tasks",
        "auto_assign": True,
        "tasks": [
            {"description": "Review current infrastructure architecture", "offset_days": -21, "is_critical": True},
            {"description": "Prepare server environments (Dev/Test/Prod)", "offset_days": -14, "is_critical": True},
            {"description": "Configure network and firewall rules", "offset_days": -7, "is_critical": True},
            {"description": "Setup monitoring and alerting systems", "offset_days": 0},
        ],
    },
    {
        "role": "Security Architect",
        "name": "Security Assessment Checklist",
        "description": "Security review and implementation tasks",
        "auto_assign": True,
        "tasks": [
            {"description": "Conduct security risk assessment", "offset_days": -21, "is_critical": True},
            {"description": "Review and approve security architecture", "offset_days": -14, "is_critical": True},
            {"description": "Implement security controls and policies", "offset_days": -7, "is_critical": True},
            {"description": "Conduct security testing and validation", "offset_days": 7, "is_critical": True},
        ],
    },
]

DEMO_PROJECT = {
    "name": "Deploy MES at Avonmouth",
    "description": "Manufacturing Execution System deployment at Avonmouth facility",
    "start_date": date(2024, 2, 1),
    # role name -> username
    "assignments": {
        "Project Manager": "manager",
        "Infrastructure Lead": "charlie",
        "Security Architect": "bob",
        "Business Analyst": "alice",
    },
}


def ensure_admin(db: Session) -> User:
    """Create the default administrator unless an account with that username exists."""
    settings = SecurityConfig.DEFAULT_ADMIN
    admin = db.query(User).filter(User.username == settings['username']).first()
    if admin:
        return admin

    admin = User(
        username=settings['username'],
        email=settings['email'],
        hashed_password=hash_password(settings['password']),
        first_name="System",
        last_name="Administrator",
        system_role=SystemRole.ADMIN,
    )
    db.add(admin)
    db.commit()
    logger.info(f"Default admin user created: {admin.username}")
    return admin


def seed_users(db: Session) -> Dict[str, User]:
    users = {}
    for data in DEMO_USERS:
        user = db.query(User).filter(User.username == data["username"]).first()
        if user is None:
            user = User(
                username=data["username"],
                email=data["email"],
                hashed_password=hash_password(data["password"]),
                first_name=data["first_name"],
                last_name=data["last_name"],
                system_role=data["system_role"],
            )
            db.add(user)
            logger.info(f"Seeded user {data['username']}")
        users[data["username"]] = user
    db.flush()
    return users


def seed_roles(db: Session) -> Dict[str, Role]:
    roles = {}
    for data in DEMO_ROLES:
        role = db.query(Role).filter(Role.name == data["name"]).first()
        if role is None:
            role = Role(name=data["name"], description=data["description"])
            db.add(role)
            logger.info(f"Seeded role {data['name']}")
        roles[data["name"]] = role
    db.flush()
    return roles


def seed_templates(db: Session, roles: Dict[str, Role]) -> int:
    created = 0
    for data in DEMO_TEMPLATES:
        role = roles[data["role"]]
        exists = db.query(Template.id).filter(
            Template.role_id == role.id, Template.name == data["name"]
        ).first()
        if exists:
            continue

        db.add(Template(
            name=data["name"],
            description=data["description"],
            role_id=role.id,
            auto_assign=data["auto_assign"],
            template_tasks=[
                TemplateTask(
                    description=task["description"],
                    offset_days=task["offset_days"],
                    is_critical=task.get("is_critical", False),
                    is_recurring=task.get("is_recurring", False),
                )
                for task in data["tasks"]
            ],
        ))
        created += 1
    db.flush()
    return created


def seed_project(db: Session, users: Dict[str, User], roles: Dict[str, Role]) -> int:
    """Create the sample project and run task generation for its assignments."""
    project = db.query(Project).filter(Project.name == DEMO_PROJECT["name"]).first()
    if project is None:
        project = Project(
            name=DEMO_PROJECT["name"],
            description=DEMO_PROJECT["description"],
            start_date=DEMO_PROJECT["start_date"],
        )
        db.add(project)
        db.flush()

    assignments = []
    for role_name, username in DEMO_PROJECT["assignments"].items():
        role = roles[role_name]
        assignment = db.query(ProjectRole).filter(
            ProjectRole.project_id == project.id, ProjectRole.role_id == role.id
        ).first()
        if assignment is None:
            assignment = ProjectRole(project_id=project.id, role_id=role.id, user_id=users[username].id)
            db.add(assignment)
        assignments.append(assignment)

    return TaskGenerator(db).generate_tasks(project.id, project.start_date, assignments)


def seed_demo_data(db: Session) -> Dict[str, int]:
    """
    Load the full demo data set in one transaction

    Returns:
        Counts of what this run created
    """
    try:
        users = seed_users(db)
        roles = seed_roles(db)
        templates = seed_templates(db, roles)
        tasks = seed_project(db, users, roles)
        db.commit()
    except Exception:
        db.rollback()
        raise

    summary = {
        "users": len(users),
        "roles": len(roles),
        "templates": templates,
        "tasks": tasks,
    }
    logger.info(f"Demo data seeded: {summary}")
    return summary

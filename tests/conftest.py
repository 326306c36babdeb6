import os

# Must be set before rollout_ready is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import date

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rollout_ready.database import Base, build_engine, get_db, init_db
from rollout_ready.main import app
from rollout_ready.models import Project, ProjectRole, Role, Template, TemplateTask, User
from rollout_ready.models.user import SystemRole
from rollout_ready.services.file_storage import FileStorageService, get_file_storage
from rollout_ready.utils.auth import create_session
from rollout_ready.utils.security import hash_password

fake = Faker()

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return FileStorageService(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(system_role=SystemRole.USER, password=DEFAULT_PASSWORD, **fields):
        username = fields.pop("username", None) or fake.unique.user_name().lower()
        user = User(
            username=username,
            email=fields.pop("email", None) or f"{username}@example.com",
            hashed_password=hash_password(password),
            first_name=fields.pop("first_name", fake.first_name()),
            last_name=fields.pop("last_name", fake.last_name()),
            system_role=system_role,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def auth_headers(db):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_session(db, user)}"}

    return _auth_headers


@pytest.fixture
def admin(make_user):
    return make_user(system_role=SystemRole.ADMIN, username="admin")


@pytest.fixture
def manager(make_user):
    return make_user(system_role=SystemRole.MANAGER, username="manager")


@pytest.fixture
def member(make_user):
    return make_user(system_role=SystemRole.USER, username="alice")


@pytest.fixture
def make_role(db):
    def _make_role(name=None, description=None):
        role = Role(name=name or fake.unique.job(), description=description)
        db.add(role)
        db.commit()
        return role

    return _make_role


@pytest.fixture
def make_template(db):
    def _make_template(role, tasks, auto_assign=True, name=None):
        """``tasks`` is a list of (description, offset_days) or dicts"""
        template_tasks = []
        for task in tasks:
            if isinstance(task, tuple):
                task = {"description": task[0], "offset_days": task[1]}
            template_tasks.append(TemplateTask(**task))
        template = Template(
            name=name or f"{role.name} Checklist",
            role_id=role.id,
            auto_assign=auto_assign,
            template_tasks=template_tasks,
        )
        db.add(template)
        db.commit()
        return template

    return _make_template


@pytest.fixture
def make_project(db):
    def _make_project(name="Site A", start_date=date(2024, 2, 1), assignments=None):
        """Project with ProjectRole rows for ``{role: user}``; no tasks are generated"""
        project = Project(name=name, start_date=start_date)
        db.add(project)
        db.flush()
        for role, user in (assignments or {}).items():
            db.add(ProjectRole(project_id=project.id, role_id=role.id, user_id=user.id))
        db.commit()
        return project

    return _make_project

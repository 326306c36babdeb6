from sqlalchemy.exc import OperationalError

from rollout_ready.database import get_db
from rollout_ready.main import app
from rollout_ready.models import ProjectTask, Template, User
from rollout_ready.models.user import SystemRole
from rollout_ready.seed import ensure_admin, seed_demo_data
from rollout_ready.utils.security import verify_password


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Rollout Ready API"


def test_health_reports_counts(client, make_role, admin):
    make_role("Project Manager")

    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["admin_exists"] is True
    assert body["counts"] == {"users": 1, "roles": 1, "templates": 0, "projects": 0}
    assert body["storage"] == {"attachment_files": 0, "attachment_bytes": 0}


def test_health_reports_attachment_storage(client, storage):
    storage.save_bytes(7, "notes.txt", b"hello")
    storage.save_bytes(8, "plan.pdf", b"%PDF-1.4")

    stats = client.get("/health").json()["storage"]
    assert stats == {"attachment_files": 2, "attachment_bytes": 13}


def test_health_without_admin(client):
    assert client.get("/health").json()["admin_exists"] is False


class _BrokenSession:
    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def test_health_when_database_is_down(client):
    app.dependency_overrides[get_db] = lambda: _BrokenSession()

    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_ensure_admin_is_idempotent(db):
    first = ensure_admin(db)
    second = ensure_admin(db)

    assert first.id == second.id
    assert first.system_role == SystemRole.ADMIN
    assert db.query(User).count() == 1


def test_seed_demo_data_twice(db):
    first = seed_demo_data(db)
    assert first == {"users": 5, "roles": 4, "templates": 3, "tasks": 12}

    second = seed_demo_data(db)
    assert second["templates"] == 0
    assert second["tasks"] == 0

    assert db.query(Template).count() == 3
    assert db.query(ProjectTask).count() == 12

    alice = db.query(User).filter(User.username == "alice").one()
    assert verify_password("user123", alice.hashed_password)


def test_seeded_due_dates(db):
    seed_demo_data(db)

    charter = db.query(ProjectTask).filter(
        ProjectTask.description == "Create project charter and scope document"
    ).one()
    assert charter.due_date.isoformat() == "2024-01-18"
    assert charter.project_role.user.username == "manager"

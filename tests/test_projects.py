from datetime import date

import pytest

from rollout_ready.exceptions import ValidationError
from rollout_ready.models import Project, ProjectRole, ProjectTask, TaskAttachment
from rollout_ready.schemas.project import ProjectCreate, ProjectUpdate
from rollout_ready.services.projects import ProjectService
from rollout_ready.services.task_generator import TaskGenerator
from rollout_ready.services.task_lifecycle import TaskService


@pytest.fixture
def catalog(make_role, make_template):
    pm = make_role("Project Manager")
    infra = make_role("Infrastructure Lead")
    analyst = make_role("Business Analyst")
    make_template(pm, [("Project charter", -14), ("Kickoff meeting", -7)])
    make_template(infra, [("Prepare servers", -14)])
    return {"pm": pm, "infra": infra, "analyst": analyst}


def _task_count(db, project_id):
    db.expire_all()
    return db.query(ProjectTask).filter(ProjectTask.project_id == project_id).count()


def test_create_generates_tasks_for_filled_roles(db, catalog, make_user):
    alice, bob = make_user(), make_user()
    result = ProjectService(db).create_project(ProjectCreate(
        name="Deploy MES at Avonmouth",
        start_date=date(2024, 2, 1),
        role_assignments={
            catalog["pm"].id: alice.id,
            catalog["infra"].id: bob.id,
            catalog["analyst"].id: None,
        },
    ))

    assert result["project_roles"] == 2
    assert result["project_tasks"] == 3
    project = result["project"]
    assert project.task_count == 3
    assert sorted(pr.role.name for pr in project.project_roles) == ["Infrastructure Lead", "Project Manager"]


def test_unknown_user_creates_nothing(db, catalog, make_user):
    alice = make_user()
    with pytest.raises(ValidationError) as exc:
        ProjectService(db).create_project(ProjectCreate(
            name="Half built",
            start_date=date(2024, 2, 1),
            role_assignments={catalog["pm"].id: alice.id, catalog["infra"].id: 9999},
        ))
    assert exc.value.message == "User with ID 9999 not found"

    db.expire_all()
    assert db.query(Project).count() == 0
    assert db.query(ProjectRole).count() == 0
    assert db.query(ProjectTask).count() == 0


def test_unknown_role_is_rejected(db, make_user):
    with pytest.raises(ValidationError):
        ProjectService(db).create_project(ProjectCreate(
            name="Nowhere", start_date=date(2024, 2, 1), role_assignments={404: make_user().id},
        ))


def test_resaving_unchanged_assignments_does_not_duplicate(db, catalog, make_user):
    alice = make_user()
    service = ProjectService(db)
    project = service.create_project(ProjectCreate(
        name="Site A", start_date=date(2024, 2, 1), role_assignments={catalog["pm"].id: alice.id},
    ))["project"]

    for _ in range(2):
        service.update_project(project.id, ProjectUpdate(role_assignments={catalog["pm"].id: alice.id}))

    assert _task_count(db, project.id) == 2


def test_reassigning_keeps_tasks_on_the_assignment(db, catalog, make_user):
    alice, bob = make_user(), make_user()
    service = ProjectService(db)
    project = service.create_project(ProjectCreate(
        name="Site A", start_date=date(2024, 2, 1), role_assignments={catalog["pm"].id: alice.id},
    ))["project"]
    project_id = project.id

    updated = service.update_project(project_id, ProjectUpdate(role_assignments={catalog["pm"].id: bob.id}))

    assert [pr.user_id for pr in updated.project_roles] == [bob.id]
    assert db.query(ProjectRole).filter(ProjectRole.project_id == project_id).count() == 1
    assert _task_count(db, project_id) == 2


def test_clearing_a_role_removes_its_tasks(db, catalog, make_user):
    alice, bob = make_user(), make_user()
    service = ProjectService(db)
    project = service.create_project(ProjectCreate(
        name="Site A",
        start_date=date(2024, 2, 1),
        role_assignments={catalog["pm"].id: alice.id, catalog["infra"].id: bob.id},
    ))["project"]
    project_id = project.id

    updated = service.update_project(project_id, ProjectUpdate(role_assignments={catalog["infra"].id: None}))

    assert [pr.role.name for pr in updated.project_roles] == ["Project Manager"]
    assert _task_count(db, project_id) == 2


def test_start_date_change_does_not_move_existing_tasks(db, catalog, make_user):
    alice, bob = make_user(), make_user()
    service = ProjectService(db)
    project_id = service.create_project(ProjectCreate(
        name="Site A", start_date=date(2024, 2, 1), role_assignments={catalog["pm"].id: alice.id},
    ))["project"].id

    service.update_project(project_id, ProjectUpdate(
        start_date=date(2024, 3, 1),
        role_assignments={catalog["infra"].id: bob.id},
    ))

    db.expire_all()
    due = {t.description: t.due_date for t in db.query(ProjectTask).all()}
    assert due["Project charter"] == date(2024, 1, 18)
    # new assignment uses the new start date
    assert due["Prepare servers"] == date(2024, 2, 16)


def test_project_endpoints(client, catalog, manager, member, auth_headers):
    staff = auth_headers(manager)
    payload = {
        "name": "Site A",
        "description": "  First rollout ",
        "start_date": "2024-02-01",
        "role_assignments": {str(catalog["pm"].id): member.id},
    }

    assert client.post("/projects/", json=payload, headers=auth_headers(member)).status_code == 403

    created = client.post("/projects/", json=payload, headers=staff)
    assert created.status_code == 201
    body = created.json()
    assert body["project"]["description"] == "First rollout"
    assert body["project_tasks"] == 2
    project_id = body["project"]["id"]

    assert client.post("/projects/", json={**payload, "name": " "}, headers=staff).status_code == 400
    assert client.post("/projects/", json={**payload, "start_date": "not a date"}, headers=staff).status_code == 400

    listing = client.get("/projects/", headers=auth_headers(member)).json()
    assert listing[0]["task_count"] == 2
    assert listing[0]["project_roles"][0]["user"]["username"] == "alice"

    renamed = client.put(f"/projects/{project_id}", json={"name": "Site A (phase 1)"}, headers=staff)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Site A (phase 1)"
    assert renamed.json()["start_date"] == "2024-02-01"

    tasks = client.get(f"/projects/{project_id}/tasks", headers=staff).json()
    assert [t["due_date"] for t in tasks] == ["2024-01-18", "2024-01-25"]

    manual = client.post(f"/projects/{project_id}/tasks", json={
        "project_role_id": tasks[0]["project_role_id"],
        "description": "Book site visit",
        "due_date": "2024-02-05",
    }, headers=staff)
    assert manual.status_code == 201
    assert manual.json()["template_task_id"] is None

    assert client.delete(f"/projects/{project_id}", headers=staff).status_code == 200
    assert client.get(f"/projects/{project_id}", headers=staff).status_code == 404


def test_failure_during_generation_rolls_back_the_save(db, catalog, make_user, monkeypatch):
    alice = make_user()
    real_create_task = TaskGenerator._create_task
    calls = []

    def fail_on_second_task(self, *args, **kwargs):
        calls.append(args)
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return real_create_task(self, *args, **kwargs)

    monkeypatch.setattr(TaskGenerator, "_create_task", fail_on_second_task)

    with pytest.raises(RuntimeError):
        ProjectService(db).create_project(ProjectCreate(
            name="Site A", start_date=date(2024, 2, 1), role_assignments={catalog["pm"].id: alice.id},
        ))

    db.expire_all()
    assert db.query(Project).count() == 0
    assert db.query(ProjectRole).count() == 0
    assert db.query(ProjectTask).count() == 0


def _attach(db, storage, project_id, description):
    task = db.query(ProjectTask).filter(
        ProjectTask.project_id == project_id, ProjectTask.description == description
    ).one()
    attachment = TaskService(db, storage).add_attachment(task.id, "notes.txt", "text/plain", b"notes", "alice")
    assert storage.get_file_path(task.id, attachment.filename) is not None
    return task.id, attachment.filename


def test_clearing_a_role_removes_its_stored_files(db, storage, catalog, make_user):
    alice, bob = make_user(), make_user()
    service = ProjectService(db, storage)
    project_id = service.create_project(ProjectCreate(
        name="Site A",
        start_date=date(2024, 2, 1),
        role_assignments={catalog["pm"].id: alice.id, catalog["infra"].id: bob.id},
    ))["project"].id
    cleared = _attach(db, storage, project_id, "Prepare servers")
    kept = _attach(db, storage, project_id, "Project charter")

    service.update_project(project_id, ProjectUpdate(role_assignments={catalog["infra"].id: None}))

    db.expire_all()
    assert db.query(TaskAttachment).count() == 1
    assert storage.get_file_path(*cleared) is None
    assert storage.get_file_path(*kept) is not None


def test_deleting_a_project_removes_its_stored_files(db, storage, catalog, make_user):
    service = ProjectService(db, storage)
    project_id = service.create_project(ProjectCreate(
        name="Site A", start_date=date(2024, 2, 1), role_assignments={catalog["pm"].id: make_user().id},
    ))["project"].id
    stored = [
        _attach(db, storage, project_id, "Project charter"),
        _attach(db, storage, project_id, "Kickoff meeting"),
    ]

    service.delete_project(project_id)

    db.expire_all()
    assert db.query(TaskAttachment).count() == 0
    assert db.query(ProjectTask).count() == 0
    for task_id, filename in stored:
        assert storage.get_file_path(task_id, filename) is None


def test_project_delete_endpoint_removes_uploads(client, storage, catalog, manager, member, auth_headers):
    staff = auth_headers(manager)
    project_id = client.post("/projects/", json={
        "name": "Site A",
        "start_date": "2024-02-01",
        "role_assignments": {str(catalog["pm"].id): member.id},
    }, headers=staff).json()["project"]["id"]
    task_id = client.get(f"/projects/{project_id}/tasks", headers=staff).json()[0]["id"]

    uploaded = client.post(
        f"/tasks/{task_id}/attachments",
        files={"file": ("charter.txt", b"draft", "text/plain")},
        headers=auth_headers(member),
    )
    assert uploaded.status_code == 201
    assert storage.get_storage_stats()["attachment_files"] == 1

    assert client.delete(f"/projects/{project_id}", headers=staff).status_code == 200
    assert storage.get_storage_stats()["attachment_files"] == 0

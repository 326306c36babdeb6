import string

from rollout_ready.models import User
from rollout_ready.utils.security import verify_password


def test_listing_users_is_staff_only(client, admin, manager, member, auth_headers):
    assert client.get("/users/", headers=auth_headers(member)).status_code == 403

    response = client.get("/users/", headers=auth_headers(manager))
    assert response.status_code == 200
    assert [u["system_role"] for u in response.json()] == ["ADMIN", "MANAGER", "USER"]


def test_listing_filters_by_job_role(client, make_user, make_role, manager, auth_headers):
    infra = make_role("Infrastructure Lead")
    engineer = make_user(job_role_id=infra.id)
    make_user()

    response = client.get(f"/users/?job_role_id={infra.id}", headers=auth_headers(manager))
    assert [u["id"] for u in response.json()] == [engineer.id]
    assert response.json()[0]["job_role"]["name"] == "Infrastructure Lead"


def test_user_can_read_own_record_only(client, member, make_user, auth_headers):
    other = make_user()
    headers = auth_headers(member)

    own = client.get(f"/users/{member.id}", headers=headers)
    assert own.status_code == 200
    assert own.json()["project_roles"] == []

    assert client.get(f"/users/{other.id}", headers=headers).status_code == 403


def test_admin_creates_users(client, admin, manager, make_role, auth_headers):
    role = make_role("Business Analyst")
    payload = {
        "username": "Dana",
        "email": "Dana@Example.com",
        "password": "secret1",
        "first_name": "Dana",
        "system_role": "MANAGER",
        "job_role_id": role.id,
    }

    assert client.post("/users/", json=payload, headers=auth_headers(manager)).status_code == 403

    created = client.post("/users/", json=payload, headers=auth_headers(admin))
    assert created.status_code == 201
    body = created.json()
    assert body["username"] == "dana"
    assert body["email"] == "dana@example.com"
    assert body["job_role"]["id"] == role.id

    duplicate = client.post("/users/", json={**payload, "email": "other@example.com"}, headers=auth_headers(admin))
    assert duplicate.status_code == 409

    short = client.post("/users/", json={**payload, "username": "eve", "email": "eve@example.com", "password": "123"},
                        headers=auth_headers(admin))
    assert short.status_code == 400

    unknown_role = client.post(
        "/users/",
        json={**payload, "username": "finn", "email": "finn@example.com", "job_role_id": 999},
        headers=auth_headers(admin),
    )
    assert unknown_role.status_code == 400


def test_self_service_profile_update(client, db, member, auth_headers):
    headers = auth_headers(member)

    updated = client.put(f"/users/{member.id}", json={"first_name": "Alicia", "password": "newpass1"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["first_name"] == "Alicia"

    db.expire_all()
    assert verify_password("newpass1", db.get(User, member.id).hashed_password)

    promote = client.put(f"/users/{member.id}", json={"system_role": "ADMIN"}, headers=headers)
    assert promote.status_code == 403

    too_short = client.put(f"/users/{member.id}", json={"password": "abc"}, headers=headers)
    assert too_short.status_code == 400

    empty = client.put(f"/users/{member.id}", json={"password": ""}, headers=headers)
    assert empty.status_code == 400

    db.expire_all()
    assert verify_password("newpass1", db.get(User, member.id).hashed_password)


def test_only_admin_edits_other_users(client, admin, manager, member, auth_headers):
    assert client.put(f"/users/{member.id}", json={"first_name": "X"}, headers=auth_headers(manager)).status_code == 403

    response = client.put(f"/users/{member.id}", json={"system_role": "MANAGER"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["system_role"] == "MANAGER"

    taken = client.put(f"/users/{member.id}", json={"email": admin.email}, headers=auth_headers(admin))
    assert taken.status_code == 409


def test_delete_is_a_soft_delete(client, db, admin, member, auth_headers):
    response = client.delete(f"/users/{member.id}", headers=auth_headers(admin))
    assert response.status_code == 200

    db.expire_all()
    user = db.get(User, member.id)
    assert user is not None
    assert user.is_active is False


def test_password_reset_is_admin_only(client, manager, member, auth_headers):
    response = client.post(
        f"/users/{member.id}/reset-password",
        json={"new_password": "another1"},
        headers=auth_headers(manager),
    )
    assert response.status_code == 403


def test_password_reset_with_explicit_password(client, db, admin, member, auth_headers):
    response = client.post(
        f"/users/{member.id}/reset-password",
        json={"new_password": "another1"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["temporary_password"] is None

    db.expire_all()
    assert verify_password("another1", db.get(User, member.id).hashed_password)

    short = client.post(
        f"/users/{member.id}/reset-password",
        json={"new_password": "abc"},
        headers=auth_headers(admin),
    )
    assert short.status_code == 400


def test_password_reset_generates_random_password(client, db, admin, member, auth_headers):
    response = client.post(
        f"/users/{member.id}/reset-password",
        json={"generate_random": True},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    temporary = response.json()["temporary_password"]

    assert len(temporary) == 12
    assert any(c in string.ascii_uppercase for c in temporary)
    assert any(c in string.ascii_lowercase for c in temporary)
    assert any(c in string.digits for c in temporary)
    assert any(c in "!@#$%^&*" for c in temporary)

    db.expire_all()
    assert verify_password(temporary, db.get(User, member.id).hashed_password)

    login = client.post("/auth/login", json={"username": member.username, "password": temporary})
    assert login.status_code == 200

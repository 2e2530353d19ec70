from datetime import timedelta

from deptrecords.api.routes.auth import create_access_token
from deptrecords.models.activity_log import ActivityLogModel

NEW_USER = {
    "username": "newbie",
    "password": "secret123",
    "name": "New Instructor",
    "email": "newbie@ul.edu.lr",
}


def test_register_instructor(client):
    response = client.post("/api/auth/register", json=NEW_USER)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["username"] == "newbie"
    assert data["userType"] == "instructor"
    assert "password" not in data


def test_first_account_may_be_admin(client):
    response = client.post("/api/auth/register", json={**NEW_USER, "userType": "admin"})

    assert response.status_code == 201
    assert response.json()["data"]["isAdmin"] is True


def test_privileged_registration_needs_admin(client, instructor_headers, admin_headers):
    payload = {**NEW_USER, "userType": "chairman"}

    denied = client.post("/api/auth/register", json=payload, headers=instructor_headers)
    assert denied.status_code == 403

    allowed = client.post("/api/auth/register", json=payload, headers=admin_headers)
    assert allowed.status_code == 201


def test_invalid_user_type_rejected_before_role_check(client, instructor_headers):
    response = client.post(
        "/api/auth/register",
        json={**NEW_USER, "userType": "superuser"},
        headers=instructor_headers,
    )

    assert response.status_code == 400
    assert "User type must be one of: instructor, chairman, admin" in response.json()["errors"]


def test_register_duplicate_username(client, instructor_user):
    response = client.post(
        "/api/auth/register",
        json={**NEW_USER, "username": instructor_user.username},
    )

    assert response.status_code == 400
    assert "already exists" in response.json()["message"]


def test_login_and_profile(client, chairman_user, db_session):
    response = client.post(
        "/api/auth/login",
        json={"username": "chairman", "password": "secret123"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["tokenType"] == "bearer"
    assert data["user"]["canEdit"] is True
    assert data["mustChangePassword"] is False

    headers = {"Authorization": f"Bearer {data['token']}"}
    profile = client.get("/api/auth/profile", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["data"]["id"] == chairman_user.id

    logs = db_session.query(ActivityLogModel).filter_by(action="LOGIN").all()
    assert len(logs) == 1
    assert logs[0].user_id == chairman_user.id


def test_login_wrong_password(client, chairman_user):
    response = client.post(
        "/api/auth/login",
        json={"username": "chairman", "password": "wrong-password"},
    )

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_login_user_type_must_match(client, chairman_user):
    response = client.post(
        "/api/auth/login",
        json={"username": "chairman", "password": "secret123", "userType": "admin"},
    )

    assert response.status_code == 401


def test_login_missing_fields(client):
    response = client.post("/api/auth/login", json={})

    assert response.status_code == 400
    assert response.json()["errors"] == ["Username is required", "Password is required"]


def test_invalid_token_rejected(client):
    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401


def test_expired_token_rejected(client, admin_user):
    token = create_access_token({"sub": admin_user.id}, expires_delta=timedelta(minutes=-1))

    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_role_comes_from_account_not_token(client, instructor_user, record_data):
    token = create_access_token({"sub": instructor_user.id, "userType": "admin"})

    response = client.post(
        "/api/students",
        json=record_data,
        headers={"Authorization": f"Bearer {token}", "X-User-Type": "admin"},
    )

    assert response.status_code == 403


def test_disabled_account_token_rejected(client, admin_headers, instructor_user, instructor_headers):
    client.put(f"/api/users/{instructor_user.id}", json={"active": False}, headers=admin_headers)

    response = client.get("/api/auth/profile", headers=instructor_headers)

    assert response.status_code == 401
    assert response.json()["message"] == "Account is disabled"


def test_logout_records_event(client, instructor_headers, instructor_user, db_session):
    response = client.post("/api/auth/logout", headers=instructor_headers)

    assert response.status_code == 200
    log = db_session.query(ActivityLogModel).filter_by(action="LOGOUT").one()
    assert log.username == "instructor"


def test_change_own_password(client, instructor_headers):
    response = client.put(
        "/api/auth/password", json={"password": "brand-new"}, headers=instructor_headers
    )
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"username": "instructor", "password": "brand-new"})
    assert login.status_code == 200

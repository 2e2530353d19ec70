def test_user_management_requires_admin(client, chairman_headers, instructor_headers):
    assert client.get("/api/users", headers=chairman_headers).status_code == 403
    assert client.get("/api/users", headers=instructor_headers).status_code == 403
    assert client.get("/api/users").status_code == 401


def test_admin_creates_and_lists_users(client, admin_headers):
    response = client.post(
        "/api/users",
        json={
            "username": "kollie",
            "password": "secret123",
            "name": "Dr. Kollie",
            "email": "kollie@ul.edu.lr",
            "userType": "chairman",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201

    listing = client.get("/api/users", params={"userType": "chairman"}, headers=admin_headers)
    assert listing.status_code == 200
    assert [u["username"] for u in listing.json()["data"]] == ["kollie"]


def test_admin_updates_user(client, admin_headers, instructor_user):
    response = client.put(
        f"/api/users/{instructor_user.id}",
        json={"userType": "chairman", "name": "Promoted"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["userType"] == "chairman"
    assert data["canEdit"] is True


def test_get_missing_user(client, admin_headers):
    response = client.get(f"/api/users/{'0' * 24}", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_reset_password_flow(client, admin_headers, instructor_user):
    response = client.post(f"/api/users/{instructor_user.id}/reset-password", headers=admin_headers)
    assert response.status_code == 200
    temporary = response.json()["data"]["temporaryPassword"]

    old = client.post("/api/auth/login", json={"username": "instructor", "password": "secret123"})
    assert old.status_code == 401

    first = client.post("/api/auth/login", json={"username": "instructor", "password": temporary})
    assert first.status_code == 200
    assert first.json()["data"]["mustChangePassword"] is True

    second = client.post("/api/auth/login", json={"username": "instructor", "password": temporary})
    assert second.status_code == 401


def test_admin_sets_password(client, admin_headers, instructor_user):
    response = client.put(
        f"/api/users/{instructor_user.id}/password",
        json={"password": "fresh-pass"},
        headers=admin_headers,
    )
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"username": "instructor", "password": "fresh-pass"})
    assert login.status_code == 200


def test_delete_user_keeps_logs(client, admin_headers, instructor_user, instructor_headers):
    client.post("/api/auth/logout", headers=instructor_headers)

    response = client.delete(f"/api/users/{instructor_user.id}", headers=admin_headers)
    assert response.status_code == 200

    logs = client.get("/api/logs", params={"action": "LOGOUT"}, headers=admin_headers).json()
    assert logs["total"] == 1
    assert logs["data"][0]["username"] == "instructor"
    assert logs["data"][0]["userInfo"] is None

def test_root_and_health(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["health"] == "/api/health"

    health = client.get("/api/health")
    assert health.json()["status"] == "ok"


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json()["success"] is False
    assert "/api/nowhere" in response.json()["message"]


def test_malformed_json_is_a_validation_error(client, chairman_headers):
    response = client.post(
        "/api/students",
        content="{not json",
        headers={**chairman_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False

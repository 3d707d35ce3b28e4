from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import auth


def test_health_is_public(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_unknown_route_uses_message_body(client: TestClient) -> None:
    response = client.get("/nope")
    assert response.status_code == 404
    assert "message" in response.json()


def test_path_type_errors_are_bad_requests(client: TestClient, make_user) -> None:
    user = make_user()
    response = client.put("/friendship/abc/accept", headers=auth(user))
    assert response.status_code == 400

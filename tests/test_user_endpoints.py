"""Tests for user and session endpoints."""

import json

from fastapi.testclient import TestClient

from warp_server.api.app import create_app

API_HEADERS = {"X-Warp-API-Key": "api-key", "X-Warp-Client": "web"}
MASTER_HEADERS = {**API_HEADERS, "X-Warp-Master-Key": "master-key"}


def log_in(client: TestClient, username: str, password: str) -> str:
    response = client.post(
        "/api/1/login",
        json={"username": username, "password": password},
        headers=API_HEADERS,
    )
    assert response.status_code == 200
    return response.json()["result"]["session_token"]


def test_api_key_is_required(container) -> None:
    client = TestClient(create_app(container))

    missing = client.get("/api/1/users")
    wrong = client.get("/api/1/users", headers={"X-Warp-API-Key": "wrong"})

    for response in (missing, wrong):
        assert response.status_code == 401
        assert response.json() == {"code": 108, "message": "Invalid API key"}


def test_health(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/health").json() == {"status": "ok"}


def test_sign_up_log_in_and_me(container) -> None:
    client = TestClient(create_app(container))

    created = client.post(
        "/api/1/users",
        json={"username": "alice", "email": "alice@example.com", "password": "pw"},
        headers=API_HEADERS,
    )
    assert created.status_code == 200
    user = created.json()["result"]
    assert user["username"] == "alice"
    assert "password_hash" not in user

    token = log_in(client, "alice", "pw")
    me = client.get(
        "/api/1/users/me", headers={**API_HEADERS, "X-Warp-Session-Token": token}
    )

    assert me.status_code == 200
    assert me.json()["result"]["id"] == user["id"]


def test_login_session_payload(container) -> None:
    container.user_service.repository.add(
        "alice", password="pw", email="alice@example.com"
    )
    client = TestClient(create_app(container))

    response = client.post(
        "/api/1/login",
        json={"email": "alice@example.com", "password": "pw"},
        headers=API_HEADERS,
    )

    session = response.json()["result"]
    assert session["user"] == {"type": "pointer", "class_name": "user", "id": 1}
    assert session["origin"] == "web"
    assert session["session_token"]


def test_invalid_credentials(container) -> None:
    container.user_service.repository.add("alice", password="pw")
    client = TestClient(create_app(container))

    response = client.post(
        "/api/1/login",
        json={"username": "alice", "password": "wrong"},
        headers=API_HEADERS,
    )

    assert response.status_code == 401
    assert response.json() == {"code": 102, "message": "Invalid username/password"}


def test_login_requires_identifier(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/1/login", json={"password": "pw"}, headers=API_HEADERS
    )

    assert response.status_code == 400
    assert response.json()["code"] == 100


def test_me_without_session(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/1/users/me", headers=MASTER_HEADERS)

    assert response.status_code == 401
    assert response.json()["code"] == 103


def test_logout_revokes_token(container) -> None:
    container.user_service.repository.add("alice", password="pw")
    client = TestClient(create_app(container))
    token = log_in(client, "alice", "pw")
    headers = {**API_HEADERS, "X-Warp-Session-Token": token}

    assert client.post("/api/1/logout", headers=headers).status_code == 200
    assert client.get("/api/1/users/me", headers=headers).status_code == 401
    assert client.post("/api/1/logout", headers=headers).json()["code"] == 103


def test_update_other_user_is_forbidden(container) -> None:
    repository = container.user_service.repository
    repository.add("alice", password="pw", user_id=7)
    repository.add("bob", password="pw", user_id=9)
    client = TestClient(create_app(container))
    token = log_in(client, "alice", "pw")

    response = client.put(
        "/api/1/users/9",
        json={"username": "hacked"},
        headers={**API_HEADERS, "X-Warp-Session-Token": token},
    )

    assert response.status_code == 403
    assert response.json()["code"] == 101
    assert repository.users[9].username == "bob"


def test_master_can_destroy_user(container) -> None:
    container.user_service.repository.add("bob", user_id=9)
    client = TestClient(create_app(container))

    response = client.delete("/api/1/users/9", headers=MASTER_HEADERS)

    assert response.status_code == 200
    assert response.json()["result"]["id"] == 9
    assert client.delete("/api/1/users/9", headers=MASTER_HEADERS).status_code == 404


def test_find_users_with_query_parameters(container) -> None:
    repository = container.user_service.repository
    for name in ("alice", "bob", "anna"):
        repository.add(name)
    client = TestClient(create_app(container))

    response = client.get(
        "/api/1/users",
        params={
            "where": json.dumps({"username": {"startsWith": "a"}}),
            "sort": json.dumps(["-username"]),
            "select": json.dumps(["username"]),
        },
        headers=API_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["result"] == [
        {"id": 3, "username": "anna"},
        {"id": 1, "username": "alice"},
    ]


def test_find_users_rejects_bad_queries(container) -> None:
    client = TestClient(create_app(container))

    bad_json = client.get(
        "/api/1/users", params={"where": "{not json"}, headers=API_HEADERS
    )
    bad_operator = client.get(
        "/api/1/users",
        params={"where": json.dumps({"username": {"like": "a"}})},
        headers=API_HEADERS,
    )
    too_many = client.get(
        "/api/1/users", params={"limit": 1001}, headers=API_HEADERS
    )

    assert bad_json.status_code == 400
    assert bad_operator.json()["code"] == 100
    assert too_many.status_code == 400


def test_get_missing_user(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/1/users/42", headers=API_HEADERS)

    assert response.status_code == 403

"""Tests for generic class and function endpoints."""

import json

from fastapi.testclient import TestClient

from warp_server.api.app import create_app

API_HEADERS = {"X-Warp-API-Key": "api-key"}


def test_create_and_fetch_object(container) -> None:
    client = TestClient(create_app(container))

    created = client.post(
        "/api/1/classes/post",
        json={"title": "Hello", "views": 3, "author": 1},
        headers=API_HEADERS,
    )
    assert created.status_code == 200
    post = created.json()["result"]
    assert post["author"] == {"type": "pointer", "class_name": "user", "id": 1}

    fetched = client.get(f"/api/1/classes/post/{post['id']}", headers=API_HEADERS)
    missing = client.get("/api/1/classes/post/404", headers=API_HEADERS)

    assert fetched.json()["result"]["title"] == "Hello"
    assert missing.status_code == 200
    assert missing.json() == {"result": None}


def test_find_objects_with_subquery(container) -> None:
    users = container.user_service.repository
    alice = users.add("alice")
    bob = users.add("bob")
    posts = container.model_registry.get("post")
    posts.add(title="Mine", author=alice.id)
    posts.add(title="Yours", author=bob.id)
    client = TestClient(create_app(container))

    response = client.get(
        "/api/1/classes/post",
        params={
            "where": json.dumps(
                {
                    "author": {
                        "matchesQuery": {
                            "className": "user",
                            "where": {"username": "bob"},
                        }
                    }
                }
            )
        },
        headers=API_HEADERS,
    )

    assert response.status_code == 200
    assert [post["title"] for post in response.json()["result"]] == ["Yours"]


def test_subquery_on_private_user_field_is_rejected(container) -> None:
    client = TestClient(create_app(container))

    response = client.get(
        "/api/1/classes/post",
        params={
            "where": json.dumps(
                {
                    "author": {
                        "matchesQuery": {
                            "className": "user",
                            "where": {"password_hash": {"startsWith": "a"}},
                        }
                    }
                }
            )
        },
        headers=API_HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["code"] == 100


def test_update_and_destroy_object(container) -> None:
    post = container.model_registry.get("post").add(title="Draft")
    client = TestClient(create_app(container))

    updated = client.put(
        f"/api/1/classes/post/{post.id}", json={"views": 10}, headers=API_HEADERS
    )
    destroyed = client.delete(f"/api/1/classes/post/{post.id}", headers=API_HEADERS)
    again = client.delete(f"/api/1/classes/post/{post.id}", headers=API_HEADERS)

    assert updated.json()["result"]["views"] == 10
    assert destroyed.status_code == 200
    assert again.status_code == 404
    assert again.json()["code"] == 106


def test_invalid_keys_are_rejected(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/1/classes/post", json={"views": "many"}, headers=API_HEADERS
    )

    assert response.status_code == 400
    assert response.json()["code"] == 100


def test_unknown_class(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/1/classes/missing", headers=API_HEADERS)

    assert response.status_code == 404
    assert response.json()["code"] == 105


def test_run_function(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/1/functions/echo", json={"a": 1}, headers=API_HEADERS
    )
    missing = client.post("/api/1/functions/nope", headers=API_HEADERS)

    assert response.json() == {"result": {"keys": {"a": 1}, "user_id": None}}
    assert missing.status_code == 404
    assert missing.json()["code"] == 107

import threading
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import auth_headers, register
from user_api.core.config import settings
from user_api.core.database import reset_db
from user_api.core.security import create_access_token
from user_api.main import app
from user_api.services import auth_service as auth_service_module
from user_api.services.profile_service import profile_service
from user_api.services.seed_service import SAMPLE_PASSWORD
from user_api.storage.user_store import memory_store


def test_register_returns_user_and_token(client):
    response = register(client, email="JOHN@Example.com")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "john@example.com"
    assert user["name"] == "John Doe"
    assert user["age"] == 30
    assert "password" not in user
    assert body["data"]["token"]


def test_register_duplicate_email(client):
    register(client, email="JOHN@Example.com")

    response = register(client, email="john@example.com")

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Bad Request",
        "message": "User with this email already exists",
    }


def test_register_validation_errors(client):
    response = register(client, name="", email="bad", password="123", age=200)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation Error"
    assert {error["field"] for error in body["errors"]} == {"name", "email", "password", "age"}


def test_register_wrong_body_type_is_400(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "John", "email": "john@example.com", "password": "secret1", "age": "thirty"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


def test_login_success_and_failures_look_alike(client):
    register(client)

    ok = client.post("/api/auth/login", json={"email": "John@example.com", "password": "secret1"})
    wrong_password = client.post("/api/auth/login", json={"email": "john@example.com", "password": "wrong"})
    unknown_email = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "secret1"})

    assert ok.status_code == 200
    assert "password" not in ok.json()["data"]["user"]
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {
        "success": False,
        "error": "Unauthorized",
        "message": "Invalid email or password",
    }


def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json()["message"] == "No token provided. Please login first."


def test_profile_rejects_invalid_and_expired_tokens(client):
    invalid = client.get("/api/auth/profile", headers=auth_headers("garbage"))
    expired_token = create_access_token(1, "john@example.com", expires_delta=timedelta(seconds=-5))
    expired = client.get("/api/auth/profile", headers=auth_headers(expired_token))

    assert invalid.status_code == expired.status_code == 401
    assert invalid.json()["message"] == "Invalid token. Please login again."
    assert expired.json()["message"] == "Token expired. Please login again."


def test_get_profile(client):
    token = register(client).json()["data"]["token"]

    response = client.get("/api/auth/profile", headers=auth_headers(token))

    assert response.status_code == 200
    data = response.json()["data"]
    assert set(data) == {"id", "name", "email", "age", "created_at", "updated_at"}


def test_list_and_get_users(client):
    token = register(client).json()["data"]["token"]
    register(client, name="Jane Smith", email="jane@example.com")

    listed = client.get("/api/users", headers=auth_headers(token))
    assert listed.status_code == 200
    body = listed.json()
    assert body["count"] == 2
    assert [user["email"] for user in body["data"]] == ["john@example.com", "jane@example.com"]

    jane_id = body["data"][1]["id"]
    single = client.get(f"/api/users/{jane_id}", headers=auth_headers(token))
    assert single.json()["data"]["name"] == "Jane Smith"

    missing = client.get("/api/users/9999", headers=auth_headers(token))
    assert missing.status_code == 404
    assert missing.json()["message"] == "User not found"


def test_users_require_token(client):
    assert client.get("/api/users").status_code == 401
    assert client.get("/api/users/1").status_code == 401


def test_update_profile_age_only(client):
    token = register(client).json()["data"]["token"]
    before = client.get("/api/auth/profile", headers=auth_headers(token)).json()["data"]

    response = client.put("/api/users/profile", json={"age": 31}, headers=auth_headers(token))

    assert response.status_code == 200
    after = response.json()["data"]
    assert after["age"] == 31
    assert after["name"] == before["name"]
    assert after["email"] == before["email"]
    assert datetime.fromisoformat(after["updated_at"]) > datetime.fromisoformat(before["updated_at"])


def test_update_profile_out_of_range_age(client):
    token = register(client).json()["data"]["token"]

    response = client.put("/api/users/profile", json={"age": 200}, headers=auth_headers(token))

    assert response.status_code == 400
    assert response.json()["message"] == "Age must be between 0 and 150"
    profile = client.get("/api/auth/profile", headers=auth_headers(token)).json()["data"]
    assert profile["age"] == 30


def test_update_profile_empty_body(client):
    token = register(client).json()["data"]["token"]

    response = client.put("/api/users/profile", json={}, headers=auth_headers(token))

    assert response.status_code == 400
    assert response.json()["message"] == "No fields to update"


def test_update_profile_email_taken(client):
    token = register(client).json()["data"]["token"]
    register(client, name="Jane Smith", email="jane@example.com")

    response = client.put("/api/users/profile", json={"email": "JANE@example.com"}, headers=auth_headers(token))

    assert response.status_code == 400
    assert response.json()["message"] == "Email already exists"


def test_change_password_flow(client):
    token = register(client).json()["data"]["token"]

    missing_current = client.put(
        "/api/users/profile", json={"newPassword": "newsecret"}, headers=auth_headers(token)
    )
    wrong_current = client.put(
        "/api/users/profile",
        json={"currentPassword": "wrong", "newPassword": "newsecret"},
        headers=auth_headers(token),
    )
    changed = client.put(
        "/api/users/profile",
        json={"currentPassword": "secret1", "newPassword": "newsecret"},
        headers=auth_headers(token),
    )

    assert missing_current.status_code == 400
    assert wrong_current.status_code == 401
    assert wrong_current.json()["message"] == "Current password is incorrect"
    assert changed.status_code == 200
    old_login = client.post("/api/auth/login", json={"email": "john@example.com", "password": "secret1"})
    new_login = client.post("/api/auth/login", json={"email": "john@example.com", "password": "newsecret"})
    assert old_login.status_code == 401
    assert new_login.status_code == 200


def test_delete_account(client):
    token = register(client).json()["data"]["token"]

    no_password = client.request("DELETE", "/api/users/account", json={}, headers=auth_headers(token))
    wrong_password = client.request(
        "DELETE", "/api/users/account", json={"password": "wrong"}, headers=auth_headers(token)
    )
    deleted = client.request(
        "DELETE", "/api/users/account", json={"password": "secret1"}, headers=auth_headers(token)
    )

    assert no_password.status_code == 400
    assert wrong_password.status_code == 401
    assert deleted.status_code == 200
    assert set(deleted.json()["data"]) == {"id", "name", "email"}

    # The token still verifies but the account is gone
    profile = client.get("/api/auth/profile", headers=auth_headers(token))
    assert profile.status_code == 404


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "Not Found",
        "message": "Route /api/nothing-here not found",
    }


def test_root_and_health(client):
    assert client.get("/").json()["success"] is True
    health = client.get("/health").json()
    assert health["status"] == "healthy"


def test_register_rejects_boolean_age(client):
    response = register(client, age=True)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert body["errors"][0]["field"] == "age"
    assert client.post("/api/auth/login", json={"email": "john@example.com", "password": "secret1"}).status_code == 401


def test_update_profile_rejects_boolean_age(client):
    token = register(client).json()["data"]["token"]

    response = client.put("/api/users/profile", json={"age": False}, headers=auth_headers(token))

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "age"
    profile = client.get("/api/auth/profile", headers=auth_headers(token)).json()["data"]
    assert profile["age"] == 30


def test_register_rejects_password_longer_than_bcrypt_limit(client):
    response = register(client, password="p" * 73)

    assert response.status_code == 400
    assert response.json()["message"] == "Password must be at most 72 bytes"


def test_slow_login_does_not_block_other_requests(client, monkeypatch):
    register(client)
    started = threading.Event()
    release = threading.Event()
    real_verify = auth_service_module.verify_password

    def slow_verify(plain_password, hashed_password):
        started.set()
        release.wait(5)
        return real_verify(plain_password, hashed_password)

    monkeypatch.setattr(auth_service_module, "verify_password", slow_verify)
    results = {}

    def do_login():
        results["login"] = client.post("/api/auth/login", json={"email": "john@example.com", "password": "secret1"})

    login_thread = threading.Thread(target=do_login)
    login_thread.start()
    try:
        assert started.wait(5)
        health = client.get("/health")
        login_still_running = login_thread.is_alive()
    finally:
        release.set()
        login_thread.join(10)

    assert health.status_code == 200
    assert login_still_running
    assert results["login"].status_code == 200


def test_unexpected_error_returns_server_error_envelope(client, monkeypatch):
    token = register(client).json()["data"]["token"]

    def broken_list_users(store):
        raise RuntimeError("database went away")

    monkeypatch.setattr(profile_service, "list_users", broken_list_users)
    quiet_client = TestClient(app, raise_server_exceptions=False)

    response = quiet_client.get("/api/users", headers=auth_headers(token))

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Server Error", "message": "Something went wrong"}


def test_unexpected_error_includes_stack_in_development(client, monkeypatch):
    token = register(client).json()["data"]["token"]

    def broken_list_users(store):
        raise RuntimeError("database went away")

    monkeypatch.setattr(profile_service, "list_users", broken_list_users)
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    quiet_client = TestClient(app, raise_server_exceptions=False)

    body = quiet_client.get("/api/users", headers=auth_headers(token)).json()

    assert body["error"] == "Server Error"
    assert body["message"] == "database went away"
    assert body["stack"]


@pytest.mark.parametrize("backend", ["sql", "memory"])
def test_startup_seeds_sample_users(backend, monkeypatch):
    monkeypatch.setattr(settings, "USER_STORE_BACKEND", backend)
    monkeypatch.setattr(settings, "SEED_SAMPLE_USERS", True)
    reset_db()
    memory_store.clear()

    with TestClient(app) as seeded_client:
        response = seeded_client.post(
            "/api/auth/login", json={"email": "jane@example.com", "password": SAMPLE_PASSWORD}
        )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["name"] == "Jane Smith"

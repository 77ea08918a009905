import os

# Settings are read at import time, so the environment must be set first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["USER_STORE_BACKEND"] = "sql"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["JWT_EXPIRE"] = "1h"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["SEED_SAMPLE_USERS"] = "false"

import pytest
from fastapi.testclient import TestClient

from user_api.core.config import settings
from user_api.core.database import SessionLocal, reset_db
from user_api.main import app
from user_api.storage.user_store import InMemoryUserStore, SQLUserStore, memory_store


@pytest.fixture(params=["sql", "memory"])
def client(request, monkeypatch):
    """Runs an HTTP test once per User Store backend"""
    monkeypatch.setattr(settings, "USER_STORE_BACKEND", request.param)
    reset_db()
    memory_store.clear()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def memory_user_store():
    return InMemoryUserStore()


@pytest.fixture
def sql_user_store():
    reset_db()
    db = SessionLocal()
    try:
        yield SQLUserStore(db)
    finally:
        db.close()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    """Runs a test once per User Store backend"""
    if request.param == "memory":
        return request.getfixturevalue("memory_user_store")
    return request.getfixturevalue("sql_user_store")


def register(client, name="John Doe", email="john@example.com", password="secret1", age=30):
    return client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password, "age": age},
    )


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}

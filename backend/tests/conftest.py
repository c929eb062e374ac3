from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from todo_api.config import Settings
from todo_api.db import init_db
from todo_api.main import create_app

SECRET = "test-secret"
PASSWORD = "TestPass123"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret=SECRET,
        pbkdf2_iters=1000,
        db_init_retries=1,
        log_level="WARNING",
    )


@pytest.fixture
def engine(settings):
    eng = init_db(settings)
    yield eng
    eng.dispose()


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def register(client, email="test@example.com", name="Test User", password=PASSWORD) -> str:
    res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    return res.json()["data"]["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token(client) -> str:
    return register(client)


@pytest.fixture
def auth(token) -> dict:
    return bearer(token)

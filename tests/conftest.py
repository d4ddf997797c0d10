"""
Shared fixtures: one app and one SQLite file per test.
"""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

ADMIN_EMAIL = "admin@x.com"
ADMIN_PASSWORD = "admin-pw"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key="test-secret",
        database_url=f"sqlite:///{tmp_path / 'test.sqlite'}",
        bcrypt_rounds=4,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    def _register(email: str = "a@x.com", password: str = "pw1"):
        return client.post("/auth/register", json={"email": email, "password": password})

    return _register


@pytest.fixture
def bearer():
    def _bearer(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _bearer


@pytest.fixture
def user_token(register):
    return register().json()["accessToken"]


@pytest.fixture
def admin_token(client):
    resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return resp.json()["accessToken"]

import pytest
from fastapi.testclient import TestClient

from tracker.core.config import settings
from tracker.main import app


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'tracker_test.db'}"
    monkeypatch.setattr(settings, "DATABASE_URL", url)
    monkeypatch.setattr(settings, "INIT_DB_ON_STARTUP", True)
    return url


@pytest.fixture
def client(database_url):
    with TestClient(app) as test_client:
        yield test_client


def register(client, email="alice@example.com", password="secret123", name="Alice"):
    return client.post("/auth/register", json={"email": email, "password": password, "name": name})


@pytest.fixture
def auth_headers(client):
    response = register(client)
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def project(client, auth_headers):
    response = client.post("/projects", json={"name": "Launch"}, headers=auth_headers)
    assert response.status_code == 201
    return response.json()

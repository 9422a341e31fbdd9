from datetime import datetime, timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from auth import AuthGate, EnvCredentialStore


class FakeClock:
    def __init__(self, now=datetime(2024, 1, 1, 12, 0, 0)):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    return mongomock.MongoClient().landingpage


@pytest.fixture
def gate():
    store = EnvCredentialStore("admin@example.com", "admin123")
    return AuthGate("test-secret", store, timedelta(days=7))


@pytest.fixture
def client(db):
    main.app.dependency_overrides[main.get_db] = lambda: db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client):
    resp = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "admin123"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def review_payload(**overrides):
    payload = {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "rating": 5,
        "comment": "Great work on our kitchen.",
    }
    payload.update(overrides)
    return payload

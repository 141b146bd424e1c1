"""Pytest configuration and shared fixtures.

Set environment before any app module imports: temp SQLite, fast bcrypt,
temp upload/outbox dirs, generous rate limits.
Provides reusable fixtures: database, app client, user/resource helpers.
"""
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="campus-tests-")

# Force test configuration before any app import
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/default.db"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ["UPLOAD_DIR"] = f"{_TMP}/uploads"
os.environ["EMAIL_OUTBOX_DIR"] = f"{_TMP}/outbox"
os.environ["EMAIL_MODE"] = "file"
os.environ["INSTITUTIONAL_EMAIL_DOMAINS"] = "uw.edu"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_AUTH_PER_MINUTE"] = "100000"

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.db.session import Database
from app.main import create_app

PASSWORD = "correct-horse-1"

# A 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000000000200015e2b2e7b0000000049454e44ae426082"
)


# ── Database fixtures ────────────────────────────────────────────────

@pytest.fixture()
def database(tmp_path):
    """File-backed SQLite Database with all tables."""
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture()
def db(database):
    """SQLAlchemy session bound to the test database."""
    session = database.session()
    yield session
    session.close()


# ── App fixtures ─────────────────────────────────────────────────────

@pytest.fixture()
def outbox(tmp_path, monkeypatch):
    path = tmp_path / "outbox"
    monkeypatch.setenv("EMAIL_OUTBOX_DIR", str(path))
    return path


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture()
def app(tmp_path, upload_dir, outbox):
    """Fresh app with its own SQLite file, upload dir and outbox."""
    return create_app(database_url=f"sqlite:///{tmp_path / 'api.db'}")


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def app_db(app, client):
    """Session on the app's own database, for asserting on stored rows."""
    session = app.state.db.session()
    yield session
    session.close()


# ── Helpers ──────────────────────────────────────────────────────────

def signup(client: TestClient, email: str, password: str = PASSWORD, name: str | None = None):
    body = {"email": email, "password": password}
    if name is not None:
        body["name"] = name
    return client.post("/api/signup", json=body)


def login(client: TestClient, email: str, password: str = PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def auth_headers(client: TestClient, email: str, name: str | None = None) -> dict[str, str]:
    """Sign up (if needed) and log in; return bearer headers."""
    signup(client, email, name=name)
    resp = login(client, email)
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def create_resource(client: TestClient, headers: dict[str, str], **fields) -> dict:
    data = {"name": "Library", "category": "Library"}
    data.update(fields)
    resp = client.post("/api/resources", data=data, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture()
def alice(client):
    return auth_headers(client, "alice@uw.edu", name="Alice")


@pytest.fixture()
def bob(client):
    return auth_headers(client, "bob@uw.edu", name="Bob")


@pytest.fixture()
def carol(client):
    return auth_headers(client, "carol@uw.edu", name="Carol")


# ── Markers ──────────────────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks slow tests")
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line("markers", "unit: marks unit tests")

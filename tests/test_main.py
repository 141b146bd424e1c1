"""App wiring: root, health, headers, error shape, lifecycle."""
from fastapi.testclient import TestClient

from app.core.config import settings
from app.db.session import Database
from app.main import create_app
from tests.conftest import auth_headers, create_resource


def test_root(client) -> None:
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == settings.app_name
    assert data["status"] == "running"


def test_health_ok(client, alice) -> None:
    create_resource(client, alice)
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["db"] == "ok"
    assert data["resources"] == 1
    assert data["users"] == 1


def test_health_degraded(client, monkeypatch) -> None:
    monkeypatch.setattr(Database, "check_connection", lambda self: False)
    response = client.get("/health")
    assert response.status_code == 503
    data = response.json()
    assert data["detail"]["status"] == "degraded"
    assert data["detail"]["db"] == "error"


def test_security_headers_present(client) -> None:
    resp = client.get("/health")
    assert resp.headers.get("X-Content-Type-Options") == "nosniff"
    assert resp.headers.get("X-Frame-Options") == "DENY"
    assert resp.headers.get("X-XSS-Protection") == "1; mode=block"
    assert "strict-origin" in resp.headers.get("Referrer-Policy", "")


def test_unhandled_error_is_json_500(tmp_path, monkeypatch) -> None:
    app = create_app(database_url=f"sqlite:///{tmp_path / 'boom.db'}")

    def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr("app.services.resource_service.list_resources", boom)
    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get("/api/resources")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}
    assert "kaboom" not in resp.text


def test_schema_error_names_field(client, alice) -> None:
    res = create_resource(client, alice)
    resp = client.post(f"/api/resources/{res['id']}", json={}, headers=alice)
    assert resp.status_code == 422
    body = resp.json()
    assert body["field"] == "rating"
    assert body["detail"].startswith("rating:")
    assert body["errors"][0]["loc"] == ["body", "rating"]


def test_apps_do_not_share_data(tmp_path) -> None:
    first = create_app(database_url=f"sqlite:///{tmp_path / 'one.db'}")
    second = create_app(database_url=f"sqlite:///{tmp_path / 'two.db'}")
    with TestClient(first) as a, TestClient(second) as b:
        headers = auth_headers(a, "solo@uw.edu")
        create_resource(a, headers)
        assert len(a.get("/api/resources").json()) == 1
        assert b.get("/api/resources").json() == []


def test_pool_disposed_on_shutdown(tmp_path, monkeypatch) -> None:
    disposed = []
    monkeypatch.setattr(Database, "dispose", lambda self: disposed.append(self))
    app = create_app(database_url=f"sqlite:///{tmp_path / 'life.db'}")
    with TestClient(app):
        assert disposed == []
    assert disposed == [app.state.db]

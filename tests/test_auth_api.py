"""Signup, login and session endpoints."""
import pytest

from app.core.config import settings
from app.models.user import User
from tests.conftest import PASSWORD, auth_headers, login, signup


class TestSignup:

    def test_signup_creates_user(self, client, app_db):
        resp = signup(client, "New.User@UW.edu", name="New User")
        assert resp.status_code == 201
        data = resp.json()
        assert data["message"] == "User created successfully"
        assert data["user"]["email"] == "new.user@uw.edu"
        assert data["user"]["name"] == "New User"
        assert data["user"]["avatar_url"] == settings.default_avatar_url
        assert "password" not in str(data).lower()

        user = app_db.query(User).filter(User.email == "new.user@uw.edu").one()
        assert user.password_hash and user.password_hash != PASSWORD
        assert user.email_notifications is True
        assert user.push_notifications is False

    def test_signup_does_not_issue_a_session(self, client):
        resp = signup(client, "nosession@uw.edu")
        assert resp.status_code == 201
        assert "access_token" not in resp.json()

    def test_non_institutional_email_rejected(self, client, app_db):
        resp = signup(client, "someone@gmail.com")
        assert resp.status_code == 400
        body = resp.json()
        assert body["field"] == "email"
        assert "@uw.edu" in body["detail"]
        assert app_db.query(User).count() == 0

    def test_lookalike_domain_rejected(self, client):
        assert signup(client, "x@notuw.edu").status_code == 400
        assert signup(client, "x@uw.edu.evil.com").status_code == 400

    @pytest.mark.parametrize("email", ["@uw.edu", "a b@uw.edu", "a..b@uw.edu", "alice@@uw.edu", "alice"])
    def test_malformed_email_rejected(self, client, app_db, email):
        resp = signup(client, email)
        assert resp.status_code == 400
        assert resp.json()["field"] == "email"
        assert app_db.query(User).count() == 0

    def test_duplicate_email_conflict(self, client, app_db):
        assert signup(client, "dup@uw.edu").status_code == 201
        resp = signup(client, "DUP@uw.edu", password="another-pass-1")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "User already exists"
        assert app_db.query(User).filter(User.email == "dup@uw.edu").count() == 1

    def test_short_password_rejected(self, client):
        resp = signup(client, "short@uw.edu", password="abc")
        assert resp.status_code == 400
        assert resp.json()["field"] == "password"

    def test_missing_fields_is_schema_error(self, client):
        resp = client.post("/api/signup", json={"email": "x@uw.edu"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["field"] == "password"
        assert body["detail"].startswith("password:")


class TestLogin:

    def test_correct_password_returns_session(self, client):
        signup(client, "login@uw.edu", name="Lo Gin")
        resp = login(client, "login@uw.edu")
        assert resp.status_code == 200
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["email"] == "login@uw.edu"
        assert data["user"]["name"] == "Lo Gin"
        assert data["user"]["image"] == settings.default_avatar_url

    def test_legacy_login_path(self, client):
        signup(client, "legacy@uw.edu")
        resp = client.post("/api/login", json={"email": "legacy@uw.edu", "password": PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        signup(client, "victim@uw.edu")
        wrong = login(client, "victim@uw.edu", password="not-the-password")
        unknown = login(client, "ghost@uw.edu")
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"detail": "Invalid credentials"}

    def test_login_is_case_insensitive_on_email(self, client):
        signup(client, "mixed@uw.edu")
        assert login(client, "MIXED@UW.EDU").status_code == 200

    def test_account_without_password_cannot_log_in(self, client, app_db):
        app_db.add(User(email="nopass@uw.edu", password_hash=None))
        app_db.commit()
        signup(client, "haspass@uw.edu")

        no_hash = login(client, "nopass@uw.edu")
        wrong = login(client, "haspass@uw.edu", password="not-the-password")
        assert no_hash.status_code == wrong.status_code == 401
        assert no_hash.json() == wrong.json() == {"detail": "Invalid credentials"}

    def test_successful_login_writes_nothing(self, client, app_db):
        signup(client, "still@uw.edu")
        before = app_db.query(User).filter(User.email == "still@uw.edu").one()
        snapshot = (before.password_hash, before.updated_at, before.name, before.avatar_url)
        app_db.expire_all()

        assert login(client, "still@uw.edu").status_code == 200
        after = app_db.query(User).filter(User.email == "still@uw.edu").one()
        assert (after.password_hash, after.updated_at, after.name, after.avatar_url) == snapshot

    def test_missing_secret_returns_503(self, client, monkeypatch):
        signup(client, "nosecret@uw.edu")
        monkeypatch.setattr(settings, "jwt_secret_key", None)
        resp = login(client, "nosecret@uw.edu")
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Authentication service unavailable"


class TestSession:

    def test_session_returns_current_user(self, client):
        headers = auth_headers(client, "me@uw.edu", name="Me")
        resp = client.get("/api/auth/session", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == "me@uw.edu"
        assert resp.json()["name"] == "Me"

    def test_no_token_is_unauthorized(self, client):
        resp = client.get("/api/auth/session")
        assert resp.status_code == 401
        assert resp.json() == {"detail": "Unauthorized"}
        assert resp.headers.get("www-authenticate") == "Bearer"

    def test_bad_token_is_unauthorized(self, client):
        resp = client.get("/api/auth/session", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_token_for_deleted_user_is_unauthorized(self, client, app_db):
        headers = auth_headers(client, "gone@uw.edu")
        app_db.query(User).filter(User.email == "gone@uw.edu").delete()
        app_db.commit()
        assert client.get("/api/auth/session", headers=headers).status_code == 401

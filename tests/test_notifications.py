"""Notification emails (file-mode outbox)."""
import pytest

from app.notifications import emailer
from tests.conftest import auth_headers, create_resource


def _outbox_files(outbox):
    if not outbox.exists():
        return []
    return sorted(outbox.glob("email_*.txt"))


class TestNotificationEndpoint:

    def test_sends_to_current_user(self, client, alice, outbox):
        resp = client.post("/api/notifications", headers=alice)
        assert resp.status_code == 200
        assert resp.json() == {"message": "Email notification sent successfully"}
        files = _outbox_files(outbox)
        assert len(files) == 1
        content = files[0].read_text(encoding="utf-8")
        assert "To: alice@uw.edu" in content
        assert "Subject: Notification" in content
        assert "Hi Alice," in content

    def test_sends_to_explicit_address(self, client, alice, outbox):
        resp = client.post("/api/notifications", json={"email": "friend@uw.edu"}, headers=alice)
        assert resp.status_code == 200
        assert "To: friend@uw.edu" in _outbox_files(outbox)[0].read_text(encoding="utf-8")

    def test_opted_out_user(self, client, alice, outbox):
        client.put("/api/settings/update", json={"email_notifications": False}, headers=alice)
        resp = client.post("/api/notifications", headers=alice)
        assert resp.status_code == 400
        assert resp.json()["field"] == "email_notifications"
        assert _outbox_files(outbox) == []

    def test_send_failure_is_503(self, client, alice, monkeypatch):
        def boom(**kwargs):
            raise OSError("smtp down")

        monkeypatch.setattr("app.services.notification_service.send_email", boom)
        resp = client.post("/api/notifications", headers=alice)
        assert resp.status_code == 503
        assert resp.json() == {"detail": "Failed to send notification"}

    def test_requires_session(self, client):
        assert client.post("/api/notifications").status_code == 401


class TestReviewAlerts:

    def test_owner_is_emailed_about_new_review(self, client, alice, bob, outbox):
        res = create_resource(client, alice, name="Music Practice Room")
        client.post(f"/api/resources/{res['id']}", json={"rating": 4, "comment": "Good piano"}, headers=bob)
        files = _outbox_files(outbox)
        assert len(files) == 1
        content = files[0].read_text(encoding="utf-8")
        assert "To: alice@uw.edu" in content
        assert "Subject: New review on Music Practice Room" in content
        assert "Bob rated" in content
        assert "Good piano" in content
        assert "Average rating is now 4.0." in content

    def test_no_alert_for_own_review(self, client, alice, outbox):
        res = create_resource(client, alice)
        client.post(f"/api/resources/{res['id']}", json={"rating": 5}, headers=alice)
        assert _outbox_files(outbox) == []

    def test_no_alert_when_owner_opted_out(self, client, alice, bob, outbox):
        client.put("/api/settings/update", json={"email_notifications": False}, headers=alice)
        res = create_resource(client, alice)
        client.post(f"/api/resources/{res['id']}", json={"rating": 5}, headers=bob)
        assert _outbox_files(outbox) == []

    def test_mail_failure_does_not_fail_review(self, client, alice, bob, monkeypatch):
        def boom(**kwargs):
            raise OSError("smtp down")

        monkeypatch.setattr("app.services.notification_service.send_email", boom)
        res = create_resource(client, alice)
        resp = client.post(f"/api/resources/{res['id']}", json={"rating": 3}, headers=bob)
        assert resp.status_code == 201
        assert client.get(f"/api/resources/{res['id']}").json()["average_rating"] == 3.0


class TestEmailer:

    def test_file_mode_writes_headers_and_body(self, outbox):
        emailer.send_email(to="x@uw.edu", subject="Hello", body="Body text")
        content = _outbox_files(outbox)[0].read_text(encoding="utf-8")
        assert content.startswith(f"From: {emailer.DEFAULT_FROM}\nTo: x@uw.edu\nSubject: Hello\n")
        assert content.endswith("\n\nBody text")

    def test_mode_comment_is_ignored(self, monkeypatch):
        monkeypatch.setattr(emailer.settings, "email_mode", "file # outbox")
        assert emailer._email_mode() == "file"

    def test_smtp_mode_requires_host(self, monkeypatch):
        monkeypatch.setattr(emailer.settings, "email_mode", "smtp")
        monkeypatch.setattr(emailer.settings, "email_smtp_host", None)
        with pytest.raises(ValueError):
            emailer.send_email(to="x@uw.edu", subject="s", body="b")


def test_signup_sends_nothing(client, outbox):
    auth_headers(client, "quiet@uw.edu")
    assert _outbox_files(outbox) == []

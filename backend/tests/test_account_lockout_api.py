"""Tests for the admin /auth/account-lockout endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.models.audit import AuditLog
from backend.app.models.user import User
from backend.tests.conftest import PASSWORD, WRONG_PASSWORD, FakeClock, auth, login

URL = "/api/v1/auth/account-lockout"


def _lock(client: TestClient, email: str = "member@example.com") -> None:
    for _ in range(5):
        login(client, email, WRONG_PASSWORD)


class TestAccess:
    def test_requires_authentication(self, client: TestClient) -> None:
        resp = client.get(URL, params={"email": "member@example.com"})
        assert resp.status_code == 401

    def test_member_is_forbidden(self, client: TestClient, member_token: str) -> None:
        resp = client.get(URL, params={"email": "member@example.com"}, headers=auth(member_token))
        assert resp.status_code == 403
        resp = client.post(
            URL,
            json={"email": "member@example.com", "action": "unlock"},
            headers=auth(member_token),
        )
        assert resp.status_code == 403
        resp = client.put(URL, json={"email": "member@example.com"}, headers=auth(member_token))
        assert resp.status_code == 403


class TestReadStatus:
    def test_missing_email_is_400(self, client: TestClient, admin_token: str) -> None:
        resp = client.get(URL, headers=auth(admin_token))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email parameter is required"

    def test_unknown_user_is_404(self, client: TestClient, admin_token: str) -> None:
        resp = client.get(URL, params={"email": "nobody@example.com"}, headers=auth(admin_token))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "User not found"

    def test_active_account(
        self, client: TestClient, member: User, admin_token: str
    ) -> None:
        resp = client.get(URL, params={"email": "member@example.com"}, headers=auth(admin_token))
        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == "member@example.com"
        assert data["loginAttempts"] == 0
        assert data["totalFailedAttempts"] == 0
        assert data["lastLoginAttempt"] is None
        assert data["status"] == "ACTIVE"
        assert data["lockoutInfo"] == {"isLocked": False, "remainingTime": None, "reason": None}
        assert data["lockoutConfig"] == {
            "maxAttempts": 5,
            "lockoutDuration": 120,
            "escalationAttempts": 10,
            "extendedLockoutDuration": 24,
        }

    def test_warned_account(
        self, client: TestClient, member: User, admin_token: str
    ) -> None:
        login(client, "member@example.com", WRONG_PASSWORD)
        resp = client.get(URL, params={"email": "member@example.com"}, headers=auth(admin_token))
        data = resp.json()
        assert data["status"] == "WARNED"
        assert data["loginAttempts"] == 1
        assert data["lastLoginAttempt"] is not None

    def test_locked_account(
        self, client: TestClient, member: User, admin_token: str, clock: FakeClock
    ) -> None:
        _lock(client)
        clock.advance(minutes=20)

        resp = client.get(URL, params={"email": "member@example.com"}, headers=auth(admin_token))
        data = resp.json()
        assert data["status"] == "LOCKED"
        assert data["lockoutInfo"]["isLocked"] is True
        assert data["lockoutInfo"]["remainingTime"] == 100
        assert "100 minutes" in data["lockoutInfo"]["reason"]


class TestUnlock:
    def test_unlock_lifts_lock(
        self, client: TestClient, db: Session, member: User, admin_token: str
    ) -> None:
        _lock(client)

        resp = client.post(
            URL,
            json={"email": "member@example.com", "action": "unlock"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "Account has been unlocked successfully",
            "email": "member@example.com",
        }

        db.refresh(member)
        assert member.lock_until is None
        assert member.login_attempts == 0
        assert member.total_failed_attempts == 5
        assert login(client, "member@example.com", PASSWORD).status_code == 200

    def test_unlock_is_audited(
        self, client: TestClient, db: Session, member: User, admin_user: User, admin_token: str
    ) -> None:
        _lock(client)
        client.post(
            URL,
            json={"email": "member@example.com", "action": "unlock"},
            headers=auth(admin_token),
        )
        row = db.query(AuditLog).filter(AuditLog.action == "ACCOUNT_UNLOCKED").one()
        assert row.changed_by == admin_user.id
        assert row.record_id == str(member.id)

    def test_unknown_action_is_400(
        self, client: TestClient, member: User, admin_token: str
    ) -> None:
        resp = client.post(
            URL,
            json={"email": "member@example.com", "action": "lock"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid action. Use 'unlock'"

    def test_unknown_user_is_404(self, client: TestClient, admin_token: str) -> None:
        resp = client.post(
            URL,
            json={"email": "nobody@example.com", "action": "unlock"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 404

    def test_missing_fields_are_422(self, client: TestClient, admin_token: str) -> None:
        resp = client.post(URL, json={"action": "unlock"}, headers=auth(admin_token))
        assert resp.status_code == 422


class TestResetAttempts:
    def test_reset_clears_both_counters(
        self, client: TestClient, db: Session, member: User, admin_token: str
    ) -> None:
        _lock(client)

        resp = client.put(URL, json={"email": "member@example.com"}, headers=auth(admin_token))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Login attempts have been reset successfully"

        db.refresh(member)
        assert member.login_attempts == 0
        assert member.total_failed_attempts == 0
        assert member.lock_until is None

    def test_reset_restores_standard_lock_length(
        self, client: TestClient, member: User, admin_token: str, clock: FakeClock
    ) -> None:
        # Nine lifetime failures would make the next lock an extended one
        _lock(client)
        clock.advance(minutes=121)
        for _ in range(4):
            login(client, "member@example.com", WRONG_PASSWORD)
        client.put(URL, json={"email": "member@example.com"}, headers=auth(admin_token))

        for _ in range(4):
            login(client, "member@example.com", WRONG_PASSWORD)
        resp = login(client, "member@example.com", WRONG_PASSWORD)
        assert resp.status_code == 423
        assert "120 minutes" in resp.json()["detail"]

    def test_unknown_user_is_404(self, client: TestClient, admin_token: str) -> None:
        resp = client.put(URL, json={"email": "nobody@example.com"}, headers=auth(admin_token))
        assert resp.status_code == 404

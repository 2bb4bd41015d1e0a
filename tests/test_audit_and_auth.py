from datetime import timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from sessionhub import main
from sessionhub.audit import read_audit, record_audit
from sessionhub.auth import is_admin, issue_admin_token
from sessionhub.main import app
from sessionhub.repository import InMemorySessionRepository

JWT_SECRET = "test-jwt-secret-0123456789abcdef0123"


@pytest.fixture(autouse=True)
def isolated_hub(monkeypatch, tmp_path):
    monkeypatch.delenv("ADMIN_TOKEN", raising=False)
    monkeypatch.delenv("ADMIN_JWT_SECRET", raising=False)
    monkeypatch.setenv("AUDIT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(main, "session_repository", InMemorySessionRepository())


def _create(client, user):
    r = client.post("/api/sessions/create", params={"user": user, "role": "Admin"})
    assert r.status_code == 200
    return r.json()["session_id"]


def test_admin_token_rbac(monkeypatch):
    monkeypatch.setenv("ADMIN_TOKEN", "secrettoken123")
    client = TestClient(app)
    sid = _create(client, "bob")

    r2 = client.post(f"/api/sessions/{sid}/terminate")
    assert r2.status_code == 403

    r3 = client.post(f"/api/sessions/{sid}/terminate", headers={"X-ADMIN-TOKEN": "secrettoken123"})
    assert r3.status_code == 200

    events = read_audit()
    assert any(e.get("action") == "terminate_session" and e.get("session_id") == sid for e in events)


def test_jwt_admin_rbac(monkeypatch):
    monkeypatch.setenv("ADMIN_JWT_SECRET", JWT_SECRET)
    token = jwt.encode({"role": "admin"}, JWT_SECRET, algorithm="HS256")
    client = TestClient(app)
    sid = _create(client, "alice")

    r = client.post(f"/api/sessions/{sid}/terminate", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 403

    r2 = client.post(f"/api/sessions/{sid}/terminate", headers={"Authorization": f"Bearer {token}"})
    assert r2.status_code == 200


def test_mint_token_endpoint(monkeypatch):
    monkeypatch.setenv("ADMIN_TOKEN", "legacy-token")
    monkeypatch.setenv("ADMIN_JWT_SECRET", JWT_SECRET)
    client = TestClient(app)

    assert client.post("/api/ops/token", headers={"X-ADMIN-TOKEN": "wrong"}).status_code == 403

    r = client.post("/api/ops/token", headers={"X-ADMIN-TOKEN": "legacy-token"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    sid = _create(client, "minttest")
    r3 = client.post(f"/api/sessions/{sid}/terminate", headers={"Authorization": f"Bearer {token}"})
    assert r3.status_code == 200


def test_mint_token_requires_secret(monkeypatch):
    monkeypatch.setenv("ADMIN_TOKEN", "legacy-token")
    client = TestClient(app)
    r = client.post("/api/ops/token", headers={"X-ADMIN-TOKEN": "legacy-token"})
    assert r.status_code == 400


def test_audit_endpoint_rbac(monkeypatch):
    monkeypatch.setenv("ADMIN_TOKEN", "admintoken123")
    client = TestClient(app)

    assert client.get("/api/ops/audit").status_code == 403

    r = client.get("/api/ops/audit", headers={"X-ADMIN-TOKEN": "admintoken123"})
    assert r.status_code == 200
    assert r.json() == {"events": []}


def test_expired_admin_token_rejected(monkeypatch):
    monkeypatch.setenv("ADMIN_JWT_SECRET", JWT_SECRET)
    expired = issue_admin_token(JWT_SECRET, timedelta(minutes=-1))
    fresh = issue_admin_token(JWT_SECRET, timedelta(minutes=5))

    assert is_admin(f"Bearer {expired}", None) is False
    assert is_admin(f"Bearer {fresh}", None) is True
    assert is_admin(fresh, None) is False


def test_non_admin_claims_rejected(monkeypatch):
    monkeypatch.setenv("ADMIN_JWT_SECRET", JWT_SECRET)
    token = jwt.encode({"role": "Viewer"}, JWT_SECRET, algorithm="HS256")
    assert is_admin(f"Bearer {token}", None) is False


def test_audit_log_round_trip_and_limit(tmp_path, monkeypatch):
    monkeypatch.setenv("AUDIT_LOG_DIR", str(tmp_path / "audit"))
    for i in range(3):
        record_audit({"action": "test", "n": i})
    with open(tmp_path / "audit" / "audit.log", "a", encoding="utf-8") as fh:
        fh.write("garbage\n")

    events = read_audit(limit=2)
    assert events[0]["n"] == 2
    assert "timestamp" in events[0]
    assert events[1] == {"raw": "garbage"}

import pytest

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.models import ROLE_ADMIN, User


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:1000")
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "admin-pw")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "SESSION_BACKEND"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    return app.test_client()


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True

    r = client.get("/healthz")
    assert r.status_code == 200


def test_bootstrap_admin_can_log_in(client):
    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "admin-pw"})
    assert r.status_code == 200
    assert r.json["success"] is True
    assert r.json["user"]["role"] == ROLE_ADMIN
    assert r.json["user"]["institution"] == "National Directorate"
    assert "password" not in r.json["user"]
    assert "password_hash" not in r.json["user"]


def test_bootstrap_is_idempotent_across_restarts(client, monkeypatch):
    # Second cold start against the same database, with a different default password.
    monkeypatch.setenv("ADMIN_PASSWORD", "something-else")
    app2 = create_app()

    with session_scope(app2) as s:
        admins = s.query(User).filter(User.email == "admin@example.com").all()
        assert len(admins) == 1
        assert admins[0].role == ROLE_ADMIN

    # Existing password is kept.
    c2 = app2.test_client()
    assert c2.post("/auth/login", json={"email": "admin@example.com", "password": "admin-pw"}).status_code == 200
    assert c2.post("/auth/login", json={"email": "admin@example.com", "password": "something-else"}).status_code == 401


def test_admin_area_requires_login_then_admin(client):
    # Anonymous -> 401
    r = client.get("/api/admin/stats")
    assert r.status_code == 401
    assert r.json == {"error": "Access Denied. Please Login."}

    # Student -> 403
    client.post("/auth/signup", json={"name": "Sam", "email": "sam@x.com", "password": "pw123456"})
    client.post("/auth/login", json={"email": "sam@x.com", "password": "pw123456"})
    r = client.get("/api/admin/stats")
    assert r.status_code == 403
    assert r.json == {"error": "Forbidden: Administrators Only."}

    # Admin -> 200
    client.post("/auth/logout")
    client.post("/auth/login", json={"email": "admin@example.com", "password": "admin-pw"})
    r = client.get("/api/admin/stats")
    assert r.status_code == 200
    assert r.json["students"] == 1


def test_unknown_route_is_json_404(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json == {"error": "Not Found"}


def test_production_refuses_default_secret(tmp_path, monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "change-me")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/portal")
    with pytest.raises(RuntimeError):
        create_app()


def test_production_refuses_sqlite(tmp_path, monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "a-real-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'prod.db'}")
    with pytest.raises(RuntimeError):
        create_app()

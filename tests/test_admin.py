import io

import pytest
from sqlalchemy.exc import OperationalError

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.models import AuditEvent, AuthSession, User
from app.portal.modules.chat.models import ChatMessage
from app.portal.modules.leadership.models import LeadershipApplication
from app.portal.modules.library.models import Resource
from app.portal.modules.news.models import NewsItem
from app.portal.modules.support.models import SupportTicket


def _build_app(tmp_path, monkeypatch, **extra_env):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:1000")
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "admin-pw")
    monkeypatch.setenv("NEWS_FEED_LIMIT", "5")
    for k, v in extra_env.items():
        monkeypatch.setenv(k, v)
    return create_app()


@pytest.fixture()
def app(tmp_path, monkeypatch):
    return _build_app(tmp_path, monkeypatch)


@pytest.fixture()
def admin(app):
    a = app.test_client()
    a.post("/auth/login", json={"email": "admin@example.com", "password": "admin-pw"})
    return a


def _student(app, name, email):
    c = app.test_client()
    c.post("/auth/signup", json={"name": name, "email": email, "password": "pw123456"})
    c.post("/auth/login", json={"email": email, "password": "pw123456"})
    return c


def _populate(app):
    """Two students with applications, tickets, chat and an upload."""
    students = [_student(app, "Ama", "ama@x.com"), _student(app, "Kwame", "kwame@x.com")]
    for c in students:
        c.post("/api/leadership/apply", json={"position": "Rep", "vision": "More study rooms"})
        c.post("/api/support/create", json={"message": "Cannot see my results"})
        c.post("/api/chat", json={"message": "hello everyone"})
    students[0].post(
        "/api/library/upload",
        data={"title": "Notes", "file": (io.BytesIO(b"notes"), "notes.txt")},
        content_type="multipart/form-data",
    )
    return students


def test_stats_counts(app, admin):
    _populate(app)
    r = admin.get("/api/admin/stats")
    assert r.json == {"students": 2, "leaders": 0, "pending_leaders": 2, "pending_files": 1}


def test_users_list_has_no_password_hash(app, admin):
    _populate(app)
    users = admin.get("/api/admin/users").json
    assert {u["email"] for u in users} == {"admin@example.com", "ama@x.com", "kwame@x.com"}
    assert all("password_hash" not in u and "password" not in u for u in users)


def test_admin_edits_user(app, admin):
    _populate(app)
    with session_scope(app) as s:
        ama_id = s.query(User).filter(User.email == "ama@x.com").one().id

    r = admin.post(f"/api/admin/users/{ama_id}", json={"institution": "UCC", "role": "leader"})
    assert r.json == {"success": True}
    with session_scope(app) as s:
        ama = s.get(User, ama_id)
        assert ama.institution == "UCC"
        assert ama.role == "LEADER"

    assert admin.post(f"/api/admin/users/{ama_id}", json={"role": "KING"}).status_code == 400
    assert admin.post(f"/api/admin/users/{ama_id}", json={"email": "kwame@x.com"}).status_code == 400
    assert admin.post("/api/admin/users/9999", json={"name": "x"}).status_code == 404


def test_admin_cannot_demote_or_delete_self(app, admin):
    with session_scope(app) as s:
        admin_id = s.query(User).filter(User.email == "admin@example.com").one().id
    assert admin.post(f"/api/admin/users/{admin_id}", json={"role": "STUDENT"}).status_code == 400
    assert admin.delete(f"/api/admin/users/{admin_id}").status_code == 400


def test_admin_deletes_user_and_their_session(app, admin):
    ama, _ = _populate(app)
    with session_scope(app) as s:
        ama_id = s.query(User).filter(User.email == "ama@x.com").one().id

    assert admin.delete(f"/api/admin/users/{ama_id}").json == {"success": True}
    assert ama.get("/api/user/profile").status_code == 401

    with session_scope(app) as s:
        assert s.get(User, ama_id) is None
        assert s.query(LeadershipApplication).filter(LeadershipApplication.user_id == ama_id).count() == 0
        assert s.query(AuthSession).filter(AuthSession.user_id == ama_id).count() == 0
        # Authored content survives, detached from the account.
        assert s.query(Resource).one().uploader_user_id is None
        assert s.query(SupportTicket).count() == 2


def test_broadcast_and_news_feed(app, admin):
    for i in range(7):
        r = admin.post("/api/admin/broadcast", json={"title": f"T{i}", "message": f"M{i}", "category": "General"})
        assert r.json == {"success": True}

    anon = app.test_client()
    news = anon.get("/api/news").json
    assert [n["title"] for n in news] == ["T6", "T5", "T4", "T3", "T2"]

    assert admin.post("/api/admin/broadcast", json={"title": "", "message": "x"}).status_code == 400


def test_students_cannot_broadcast(app):
    c = _student(app, "Ama", "ama@x.com")
    assert c.post("/api/admin/broadcast", json={"title": "t", "message": "m"}).status_code == 403
    with session_scope(app) as s:
        assert s.query(NewsItem).count() == 0


def test_support_tickets(app, admin):
    c = _student(app, "Ama", "ama@x.com")
    assert c.post("/api/support/create", json={"message": "Help"}).json == {"success": True}
    assert c.post("/api/support/create", json={"message": "  "}).status_code == 400
    assert app.test_client().post("/api/support/create", json={"message": "anon"}).status_code == 401

    tickets = admin.get("/api/admin/support-tickets").json
    assert [(t["user_name"], t["message"]) for t in tickets] == [("Ama", "Help")]
    assert c.get("/api/admin/support-tickets").status_code == 403


def test_chat_wall(app):
    c = _student(app, "Ama", "ama@x.com")
    anon = app.test_client()
    assert anon.post("/api/chat", json={"message": "hi"}).status_code == 401

    c.post("/api/chat", json={"message": "first"})
    c.post("/api/chat", json={"message": "second"})
    msgs = anon.get("/api/chat").json
    assert [m["message"] for m in msgs] == ["first", "second"]
    assert msgs[0]["user_name"] == "Ama"


def test_reset_system_keeps_only_admins_and_is_idempotent(app, admin):
    students = _populate(app)

    r = admin.delete("/api/admin/reset-system")
    assert r.status_code == 200
    assert r.json["success"] is True

    with session_scope(app) as s:
        assert [u.email for u in s.query(User).all()] == ["admin@example.com"]
        assert s.query(LeadershipApplication).count() == 0
        assert s.query(SupportTicket).count() == 0
        assert s.query(ChatMessage).filter(ChatMessage.user_id.isnot(None)).count() == 0
        assert s.query(AuthSession).join(User, User.id == AuthSession.user_id).filter(User.role != "ADMIN").count() == 0

    for c in students:
        assert c.get("/api/user/profile").status_code == 401

    # Admin session is untouched and a second run is a successful no-op.
    r = admin.delete("/api/admin/reset-system")
    assert r.status_code == 200
    with session_scope(app) as s:
        assert s.query(User).count() == 1
        actions = [e.action for e in s.query(AuditEvent).filter(AuditEvent.action == "maintenance.reset_system")]
        assert len(actions) == 2


def test_reset_failure_rolls_back_everything(app, admin, monkeypatch):
    _populate(app)

    from app.portal import admin as admin_module

    real_delete = admin_module.delete

    def _delete(table):
        if table is User:
            raise OperationalError("DELETE FROM users", {}, Exception("disk I/O error"))
        return real_delete(table)

    monkeypatch.setattr(admin_module, "delete", _delete)
    r = admin.delete("/api/admin/reset-system")
    assert r.status_code == 500
    assert r.json == {"error": "System Reset Failed"}
    assert "disk" not in r.get_data(as_text=True)

    with session_scope(app) as s:
        assert s.query(User).count() == 3
        assert s.query(LeadershipApplication).count() == 2
        assert s.query(SupportTicket).count() == 2


def test_reset_requires_admin(app):
    c = _student(app, "Ama", "ama@x.com")
    assert c.delete("/api/admin/reset-system").status_code == 403
    assert app.test_client().delete("/api/admin/reset-system").status_code == 401


def test_reset_with_memory_sessions_does_not_leak_into_new_accounts(tmp_path, monkeypatch):
    app = _build_app(tmp_path, monkeypatch, SESSION_BACKEND="memory")
    admin = app.test_client()
    admin.post("/auth/login", json={"email": "admin@example.com", "password": "admin-pw"})
    alice = _student(app, "Alice", "alice@x.com")
    with session_scope(app) as s:
        alice_id = s.query(User).filter(User.email == "alice@x.com").one().id

    assert admin.delete("/api/admin/reset-system").status_code == 200

    bob = _student(app, "Bob", "bob@x.com")
    with session_scope(app) as s:
        bob_id = s.query(User).filter(User.email == "bob@x.com").one().id
    assert bob_id > alice_id

    assert alice.get("/api/user/profile").status_code == 401
    assert bob.get("/api/user/profile").json["email"] == "bob@x.com"
    assert admin.get("/api/admin/stats").status_code == 200

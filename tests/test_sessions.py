"""Unit tests for the session stores and password hasher (no HTTP)."""
from datetime import datetime, timedelta

import pytest

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.models import AuthSession, User
from app.portal.security import PasswordHasher
from app.portal.sessions import (
    DatabaseSessionStore,
    Identity,
    MemorySessionStore,
    session_store_from_config,
)

T0 = datetime(2026, 3, 1, 8, 0, 0)
DAY = timedelta(hours=24)


def test_memory_store_resolves_until_expiry():
    store = MemorySessionStore(DAY)
    issued = store.issue(None, user_id=7, role="STUDENT", now=T0)

    assert issued.expires_at == T0 + DAY
    assert store.resolve(None, issued.token, now=T0 + timedelta(hours=23, minutes=59)) == Identity(7, "STUDENT")
    assert store.resolve(None, issued.token, now=T0 + DAY) is None
    # Expired entries are dropped on the lookup that notices them.
    assert store.resolve(None, issued.token, now=T0) is None


def test_memory_store_revoke_and_unknown_tokens():
    store = MemorySessionStore(DAY)
    a = store.issue(None, user_id=1, role="ADMIN", now=T0)
    b = store.issue(None, user_id=1, role="ADMIN", now=T0)
    c = store.issue(None, user_id=2, role="STUDENT", now=T0)
    assert a.token != b.token

    store.revoke(None, a.token)
    assert store.resolve(None, a.token, now=T0) is None
    assert store.resolve(None, b.token, now=T0) is not None

    store.revoke_user(None, 1)
    assert store.resolve(None, b.token, now=T0) is None
    assert store.resolve(None, c.token, now=T0) == Identity(2, "STUDENT")

    assert store.resolve(None, None) is None
    assert store.resolve(None, "not-a-token") is None


def test_store_selection_from_config():
    assert isinstance(session_store_from_config({"SESSION_BACKEND": "memory"}), MemorySessionStore)
    store = session_store_from_config({"SESSION_BACKEND": "database", "SESSION_LIFETIME_HOURS": 2})
    assert isinstance(store, DatabaseSessionStore)
    assert store.lifetime == timedelta(hours=2)
    with pytest.raises(RuntimeError):
        session_store_from_config({"SESSION_BACKEND": "redis"})


def test_database_store_round_trip(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:1000")
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    app = create_app()
    store = DatabaseSessionStore(DAY)

    with session_scope(app) as s:
        admin_id = s.query(User).filter(User.email == "admin@example.com").one().id
        issued = store.issue(s, user_id=admin_id, role="ADMIN", now=T0)

        # The role is a snapshot: changing the user row does not touch it.
        s.get(User, admin_id).role = "STUDENT"
        s.commit()
        assert store.resolve(s, issued.token, now=T0 + timedelta(hours=1)) == Identity(admin_id, "ADMIN")

        assert store.resolve(s, issued.token, now=T0 + DAY + timedelta(seconds=1)) is None
        assert s.query(AuthSession).count() == 0


def test_password_hasher_uses_configured_method():
    hasher = PasswordHasher(method="pbkdf2:sha256:1000")
    h = hasher.hash("pw123456")
    assert h.startswith("pbkdf2:sha256:1000$")
    assert "pw123456" not in h
    assert hasher.verify(h, "pw123456")
    assert not hasher.verify(h, "wrong")
    assert not hasher.verify(None, "pw123456")

    # A hash made under an older work factor still verifies after the default changes.
    newer = PasswordHasher(method="pbkdf2:sha256:2000")
    assert newer.verify(h, "pw123456")


def test_memory_store_bulk_revoke():
    store = MemorySessionStore(DAY)
    a = store.issue(None, user_id=1, role="STUDENT", now=T0)
    b = store.issue(None, user_id=2, role="LEADER", now=T0)
    c = store.issue(None, user_id=3, role="ADMIN", now=T0)

    store.revoke_users(None, [1, 2, 99])
    assert store.resolve(None, a.token, now=T0) is None
    assert store.resolve(None, b.token, now=T0) is None
    assert store.resolve(None, c.token, now=T0) == Identity(3, "ADMIN")

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.portal.models import AuthSession


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: str


@dataclass(frozen=True)
class IssuedSession:
    token: str
    user_id: int
    role: str
    issued_at: datetime
    expires_at: datetime

    @property
    def identity(self) -> Identity:
        return Identity(user_id=self.user_id, role=self.role)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at


class SessionStore:
    """
    Maps opaque session tokens to a user id plus the role held at login.

    Expiry is fixed at issuance and checked lazily in `resolve`; nothing sweeps
    expired entries in the background.
    """

    def __init__(self, lifetime: timedelta) -> None:
        self.lifetime = lifetime

    def issue(self, s: Session, *, user_id: int, role: str, now: datetime | None = None) -> IssuedSession:
        issued_at = now or datetime.utcnow()
        issued = IssuedSession(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            role=role,
            issued_at=issued_at,
            expires_at=issued_at + self.lifetime,
        )
        self._save(s, issued)
        return issued

    def resolve(self, s: Session, token: str | None, *, now: datetime | None = None) -> Identity | None:
        if not token:
            return None
        issued = self._load(s, token)
        if issued is None:
            return None
        if issued.is_expired(now):
            self.revoke(s, token)
            return None
        return issued.identity

    def revoke(self, s: Session, token: str) -> None:
        raise NotImplementedError

    def revoke_user(self, s: Session, user_id: int) -> None:
        raise NotImplementedError

    def revoke_users(self, s: Session, user_ids: list[int]) -> None:
        raise NotImplementedError

    def _save(self, s: Session, issued: IssuedSession) -> None:
        raise NotImplementedError

    def _load(self, s: Session, token: str) -> IssuedSession | None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    """Process-local store. Every session is lost when the process restarts."""

    def __init__(self, lifetime: timedelta) -> None:
        super().__init__(lifetime)
        self._sessions: dict[str, IssuedSession] = {}

    def _save(self, s: Session, issued: IssuedSession) -> None:
        self._sessions[issued.token] = issued

    def _load(self, s: Session, token: str) -> IssuedSession | None:
        return self._sessions.get(token)

    def revoke(self, s: Session, token: str) -> None:
        self._sessions.pop(token, None)

    def revoke_user(self, s: Session, user_id: int) -> None:
        for token in [t for t, v in self._sessions.items() if v.user_id == user_id]:
            self._sessions.pop(token, None)

    def revoke_users(self, s: Session, user_ids: list[int]) -> None:
        doomed = set(user_ids)
        for token in [t for t, v in self._sessions.items() if v.user_id in doomed]:
            self._sessions.pop(token, None)


class DatabaseSessionStore(SessionStore):
    """
    Sessions persisted in `auth_sessions`. Writes go through the caller's
    SQLAlchemy session and are committed immediately so a login or logout is
    durable even if the handler later fails.
    """

    def _save(self, s: Session, issued: IssuedSession) -> None:
        s.add(
            AuthSession(
                token=issued.token,
                user_id=issued.user_id,
                role=issued.role,
                issued_at=issued.issued_at,
                expires_at=issued.expires_at,
            )
        )
        s.commit()

    def _load(self, s: Session, token: str) -> IssuedSession | None:
        row = s.execute(select(AuthSession).where(AuthSession.token == token)).scalar_one_or_none()
        if row is None:
            return None
        return IssuedSession(
            token=row.token,
            user_id=row.user_id,
            role=row.role,
            issued_at=row.issued_at,
            expires_at=row.expires_at,
        )

    def revoke(self, s: Session, token: str) -> None:
        s.execute(delete(AuthSession).where(AuthSession.token == token))
        s.commit()

    def revoke_user(self, s: Session, user_id: int) -> None:
        s.execute(delete(AuthSession).where(AuthSession.user_id == user_id))
        s.commit()

    def revoke_users(self, s: Session, user_ids: list[int]) -> None:
        if not user_ids:
            return
        s.execute(delete(AuthSession).where(AuthSession.user_id.in_(user_ids)))
        s.commit()


def session_store_from_config(config: dict) -> SessionStore:
    backend = (config.get("SESSION_BACKEND") or "database").strip().lower()
    lifetime = timedelta(hours=int(config.get("SESSION_LIFETIME_HOURS") or 24))
    if backend == "memory":
        return MemorySessionStore(lifetime)
    if backend == "database":
        return DatabaseSessionStore(lifetime)
    raise RuntimeError(f"Unknown SESSION_BACKEND {backend!r} (expected 'database' or 'memory').")

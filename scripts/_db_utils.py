from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.portal.config import load_settings
from app.portal.db import create_portal_engine


def resolve_database_url(database_url: str | None = None) -> str:
    """Explicit URL first, then DATABASE_URL / the configured default."""
    return (database_url or load_settings().database_url).strip()


@contextmanager
def script_session(database_url: str | None = None):
    """
    Session for operator scripts that run without building the Flask app.
    Same engine rules as the app, so SQLite scripts honour ON DELETE rules too.
    Commits on success.
    """
    engine = create_portal_engine(resolve_database_url(database_url))
    s = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()

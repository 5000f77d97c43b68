from __future__ import annotations

import logging

from sqlalchemy import insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.portal.models import ROLE_ADMIN, User
from app.portal.security import PasswordHasher

logger = logging.getLogger(__name__)

ADMIN_NAME = "System Administrator"
ADMIN_INSTITUTION = "National Directorate"


def ensure_admin(s: Session, hasher: PasswordHasher, *, email: str, password: str) -> bool:
    """
    Provision the default ADMIN account if its email is not taken yet.
    Idempotent; does NOT overwrite an existing account's password or role.
    Returns True when a row was inserted. The caller commits.
    """
    values = {
        "name": ADMIN_NAME,
        "email": email.strip().lower(),
        "password_hash": hasher.hash(password),
        "role": ROLE_ADMIN,
        "institution": ADMIN_INSTITUTION,
        "courses": [],
    }
    dialect = s.get_bind().dialect.name
    if dialect in ("postgresql", "sqlite"):
        dialect_insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = dialect_insert(User).values(**values).on_conflict_do_nothing(index_elements=["email"])
        inserted = s.execute(stmt).rowcount == 1
    else:
        try:
            with s.begin_nested():
                s.execute(insert(User).values(**values))
            inserted = True
        except IntegrityError:
            inserted = False
    if inserted:
        logger.info("Default admin account provisioned (%s).", values["email"])
    return inserted

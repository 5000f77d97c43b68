"""
Credential store: every query against `users` lives here.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.portal.errors import DuplicateEmailError, ValidationError
from app.portal.models import ROLE_ADMIN, ROLE_STUDENT, ROLES, User
from app.portal.security import PasswordHasher

MIN_PASSWORD_LENGTH = 6
GPA_MAX = Decimal("5.00")

# Request field -> User column for self-service profile updates.
PROFILE_FIELDS = {
    "institution": "institution",
    "faculty": "faculty",
    "department": "department",
    "program": "program",
    "level": "level",
    "financial": "financial_status",
    "entry": "year_entry",
    "completion": "year_completion",
}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _text(value: Any) -> str:
    # JSON bodies can carry numbers, lists or null where a string belongs.
    return value.strip() if isinstance(value, str) else ""


def normalize_email(email: Any) -> str:
    return _text(email).lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def find_by_email(s: Session, email: str) -> User | None:
    return s.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()


def list_users(s: Session) -> list[User]:
    return list(s.execute(select(User).order_by(User.created_at.desc(), User.id.desc())).scalars())


def count_by_role(s: Session, role: str) -> int:
    return s.execute(select(func.count()).select_from(User).where(User.role == role)).scalar_one()


def create_user(
    s: Session,
    hasher: PasswordHasher,
    *,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
    role: str = ROLE_STUDENT,
    institution: str | None = None,
) -> User:
    """
    Insert a new user and flush. Raises DuplicateEmailError when the email is taken,
    including when a concurrent signup wins the unique constraint.
    """
    name = _text(name)
    email = normalize_email(email)
    errors = []
    if not name:
        errors.append("Name is required.")
    if not email:
        errors.append("Email is required.")
    elif not is_valid_email(email):
        errors.append("Invalid email format.")
    if not isinstance(password, str) or not password:
        errors.append("Password is required.")
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if errors:
        raise ValidationError(" ".join(errors))

    if find_by_email(s, email) is not None:
        raise DuplicateEmailError()

    user = User(
        name=name,
        email=email,
        password_hash=hasher.hash(password),
        phone=_text(phone) or None,
        role=role,
        institution=institution,
        courses=[],
    )
    s.add(user)
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        raise DuplicateEmailError() from e
    return user


def update_profile(user: User, fields: dict[str, Any]) -> None:
    for key, column in PROFILE_FIELDS.items():
        if key in fields:
            value = fields.get(key)
            setattr(user, column, str(value).strip() if value not in (None, "") else None)


def parse_gpa(raw: Any) -> Decimal:
    if isinstance(raw, bool) or raw is None or raw == "":
        raise ValidationError("GPA is required.")
    try:
        gpa = Decimal(str(raw))
    except InvalidOperation as e:
        raise ValidationError("GPA must be a number.") from e
    if not gpa.is_finite() or gpa < 0 or gpa > GPA_MAX:
        raise ValidationError(f"GPA must be between 0 and {GPA_MAX}.")
    return gpa.quantize(Decimal("0.01"))


def save_gpa(user: User, gpa: Any, courses: Any) -> None:
    value = parse_gpa(gpa)
    if courses is None:
        courses = []
    if not isinstance(courses, list) or not all(isinstance(c, dict) for c in courses):
        raise ValidationError("Courses must be a list of course records.")
    user.gpa = value
    user.courses = courses


def set_role(user: User, role: str) -> None:
    role = _text(role).upper()
    if role not in ROLES:
        raise ValidationError(f"Role must be one of {', '.join(ROLES)}.")
    user.role = role


def admin_update_user(s: Session, user: User, fields: dict[str, Any]) -> None:
    if "name" in fields:
        name = _text(fields.get("name"))
        if not name:
            raise ValidationError("Name is required.")
        user.name = name
    if "email" in fields:
        email = normalize_email(fields.get("email"))
        if not is_valid_email(email):
            raise ValidationError("Invalid email format.")
        existing = find_by_email(s, email)
        if existing is not None and existing.id != user.id:
            raise DuplicateEmailError()
        user.email = email
    if "institution" in fields:
        user.institution = _text(fields.get("institution")) or None
    if "phone" in fields:
        user.phone = _text(fields.get("phone")) or None
    if "role" in fields:
        set_role(user, fields.get("role") or "")


def delete_user(s: Session, user: User) -> None:
    # ON DELETE rules remove applications and sessions and detach tickets,
    # resources, chat messages and audit events.
    s.delete(user)


def initial_role_for(email: str, admin_signup_emails: tuple[str, ...]) -> str:
    return ROLE_ADMIN if normalize_email(email) in admin_signup_emails else ROLE_STUDENT


def profile_dict(user: User) -> dict[str, Any]:
    """Full user record for the owner or an admin. Never includes the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
        "institution": user.institution,
        "gpa": float(user.gpa or 0),
        "courses": user.courses or [],
        "profile_pic": user.profile_pic,
        "faculty": user.faculty,
        "department": user.department,
        "program": user.program,
        "level": user.level,
        "financial_status": user.financial_status,
        "year_entry": user.year_entry,
        "year_completion": user.year_completion,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def session_user_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "institution": user.institution,
        "avatar": user.profile_pic,
    }

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.portal.errors import NotFoundError, ValidationError
from app.portal.models import ROLE_ADMIN, ROLE_LEADER, User
from app.portal.modules.leadership.models import (
    REVIEW_OUTCOMES,
    STATUS_APPROVED,
    STATUS_PENDING,
    LeadershipApplication,
)


def _clean(value: Any) -> str | None:
    return (str(value).strip() or None) if value is not None else None


def submit_application(s: Session, user: User, fields: dict[str, Any]) -> LeadershipApplication:
    position = _clean(fields.get("position"))
    vision = _clean(fields.get("vision"))
    if not position or not vision:
        raise ValidationError("Position and vision are required.")
    app_ = LeadershipApplication(
        user_id=user.id,
        name=user.name,
        institution=user.institution,
        position=position,
        experience=_clean(fields.get("experience")),
        vision=vision,
        reference=_clean(fields.get("reference")),
        status=STATUS_PENDING,
    )
    s.add(app_)
    s.flush()
    return app_


def latest_for_user(s: Session, user_id: int) -> LeadershipApplication | None:
    """Older applications are kept; only the most recent one counts as "my status"."""
    return s.execute(
        select(LeadershipApplication)
        .where(LeadershipApplication.user_id == user_id)
        .order_by(LeadershipApplication.created_at.desc(), LeadershipApplication.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def list_applications(s: Session, status: str | None = None) -> list[LeadershipApplication]:
    q = select(LeadershipApplication).order_by(
        LeadershipApplication.created_at.desc(), LeadershipApplication.id.desc()
    )
    if status:
        q = q.where(LeadershipApplication.status == status)
    return list(s.execute(q).scalars())


def count_pending(s: Session) -> int:
    return s.execute(
        select(func.count()).select_from(LeadershipApplication).where(LeadershipApplication.status == STATUS_PENDING)
    ).scalar_one()


def review_application(s: Session, app_id: Any, outcome: Any, *, reviewer: User) -> LeadershipApplication:
    """
    Move a PENDING application to APPROVED or REJECTED.
    Approval also promotes the applicant to LEADER; the caller commits both together.
    """
    outcome = (str(outcome or "")).strip().upper()
    if outcome not in REVIEW_OUTCOMES:
        raise ValidationError("Status must be APPROVED or REJECTED.")
    try:
        app_pk = int(app_id)
    except (TypeError, ValueError) as e:
        raise ValidationError("Application id is required.") from e

    # Row lock so two concurrent reviews cannot both see PENDING.
    app_ = s.execute(
        select(LeadershipApplication)
        .where(LeadershipApplication.id == app_pk)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if app_ is None:
        raise NotFoundError("Application not found.")
    if app_.status != STATUS_PENDING:
        raise ValidationError(f"Application already {app_.status.lower()}.")

    app_.status = outcome
    app_.reviewed_at = datetime.utcnow()
    app_.reviewed_by_user_id = reviewer.id

    if outcome == STATUS_APPROVED:
        applicant = s.get(User, app_.user_id)
        if applicant is None:
            raise NotFoundError("Applicant not found.")
        if applicant.role != ROLE_ADMIN:
            applicant.role = ROLE_LEADER
    return app_


def application_dict(app_: LeadershipApplication) -> dict[str, Any]:
    return {
        "id": app_.id,
        "user_id": app_.user_id,
        "name": app_.name,
        "institution": app_.institution,
        "position": app_.position,
        "experience": app_.experience,
        "vision": app_.vision,
        "reference": app_.reference,
        "status": app_.status,
        "date": app_.created_at.isoformat() if app_.created_at else None,
        "reviewed_at": app_.reviewed_at.isoformat() if app_.reviewed_at else None,
    }

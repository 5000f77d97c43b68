from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.portal.errors import ValidationError
from app.portal.models import User
from app.portal.modules.support.models import SupportTicket


def create_ticket(s: Session, user: User, message: Any) -> SupportTicket:
    message = (str(message or "")).strip()
    if not message:
        raise ValidationError("Message is required.")
    t = SupportTicket(user_id=user.id, user_name=user.name, message=message)
    s.add(t)
    s.flush()
    return t


def list_tickets(s: Session) -> list[SupportTicket]:
    return list(s.execute(select(SupportTicket).order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc())).scalars())


def ticket_dict(t: SupportTicket) -> dict[str, Any]:
    return {
        "id": t.id,
        "user_id": t.user_id,
        "user_name": t.user_name,
        "message": t.message,
        "date": t.created_at.isoformat() if t.created_at else None,
    }

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.portal.errors import ValidationError
from app.portal.models import User
from app.portal.modules.chat.models import ChatMessage

MAX_MESSAGE_LENGTH = 2000


def post_message(s: Session, user: User, message: Any) -> ChatMessage:
    message = (str(message or "")).strip()
    if not message:
        raise ValidationError("Message is required.")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters.")
    m = ChatMessage(user_id=user.id, user_name=user.name, message=message)
    s.add(m)
    s.flush()
    return m


def recent_messages(s: Session, limit: int) -> list[ChatMessage]:
    """Latest `limit` messages, oldest first."""
    rows = list(
        s.execute(select(ChatMessage).order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).limit(limit)).scalars()
    )
    rows.reverse()
    return rows


def message_dict(m: ChatMessage) -> dict[str, Any]:
    return {
        "id": m.id,
        "user_id": m.user_id,
        "user_name": m.user_name,
        "message": m.message,
        "date": m.created_at.isoformat() if m.created_at else None,
    }

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.portal.errors import ValidationError
from app.portal.modules.news.models import NewsItem


def broadcast(s: Session, *, title: Any, message: Any, category: Any = None) -> NewsItem:
    title = (str(title or "")).strip()
    message = (str(message or "")).strip()
    if not title or not message:
        raise ValidationError("Title and message are required.")
    item = NewsItem(title=title, message=message, category=(str(category or "")).strip() or None)
    s.add(item)
    s.flush()
    return item


def latest(s: Session, limit: int) -> list[NewsItem]:
    return list(
        s.execute(select(NewsItem).order_by(NewsItem.created_at.desc(), NewsItem.id.desc()).limit(limit)).scalars()
    )


def news_dict(item: NewsItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "message": item.message,
        "category": item.category,
        "date": item.created_at.isoformat() if item.created_at else None,
    }

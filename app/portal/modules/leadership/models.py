from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.portal.models import Base

STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
REVIEW_OUTCOMES = (STATUS_APPROVED, STATUS_REJECTED)


class LeadershipApplication(Base):
    __tablename__ = "leadership_apps"
    __table_args__ = (
        Index("ix_leadership_apps_user_created", "user_id", "created_at"),
        Index("ix_leadership_apps_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Snapshot of the applicant at submission time.
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    institution: Mapped[str | None] = mapped_column(String(255), nullable=True)

    position: Mapped[str] = mapped_column(String(255), nullable=False)
    experience: Mapped[str | None] = mapped_column(Text, nullable=True)
    vision: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # PENDING -> APPROVED | REJECTED
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    reviewed_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

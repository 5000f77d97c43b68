from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.portal.models import Base

STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUSES = (STATUS_PENDING, STATUS_APPROVED)


class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (Index("ix_resources_status_created", "status", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)

    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(128), nullable=False, default="application/octet-stream")
    sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)

    uploaded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)  # display name
    uploader_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # PENDING -> APPROVED (admin only)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

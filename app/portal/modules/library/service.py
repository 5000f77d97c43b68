from __future__ import annotations

import hashlib
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from werkzeug.utils import secure_filename

from app.portal.errors import NotFoundError, ValidationError
from app.portal.models import User
from app.portal.modules.library.models import STATUS_APPROVED, STATUS_PENDING, STATUSES, Resource


def sanitize_upload_filename(filename: str) -> str:
    fn = secure_filename(filename or "")
    return fn or "resource.bin"


def file_digest_and_size(file_bytes: bytes) -> tuple[str, int]:
    h = hashlib.sha256()
    h.update(file_bytes)
    return (h.hexdigest(), len(file_bytes))


def build_storage_key(filename: str) -> str:
    # Unique prefix so two uploads of "notes.pdf" never collide.
    return f"library/{uuid.uuid4().hex}-{filename}"


def create_resource(
    s: Session,
    *,
    uploader: User,
    title: str,
    category: str | None,
    storage_key: str,
    filename: str,
    content_type: str,
    sha256: str,
    size_bytes: int,
) -> Resource:
    r = Resource(
        title=title,
        category=(category or "").strip() or None,
        storage_key=storage_key,
        filename=filename,
        content_type=content_type,
        sha256=sha256,
        size_bytes=size_bytes,
        uploaded_by=uploader.name,
        uploader_user_id=uploader.id,
        status=STATUS_PENDING,
    )
    s.add(r)
    s.flush()
    return r


def list_approved(s: Session) -> list[Resource]:
    return list(
        s.execute(
            select(Resource)
            .where(Resource.status == STATUS_APPROVED)
            .order_by(Resource.created_at.desc(), Resource.id.desc())
        ).scalars()
    )


def list_all(s: Session, status: str | None = None) -> list[Resource]:
    q = select(Resource).order_by(Resource.created_at.desc(), Resource.id.desc())
    if status:
        status = status.strip().upper()
        if status not in STATUSES:
            raise ValidationError(f"Status must be one of {', '.join(STATUSES)}.")
        q = q.where(Resource.status == status)
    return list(s.execute(q).scalars())


def count_pending(s: Session) -> int:
    return s.execute(select(func.count()).select_from(Resource).where(Resource.status == STATUS_PENDING)).scalar_one()


def get_resource_or_404(s: Session, resource_id: int) -> Resource:
    r = s.get(Resource, resource_id)
    if r is None:
        raise NotFoundError("Resource not found.")
    return r


def get_approved_or_404(s: Session, resource_id: int) -> Resource:
    r = s.get(Resource, resource_id)
    # Pending items are indistinguishable from missing ones to the public.
    if r is None or r.status != STATUS_APPROVED:
        raise NotFoundError("Resource not found.")
    return r


def approve(r: Resource) -> None:
    r.status = STATUS_APPROVED


def resource_dict(r: Resource) -> dict[str, Any]:
    return {
        "id": r.id,
        "title": r.title,
        "category": r.category,
        "file_path": r.storage_key,
        "filename": r.filename,
        "content_type": r.content_type,
        "size_bytes": r.size_bytes,
        "uploaded_by": r.uploaded_by,
        "status": r.status,
        "date": r.created_at.isoformat() if r.created_at else None,
    }

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, send_file

from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.errors import ValidationError
from app.portal.modules.library.service import (
    build_storage_key,
    create_resource,
    file_digest_and_size,
    get_approved_or_404,
    list_approved,
    resource_dict,
    sanitize_upload_filename,
)
from app.portal.rbac import require_authenticated
from app.portal.routes import current_user
from app.portal.storage import Storage, StorageError, storage_from_config

bp = Blueprint("library", __name__)


@bp.get("/resources")
def list_resources():
    s = db_session()
    return jsonify([resource_dict(r) for r in list_approved(s)])


@bp.get("/resources/<int:resource_id>/download")
def download_resource(resource_id: int):
    s = db_session()
    r = get_approved_or_404(s, resource_id)
    storage = storage_from_config(current_app.config)
    fobj = storage.open(r.storage_key)
    return send_file(fobj, mimetype=r.content_type, as_attachment=True, download_name=r.filename)


@bp.post("/upload")
@require_authenticated
def upload():
    s = db_session()
    u = current_user(s)

    title = (request.form.get("title") or "").strip()
    category = (request.form.get("category") or "").strip()
    f = request.files.get("file")
    if not f or not f.filename:
        raise ValidationError("Choose a file to upload.")
    if not title:
        raise ValidationError("Title is required.")

    filename = sanitize_upload_filename(f.filename)
    content_type = (f.mimetype or "application/octet-stream").strip()
    data = f.read()
    sha256, size_bytes = file_digest_and_size(data)

    storage_key = build_storage_key(filename)
    storage = storage_from_config(current_app.config)
    storage.put_bytes(storage_key, data, content_type=content_type)

    try:
        r = create_resource(
            s,
            uploader=u,
            title=title,
            category=category,
            storage_key=storage_key,
            filename=filename,
            content_type=content_type,
            sha256=sha256,
            size_bytes=size_bytes,
        )
        record_event(
            s,
            actor=u,
            action="library.upload",
            entity_type="Resource",
            entity_id=str(r.id),
            metadata={"title": title, "filename": filename, "sha256": sha256, "size_bytes": size_bytes},
        )
        s.commit()
    except Exception:
        s.rollback()
        _discard_upload(storage, storage_key)
        raise
    return jsonify({"success": True, "message": "Uploaded for Review"})


def _discard_upload(storage: Storage, key: str) -> None:
    """Drop a blob whose row was never committed."""
    try:
        storage.delete(key)
    except (OSError, StorageError):
        current_app.logger.warning("Could not remove orphaned upload %s", key, exc_info=True)

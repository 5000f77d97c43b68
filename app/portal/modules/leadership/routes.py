from __future__ import annotations

from flask import Blueprint, jsonify

from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.modules.leadership.service import latest_for_user, submit_application
from app.portal.rbac import require_authenticated
from app.portal.routes import current_user, request_payload

bp = Blueprint("leadership", __name__)


@bp.post("/apply")
@require_authenticated
def apply():
    s = db_session()
    u = current_user(s)
    payload = request_payload()

    app_ = submit_application(s, u, payload)
    record_event(
        s,
        actor=u,
        action="leadership.apply",
        entity_type="LeadershipApplication",
        entity_id=str(app_.id),
        metadata={"position": app_.position},
    )
    s.commit()
    return jsonify({"success": True})


@bp.get("/status")
@require_authenticated
def status():
    s = db_session()
    u = current_user(s)
    latest = latest_for_user(s, u.id)
    return jsonify({"status": latest.status if latest else "NONE"})

from flask import Blueprint, jsonify

from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.modules.support.service import create_ticket
from app.portal.rbac import require_authenticated
from app.portal.routes import current_user, request_payload

bp = Blueprint("support", __name__)


@bp.post("/create")
@require_authenticated
def create():
    s = db_session()
    u = current_user(s)
    t = create_ticket(s, u, request_payload().get("message"))
    record_event(s, actor=u, action="support.create", entity_type="SupportTicket", entity_id=str(t.id))
    s.commit()
    return jsonify({"success": True})

from flask import Blueprint, current_app, jsonify

from app.portal.db import db_session
from app.portal.modules.chat.service import message_dict, post_message, recent_messages
from app.portal.rbac import require_authenticated
from app.portal.routes import current_user, request_payload

bp = Blueprint("chat", __name__)


@bp.get("")
def list_messages():
    s = db_session()
    rows = recent_messages(s, int(current_app.config.get("CHAT_HISTORY_LIMIT") or 50))
    return jsonify([message_dict(m) for m in rows])


@bp.post("")
@require_authenticated
def create_message():
    s = db_session()
    u = current_user(s)
    post_message(s, u, request_payload().get("message"))
    s.commit()
    return jsonify({"success": True})

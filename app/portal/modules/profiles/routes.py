from flask import Blueprint, jsonify

from app.portal.accounts import profile_dict, save_gpa, update_profile
from app.portal.db import db_session
from app.portal.rbac import require_authenticated
from app.portal.routes import current_user, request_payload

bp = Blueprint("profiles", __name__)


@bp.get("/profile")
@require_authenticated
def profile():
    s = db_session()
    return jsonify(profile_dict(current_user(s)))


@bp.post("/update-profile")
@require_authenticated
def update_profile_post():
    s = db_session()
    u = current_user(s)
    update_profile(u, request_payload())
    s.commit()
    return jsonify({"success": True})


@bp.post("/save-gpa")
@require_authenticated
def save_gpa_post():
    s = db_session()
    u = current_user(s)
    payload = request_payload()
    save_gpa(u, payload.get("gpa"), payload.get("courses"))
    s.commit()
    return jsonify({"success": True})

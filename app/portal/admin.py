from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.portal.accounts import admin_update_user, count_by_role, delete_user, list_users, profile_dict
from app.portal.audit import record_event
from app.portal.auth import session_store
from app.portal.db import db_session
from app.portal.errors import InternalError, NotFoundError, ValidationError
from app.portal.models import ROLE_ADMIN, ROLE_LEADER, ROLE_STUDENT, AuthSession, User
from app.portal.modules.chat.models import ChatMessage
from app.portal.modules.leadership.models import STATUS_PENDING, LeadershipApplication
from app.portal.modules.leadership.service import (
    application_dict,
    count_pending as count_pending_applications,
    list_applications,
    review_application,
)
from app.portal.modules.library.models import Resource
from app.portal.modules.library.service import (
    approve,
    count_pending as count_pending_resources,
    get_resource_or_404,
    list_all as list_all_resources,
    resource_dict,
)
from app.portal.modules.news.service import broadcast as broadcast_news
from app.portal.modules.support.models import SupportTicket
from app.portal.modules.support.service import list_tickets, ticket_dict
from app.portal.rbac import require_admin
from app.portal.routes import current_user, request_payload
from app.portal.storage import StorageError, storage_from_config

bp = Blueprint("admin", __name__)


@bp.get("/stats")
@require_admin
def stats():
    s = db_session()
    return jsonify(
        {
            "students": count_by_role(s, ROLE_STUDENT),
            "leaders": count_by_role(s, ROLE_LEADER),
            "pending_leaders": count_pending_applications(s),
            "pending_files": count_pending_resources(s),
        }
    )


# ============================================================================
# USERS
# ============================================================================

def _get_user_or_404(s: Session, user_id: int) -> User:
    user = s.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


@bp.get("/users")
@require_admin
def users_list():
    s = db_session()
    return jsonify([profile_dict(u) for u in list_users(s)])


@bp.post("/users/<int:user_id>")
@require_admin
def users_update(user_id: int):
    s = db_session()
    admin = current_user(s)
    user = _get_user_or_404(s, user_id)
    payload = request_payload()

    if user.id == admin.id and "role" in payload and str(payload.get("role")).upper() != ROLE_ADMIN:
        raise ValidationError("You cannot remove your own admin role.")

    before = {"email": user.email, "role": user.role}
    admin_update_user(s, user, payload)
    record_event(
        s,
        actor=admin,
        action="user.update",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"before": before, "after": {"email": user.email, "role": user.role}},
    )
    s.commit()
    return jsonify({"success": True})


@bp.delete("/users/<int:user_id>")
@require_admin
def users_delete(user_id: int):
    s = db_session()
    admin = current_user(s)
    user = _get_user_or_404(s, user_id)
    if user.id == admin.id:
        raise ValidationError("You cannot delete your own account.")

    email = user.email
    delete_user(s, user)
    record_event(s, actor=admin, action="user.delete", entity_type="User", entity_id=str(user_id), metadata={"email": email})
    s.commit()
    session_store().revoke_user(s, user_id)
    return jsonify({"success": True})


# ============================================================================
# LEADERSHIP
# ============================================================================

@bp.get("/applications")
@require_admin
def applications_list():
    s = db_session()
    status = (request.args.get("status") or STATUS_PENDING).strip().upper()
    rows = list_applications(s, None if status == "ALL" else status)
    return jsonify([application_dict(a) for a in rows])


def _review(app_id, outcome):
    s = db_session()
    admin = current_user(s)
    try:
        app_ = review_application(s, app_id, outcome, reviewer=admin)
        record_event(
            s,
            actor=admin,
            action="leadership.review",
            entity_type="LeadershipApplication",
            entity_id=str(app_.id),
            metadata={"status": app_.status, "user_id": app_.user_id},
        )
        # Status change and role promotion land in one commit.
        s.commit()
    except Exception:
        s.rollback()
        raise
    return jsonify({"success": True})


@bp.post("/approve-leader")
@require_admin
def approve_leader():
    payload = request_payload()
    return _review(payload.get("appId", payload.get("id")), payload.get("action", payload.get("status")))


@bp.post("/leadership-review")
@require_admin
def leadership_review():
    payload = request_payload()
    return _review(payload.get("id", payload.get("appId")), payload.get("status", payload.get("action")))


# ============================================================================
# LIBRARY MODERATION
# ============================================================================

@bp.get("/resources")
@require_admin
def resources_list():
    s = db_session()
    return jsonify([resource_dict(r) for r in list_all_resources(s, request.args.get("status"))])


@bp.post("/resources/<int:resource_id>/approve")
@require_admin
def resources_approve(resource_id: int):
    s = db_session()
    admin = current_user(s)
    r = get_resource_or_404(s, resource_id)
    approve(r)
    record_event(s, actor=admin, action="library.approve", entity_type="Resource", entity_id=str(r.id))
    s.commit()
    return jsonify({"success": True})


@bp.delete("/resources/<int:resource_id>")
@require_admin
def resources_delete(resource_id: int):
    s = db_session()
    admin = current_user(s)
    r = get_resource_or_404(s, resource_id)
    storage_key = r.storage_key
    s.delete(r)
    record_event(
        s,
        actor=admin,
        action="library.delete",
        entity_type="Resource",
        entity_id=str(resource_id),
        metadata={"title": r.title, "storage_key": storage_key},
    )
    s.commit()
    try:
        storage_from_config(current_app.config).delete(storage_key)
    except (OSError, StorageError) as e:
        current_app.logger.warning("Stored file cleanup failed (key=%s): %s", storage_key, e)
    return jsonify({"success": True})


# ============================================================================
# NEWS / SUPPORT
# ============================================================================

@bp.post("/broadcast")
@require_admin
def broadcast():
    s = db_session()
    admin = current_user(s)
    payload = request_payload()
    item = broadcast_news(s, title=payload.get("title"), message=payload.get("message"), category=payload.get("category"))
    record_event(s, actor=admin, action="news.broadcast", entity_type="NewsItem", entity_id=str(item.id))
    s.commit()
    return jsonify({"success": True})


@bp.get("/support-tickets")
@require_admin
def support_tickets():
    s = db_session()
    return jsonify([ticket_dict(t) for t in list_tickets(s)])


# ============================================================================
# DANGER ZONE
# ============================================================================

def reset_system(s: Session) -> tuple[dict[str, int], list[int]]:
    """
    Remove every non-admin user and the records that depend on them, in one
    transaction. Admin accounts, news and the library survive. The caller commits.

    Returns the per-table counts and the ids of the removed users, whose sessions
    the caller must also drop from the session store.
    """
    non_admin_ids = select(User.id).where(User.role != ROLE_ADMIN)
    removed_ids = list(s.execute(non_admin_ids).scalars())
    counts = {
        "leadership_apps": s.execute(delete(LeadershipApplication)).rowcount,
        "support_tickets": s.execute(delete(SupportTicket)).rowcount,
    }
    s.execute(delete(AuthSession).where(AuthSession.user_id.in_(non_admin_ids)))
    s.execute(update(Resource).where(Resource.uploader_user_id.in_(non_admin_ids)).values(uploader_user_id=None))
    s.execute(update(ChatMessage).where(ChatMessage.user_id.in_(non_admin_ids)).values(user_id=None))
    counts["users"] = s.execute(delete(User).where(User.role != ROLE_ADMIN)).rowcount
    return counts, removed_ids


@bp.delete("/reset-system")
@require_admin
def reset_system_delete():
    s = db_session()
    admin = current_user(s)
    try:
        counts, removed_ids = reset_system(s)
        record_event(
            s,
            actor=admin,
            action="maintenance.reset_system",
            entity_type="System",
            entity_id="reset",
            metadata={"counts_deleted": counts},
        )
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        current_app.logger.exception("System reset failed; rolled back.")
        raise InternalError("System Reset Failed") from e
    # Memory-backed sessions are not covered by the transaction above.
    session_store().revoke_users(s, removed_ids)
    return jsonify({"success": True, "message": "System Reset Successful. All students removed."})

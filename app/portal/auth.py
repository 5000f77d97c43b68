from __future__ import annotations

import uuid

from flask import Blueprint, current_app, g, jsonify, request, session

from app.portal.accounts import create_user, find_by_email, initial_role_for, normalize_email, session_user_dict
from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.errors import AuthError
from app.portal.models import User
from app.portal.routes import request_payload
from app.portal.security import PasswordHasher
from app.portal.sessions import SessionStore

bp = Blueprint("auth", __name__)

SESSION_TOKEN_KEY = "sid"


def session_store() -> SessionStore:
    return current_app.extensions["portal_sessions"]


def password_hasher() -> PasswordHasher:
    return current_app.extensions["portal_password_hasher"]


def load_current_identity() -> None:
    """
    Resolves g.identity from the session token in the signed cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.identity = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    token = session.get(SESSION_TOKEN_KEY)
    if not token:
        return

    s = db_session()
    identity = session_store().resolve(s, token)
    if identity is None:
        # Expired or revoked.
        session.pop(SESSION_TOKEN_KEY, None)
        return
    if s.get(User, identity.user_id) is None:
        session_store().revoke(s, token)
        session.pop(SESSION_TOKEN_KEY, None)
        return
    g.identity = identity


@bp.post("/signup")
def signup():
    payload = request_payload()
    s = db_session()
    email = normalize_email(payload.get("email"))
    user = create_user(
        s,
        password_hasher(),
        name=payload.get("name") or "",
        email=email,
        password=payload.get("password") or "",
        phone=payload.get("phone"),
        role=initial_role_for(email, current_app.config.get("ADMIN_SIGNUP_EMAILS") or ()),
    )
    record_event(s, actor=user, action="auth.signup", entity_type="User", entity_id=str(user.id))
    s.commit()
    return jsonify({"success": True, "message": "Account created."})


@bp.post("/login")
def login():
    payload = request_payload()
    email = normalize_email(payload.get("email"))
    password = payload.get("password")
    if not isinstance(password, str):
        password = ""

    s = db_session()
    user = find_by_email(s, email) if email else None
    if not password_hasher().verify(user.password_hash if user else None, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email or None,
            reason="Invalid credentials",
        )
        s.commit()
        # Same message whether or not the email exists.
        raise AuthError("Invalid Credentials")

    old_token = session.get(SESSION_TOKEN_KEY)
    if old_token:
        session_store().revoke(s, old_token)
    issued = session_store().issue(s, user_id=user.id, role=user.role)
    session.clear()
    session[SESSION_TOKEN_KEY] = issued.token
    session.permanent = True

    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return jsonify({"success": True, "user": session_user_dict(user)})


@bp.post("/logout")
def logout():
    s = db_session()
    token = session.get(SESSION_TOKEN_KEY)
    identity = getattr(g, "identity", None)
    if token:
        session_store().revoke(s, token)
    if identity is not None:
        user = s.get(User, identity.user_id)
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(identity.user_id))
        s.commit()
    session.clear()
    return jsonify({"success": True})


@bp.post("/forgot-password")
def forgot_password():
    email = normalize_email(request_payload().get("email"))
    # No mail service; the request is only logged. The answer never reveals
    # whether the account exists.
    current_app.logger.info("Password reset requested (email=%s request_id=%s)", email, g.request_id)
    return jsonify(
        {
            "success": True,
            "message": "If an account exists, a reset link has been sent to your email.",
        }
    )

from __future__ import annotations

from typing import Any

from flask import Blueprint, request
from sqlalchemy.orm import Session

from app.portal.errors import AuthError
from app.portal.models import User
from app.portal.rbac import current_identity

bp = Blueprint("routes", __name__)


def request_payload() -> dict[str, Any]:
    """JSON body when present, otherwise form fields (the old HTML forms post urlencoded)."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def current_user(s: Session) -> User:
    identity = current_identity()
    if identity is None:
        # Guard decorators should prevent this.
        raise AuthError()
    user = s.get(User, identity.user_id)
    if user is None:
        # Deleted while the session was live.
        raise AuthError()
    return user


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast liveness check for load balancers. No DB access, minimal overhead.
    """
    return "ok", 200

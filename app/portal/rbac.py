from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g

from app.portal.errors import AuthError, ForbiddenError
from app.portal.models import ROLE_ADMIN
from app.portal.sessions import Identity


def current_identity() -> Identity | None:
    return getattr(g, "identity", None)


def identity_is_admin(identity: Identity | None) -> bool:
    # Compares the role captured at login, not the user's current row.
    return identity is not None and identity.role == ROLE_ADMIN


def require_authenticated(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if current_identity() is None:
            raise AuthError()
        return fn(*args, **kwargs)

    return wrapped


def require_admin(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        identity = current_identity()
        # Unauthenticated has no role to compare → 401 before 403.
        if identity is None:
            raise AuthError()
        if not identity_is_admin(identity):
            g.missing_role = ROLE_ADMIN
            raise ForbiddenError()
        return fn(*args, **kwargs)

    return wrapped

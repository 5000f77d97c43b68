"""
Error taxonomy for the JSON API.

Handlers raise these; the app-level error handler in `create_app()` turns them into
`{"error": message}` with the matching status code.
"""
from __future__ import annotations


class PortalError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    status_code = 400
    default_message = "Invalid request."


class DuplicateEmailError(ValidationError):
    default_message = "Email already registered."


class AuthError(PortalError):
    status_code = 401
    default_message = "Access Denied. Please Login."


class ForbiddenError(PortalError):
    status_code = 403
    default_message = "Forbidden: Administrators Only."


class NotFoundError(PortalError):
    status_code = 404
    default_message = "Not found."


class InternalError(PortalError):
    status_code = 500

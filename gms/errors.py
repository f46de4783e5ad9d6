"""Error taxonomy shared by services and blueprints.

Every domain error is a Werkzeug ``HTTPException`` so services can raise it
the same way views call ``abort()``. The JSON handlers registered by
``init_error_handlers`` render ``{"error": category, "message": ...}``.
"""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException


class GMSError(HTTPException):
    """Base class carrying the taxonomy category rendered to callers."""

    code = 500
    category = "Internal"
    description = "Internal server error"

    def __init__(self, description: str | None = None, response=None) -> None:
        super().__init__(description or self.description, response)


class Unauthenticated(GMSError):
    code = 401
    category = "Unauthenticated"
    description = "Authentication required"


class Forbidden(GMSError):
    code = 403
    category = "Forbidden"
    description = "You do not have access to this workspace"


class NotFound(GMSError):
    code = 404
    category = "NotFound"
    description = "Not found"


class BadRequest(GMSError):
    code = 400
    category = "BadRequest"
    description = "Bad request"


class ValidationFailed(BadRequest):
    """Validation failure with field-level messages."""

    description = "Validation failed"

    def __init__(self, errors: dict[str, list[str]] | None = None, description: str | None = None) -> None:
        super().__init__(description)
        self.errors = errors or {}


class Conflict(GMSError):
    code = 409
    category = "Conflict"
    description = "Conflict"


class InvariantViolation(GMSError):
    code = 400
    category = "InvariantViolation"
    description = "Invariant violation"


class Internal(GMSError):
    code = 500
    category = "Internal"
    description = "Internal server error"


def error_body(exc: HTTPException) -> dict[str, Any]:
    category = getattr(exc, "category", None) or exc.name.replace(" ", "")
    body: dict[str, Any] = {"error": category, "message": exc.description}
    errors = getattr(exc, "errors", None)
    if errors:
        body["errors"] = errors
    return body


def error_text(exc: HTTPException) -> str:
    """One-line rendering for the CLI, field messages included."""
    messages = [msg for field_errors in (getattr(exc, "errors", None) or {}).values() for msg in field_errors]
    return "; ".join([exc.description, *messages])


def init_error_handlers(app) -> None:
    """Register JSON renderers for the taxonomy and for stray exceptions."""

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return jsonify(error_body(exc)), exc.code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        from gms.extensions import db

        db.session.rollback()
        current_app.logger.warning(f"Integrity error: {exc.orig}")
        conflict = Conflict("Resource conflicts with an existing record")
        return jsonify(error_body(conflict)), conflict.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        from gms.extensions import db

        db.session.rollback()
        current_app.logger.exception("Unhandled error while processing request")
        internal = Internal()
        return jsonify(error_body(internal)), internal.code


__all__ = [
    "GMSError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "BadRequest",
    "ValidationFailed",
    "Conflict",
    "InvariantViolation",
    "Internal",
    "error_body",
    "error_text",
    "init_error_handlers",
]

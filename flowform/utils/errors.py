"""Standardised API error responses.

Usage
-----
    from flowform.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Task not found")
    return api_error(E.VALIDATION_REQUIRED, "email is required")
    return api_error(E.VALIDATION_INVALID, "Invalid values", details={"age": "..."})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Malformed request – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    BAD_REQUEST = "ERR_BAD_REQUEST"

    # Business-rule / form validation – HTTP 422
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Server / collaborator – HTTP 500 / 502
    DATABASE = "ERR_DATABASE"
    STORAGE = "ERR_STORAGE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.BAD_REQUEST: 400,
    E.VALIDATION_INVALID: 422,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.STORAGE: 502,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | list | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict | list, optional
        Field-level breakdown.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(app):
    """Map the exception hierarchy onto JSON responses for every blueprint."""
    import logging

    from sqlalchemy.exc import SQLAlchemyError

    from flowform.core.exceptions import (
        AuthError,
        BlobNotFoundError,
        ConflictError,
        FormValidationError,
        NotFoundError,
        StorageError,
        ValidationError,
    )
    from flowform.models import db

    logger = logging.getLogger(__name__)

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(BlobNotFoundError)
    def _handle_blob_not_found(error):
        return api_error(E.NOT_FOUND, str(error), status=404)

    @app.errorhandler(FormValidationError)
    def _handle_form_validation(error):
        return api_error(E.VALIDATION_INVALID, str(error), details={"fields": error.errors})

    @app.errorhandler(ValidationError)
    def _handle_validation(error):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @app.errorhandler(AuthError)
    def _handle_auth(error):
        code = E.FORBIDDEN if error.status == 403 else E.UNAUTHORIZED
        return api_error(code, str(error), status=error.status)

    @app.errorhandler(StorageError)
    def _handle_storage(error):
        logger.error("Storage failure path=%s: %s", error.path, error)
        return api_error(E.STORAGE, "File storage is unavailable")

    @app.errorhandler(SQLAlchemyError)
    def _handle_db(error):
        db.session.rollback()
        logger.exception("Database error: %s", error)
        return api_error(E.DATABASE, "Database error")

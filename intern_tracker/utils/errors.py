"""JSON error bodies shared by every blueprint.

    return api_error(E.VALIDATION_INVALID, "Invalid user ID", details={"userId": "invalid"})

Body shape: ``{"error": <message>, "code": <E.*>, "details": {...}?}``.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from intern_tracker.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ProgressError,
    ValidationError,
)


class E:
    """Error codes returned in the ``code`` field."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"   # missing field / param
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"     # malformed field / param
    VALIDATION_RULE = "ERR_VALIDATION_RULE"           # well-formed but breaks a rule
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    PROGRESS = "ERR_PROGRESS"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_STATUS_BY_CODE = {
    400: (E.VALIDATION_REQUIRED, E.VALIDATION_INVALID),
    401: (E.UNAUTHORIZED,),
    403: (E.FORBIDDEN,),
    404: (E.NOT_FOUND,),
    409: (E.CONFLICT_DUPLICATE, E.CONFLICT_STATE),
    422: (E.VALIDATION_RULE,),
    500: (E.PROGRESS, E.DATABASE, E.INTERNAL),
}
HTTP_STATUS = {code: status for status, codes in _STATUS_BY_CODE.items() for code in codes}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(response, status)`` for *code*; *status* overrides the mapped HTTP status."""
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or HTTP_STATUS.get(code, 400)


def register_error_handlers(bp):
    """Translate service exceptions raised under *bp* into JSON errors."""
    logger = logging.getLogger(bp.import_name)

    @bp.errorhandler(NotFoundError)
    def _not_found(error):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _rule_violation(error):
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _conflict(error):
        return api_error(E.CONFLICT_STATE, str(error))

    @bp.errorhandler(PermissionDeniedError)
    def _forbidden(error):
        return api_error(E.FORBIDDEN, str(error) or "Forbidden")

    @bp.errorhandler(ProgressError)
    def _progress_failed(error):
        logger.error("Progress failure endpoint=%s cause=%r", request.endpoint, error.__cause__)
        return api_error(E.PROGRESS, str(error))

    @bp.errorhandler(SQLAlchemyError)
    def _database_failed(error):
        logger.exception("Database error endpoint=%s", request.endpoint)
        return api_error(E.DATABASE, "Database error")

    return bp

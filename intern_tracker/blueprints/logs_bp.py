"""
Log entry blueprint — interns record procedures they performed.

Endpoints:
    GET  /api/v1/logs?page=&limit=   — the caller's own log entries
    POST /api/v1/logs                — create a log entry (INTERN only)
"""

import logging

from flask import Blueprint, jsonify, request

from intern_tracker.auth import current_user, login_required, role_required
from intern_tracker.models.training import ROLE_INTERN
from intern_tracker.services import log_service
from intern_tracker.utils.errors import E, api_error, register_error_handlers
from intern_tracker.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)

logs_bp = Blueprint("logs", __name__, url_prefix="/api/v1")
register_error_handlers(logs_bp)


@logs_bp.route("/logs", methods=["GET"])
@login_required
def list_logs():
    page = parse_int_arg(request.args.get("page"), 1)
    limit = parse_int_arg(request.args.get("limit"), log_service.DEFAULT_PAGE_SIZE)
    return jsonify(log_service.list_my_logs(current_user().id, page=page, limit=limit))


@logs_bp.route("/logs", methods=["POST"])
@role_required(ROLE_INTERN)
def create_log():
    """Create a log entry with a PENDING verification.

    Body: {"procedureId": int, "date": "YYYY-MM-DD", "count": int, "notes": str?}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")

    missing = [f for f in ("procedureId", "date", "count") if data.get(f) in (None, "")]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )

    entry = log_service.create_log(
        current_user(),
        procedure_id=data["procedureId"],
        log_date=data["date"],
        count=data["count"],
        notes=data.get("notes"),
    )
    return jsonify(entry), 201

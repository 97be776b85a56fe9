"""
Review blueprint — tutors and admins approve or reject log entries.

Endpoints:
    GET  /api/v1/verify-queue?skip=&take=
    POST /api/v1/verifications
"""

import logging

from flask import Blueprint, jsonify, request

from intern_tracker.auth import current_user, role_required
from intern_tracker.models.training import ROLE_ADMIN, ROLE_TUTOR
from intern_tracker.services import log_service
from intern_tracker.utils.errors import E, api_error, register_error_handlers
from intern_tracker.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)

review_bp = Blueprint("review", __name__, url_prefix="/api/v1")
register_error_handlers(review_bp)


@review_bp.route("/verify-queue", methods=["GET"])
@role_required(ROLE_TUTOR, ROLE_ADMIN)
def verify_queue():
    skip = parse_int_arg(request.args.get("skip"), 0)
    take = parse_int_arg(request.args.get("take"), log_service.DEFAULT_PAGE_SIZE)
    return jsonify({"items": log_service.list_pending_for_tutor(skip=skip, take=take)})


@review_bp.route("/verifications", methods=["POST"])
@role_required(ROLE_TUTOR, ROLE_ADMIN)
def create_verification():
    """Record a review decision.

    Body: {"logEntryId": int, "status": "APPROVED"|"REJECTED",
           "reason": str?, "version": int?}

    ``version`` is the verification version the reviewer saw; when it is
    stale the request fails with 409.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")

    log_entry_id = parse_int_arg(data.get("logEntryId"))
    if log_entry_id is None or log_entry_id < 1:
        return api_error(E.VALIDATION_REQUIRED, "logEntryId is required", details={"logEntryId": "required"})
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required", details={"status": "required"})

    expected_version = None
    if data.get("version") is not None:
        expected_version = parse_int_arg(data["version"])
        if expected_version is None:
            return api_error(E.VALIDATION_INVALID, "version must be an integer", details={"version": "invalid"})

    verification = log_service.verify_log(
        current_user(),
        log_entry_id,
        str(data["status"]).strip().upper(),
        reason=data.get("reason"),
        expected_version=expected_version,
    )
    return jsonify(verification), 200

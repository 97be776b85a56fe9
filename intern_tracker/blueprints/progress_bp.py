"""
Progress blueprint — intern dashboards and the tutor/admin overview.

Endpoints:
    GET /api/v1/progress?userId=&tab=intern|overview
    GET /api/v1/progress/tutor?internId=
    GET /api/v1/interns
"""

import logging

from flask import Blueprint, jsonify, request

from intern_tracker.auth import current_user, login_required, resolve_target_user_id, role_required
from intern_tracker.models.training import REVIEWER_ROLES, ROLE_ADMIN, ROLE_TUTOR
from intern_tracker.services.progress_service import get_progress_service
from intern_tracker.utils.errors import E, api_error, register_error_handlers
from intern_tracker.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)

progress_bp = Blueprint("progress", __name__, url_prefix="/api/v1")
register_error_handlers(progress_bp)

_TABS = ("intern", "overview")


@progress_bp.route("/progress", methods=["GET"])
@login_required
def get_progress():
    """Intern progress (defaults to the caller) or the reviewer overview."""
    tab = request.args.get("tab", "intern").strip().lower() or "intern"
    if tab not in _TABS:
        return api_error(
            E.VALIDATION_INVALID,
            f"Invalid tab '{tab}'. Must be one of: {', '.join(_TABS)}",
        )

    service = get_progress_service()
    if tab == "overview":
        if current_user().role not in REVIEWER_ROLES:
            return api_error(E.FORBIDDEN, "Forbidden")
        return jsonify(service.get_dashboard_overview())

    user_id, error = resolve_target_user_id(request.args.get("userId"))
    if error:
        return error
    return jsonify(service.get_intern_progress(user_id))


@progress_bp.route("/progress/tutor", methods=["GET"])
@role_required(ROLE_TUTOR, ROLE_ADMIN)
def get_tutor_progress():
    raw = request.args.get("internId", "").strip()
    intern_id = None
    if raw:
        intern_id = parse_int_arg(raw)
        if intern_id is None or intern_id < 1:
            return api_error(E.VALIDATION_INVALID, "Invalid intern ID", details={"internId": "invalid"})
    return jsonify(get_progress_service().get_tutor_progress(intern_id))


@progress_bp.route("/interns", methods=["GET"])
@role_required(ROLE_TUTOR, ROLE_ADMIN)
def list_interns():
    return jsonify({"interns": get_progress_service().list_interns()})

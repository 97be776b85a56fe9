"""
Reference data & admin content management.

Endpoints:
    GET   /api/v1/rotations?includeInactive=1
    GET   /api/v1/procedures
    GET   /api/v1/requirements?rotationId=
    PATCH /api/v1/admin/rotations/<id>      (ADMIN)
    PUT   /api/v1/admin/requirements        (ADMIN)
"""

import logging

from flask import Blueprint, jsonify, request

from intern_tracker.auth import login_required, role_required
from intern_tracker.models.training import ROLE_ADMIN
from intern_tracker.services import rotation_admin
from intern_tracker.services.cache_service import get_app_cache
from intern_tracker.services.reference_data import list_active_procedures
from intern_tracker.utils.errors import E, api_error, register_error_handlers
from intern_tracker.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)

reference_bp = Blueprint("reference", __name__, url_prefix="/api/v1")
register_error_handlers(reference_bp)


@reference_bp.route("/rotations", methods=["GET"])
@login_required
def list_rotations():
    include_inactive = request.args.get("includeInactive", "0") in ("1", "true")
    return jsonify({"rotations": rotation_admin.list_rotations(include_inactive=include_inactive)})


@reference_bp.route("/procedures", methods=["GET"])
@login_required
def list_procedures():
    return jsonify({"procedures": list_active_procedures(get_app_cache())})


@reference_bp.route("/requirements", methods=["GET"])
@login_required
def list_requirements():
    raw = request.args.get("rotationId", "").strip()
    rotation_id = None
    if raw:
        rotation_id = parse_int_arg(raw)
        if rotation_id is None:
            return api_error(E.VALIDATION_INVALID, "Invalid rotation ID", details={"rotationId": "invalid"})
    return jsonify({"requirements": rotation_admin.list_requirements(rotation_id)})


@reference_bp.route("/admin/rotations/<int:rotation_id>", methods=["PATCH"])
@role_required(ROLE_ADMIN)
def update_rotation(rotation_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return api_error(E.VALIDATION_INVALID, "Request body must be a non-empty JSON object")
    rotation = rotation_admin.update_rotation(rotation_id, data, cache=get_app_cache())
    return jsonify(rotation)


@reference_bp.route("/admin/requirements", methods=["PUT"])
@role_required(ROLE_ADMIN)
def put_requirement():
    """Create or update a requirement.

    Body: {"rotationId": int, "procedureId": int, "minCount": int}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")

    missing = [f for f in ("rotationId", "procedureId", "minCount") if data.get(f) is None]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )
    rotation_id = parse_int_arg(data["rotationId"])
    procedure_id = parse_int_arg(data["procedureId"])
    if rotation_id is None or procedure_id is None:
        return api_error(E.VALIDATION_INVALID, "rotationId and procedureId must be integers")

    requirement, created = rotation_admin.set_requirement(
        rotation_id, procedure_id, data["minCount"], cache=get_app_cache()
    )
    return jsonify(requirement), 201 if created else 200

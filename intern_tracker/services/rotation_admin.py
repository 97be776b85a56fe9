"""
Rotation content management for admins.

Every mutation invalidates the reference cache so progress views pick up
the change immediately instead of after the cache TTL.
"""

import logging

from sqlalchemy.orm import joinedload

from intern_tracker.core.exceptions import NotFoundError, ValidationError
from intern_tracker.models import db
from intern_tracker.models.training import (
    VALID_ROTATION_STATES,
    Procedure,
    Requirement,
    Rotation,
)
from intern_tracker.services.reference_data import invalidate_reference_data
from intern_tracker.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "description", "is_active", "state")


def list_rotations(include_inactive=False):
    q = Rotation.query
    if not include_inactive:
        q = q.filter(Rotation.is_active.is_(True))
    return [r.to_dict() for r in q.order_by(Rotation.name).all()]


def list_requirements(rotation_id=None):
    q = Requirement.query.options(joinedload(Requirement.procedure))
    if rotation_id is not None:
        q = q.filter(Requirement.rotation_id == rotation_id)
    return [r.to_dict() for r in q.order_by(Requirement.rotation_id, Requirement.id).all()]


def update_rotation(rotation_id, data, cache=None):
    """Patch a rotation's name/description/is_active/state."""
    rotation = db.session.get(Rotation, rotation_id)
    if rotation is None:
        raise NotFoundError("Rotation", rotation_id)

    unknown = set(data) - set(_UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown fields: {', '.join(sorted(unknown))}",
            details={f: "not updatable" for f in unknown},
        )
    if "state" in data and (not isinstance(data["state"], str) or data["state"] not in VALID_ROTATION_STATES):
        raise ValidationError(
            f"Invalid state '{data['state']}'. Must be one of: {', '.join(sorted(VALID_ROTATION_STATES))}",
            details={"state": "invalid"},
        )
    if "is_active" in data and not isinstance(data["is_active"], bool):
        raise ValidationError("is_active must be a boolean", details={"is_active": "invalid"})
    if "name" in data:
        if not isinstance(data["name"], str):
            raise ValidationError("name must be a string", details={"name": "invalid"})
        if not data["name"].strip():
            raise ValidationError("name cannot be blank", details={"name": "required"})
    if "description" in data and data["description"] is not None and not isinstance(data["description"], str):
        raise ValidationError("description must be a string or null", details={"description": "invalid"})

    for field in _UPDATABLE_FIELDS:
        if field in data:
            value = data[field].strip() if field == "name" else data[field]
            setattr(rotation, field, value)

    commit_or_raise("Rotation")
    invalidate_reference_data(cache)
    logger.info("Rotation updated id=%s fields=%s", rotation_id, sorted(data))
    return rotation.to_dict()


def set_requirement(rotation_id, procedure_id, min_count, cache=None):
    """Create or update the minimum count of a procedure within a rotation."""
    if isinstance(min_count, bool) or not isinstance(min_count, int) or min_count < 1:
        raise ValidationError("min_count must be an integer >= 1", details={"min_count": "min 1"})

    rotation = db.session.get(Rotation, rotation_id)
    if rotation is None:
        raise NotFoundError("Rotation", rotation_id)
    procedure = db.session.get(Procedure, procedure_id)
    if procedure is None:
        raise NotFoundError("Procedure", procedure_id)
    if procedure.rotation_id != rotation.id:
        raise ValidationError(
            "Procedure does not belong to this rotation",
            details={"procedure_id": "wrong rotation"},
        )

    requirement = Requirement.query.filter_by(
        rotation_id=rotation.id, procedure_id=procedure.id
    ).first()
    created = requirement is None
    if created:
        requirement = Requirement(rotation_id=rotation.id, procedure_id=procedure.id)
        db.session.add(requirement)
    requirement.min_count = min_count

    commit_or_raise("Requirement")
    invalidate_reference_data(cache)
    logger.info("Requirement %s rotation=%s procedure=%s min_count=%s",
                "created" if created else "updated", rotation.id, procedure.id, min_count)
    return requirement.to_dict(), created

"""
Reference-data loader — active rotations with their requirements.

Rotations and requirements change rarely, so the loaded shape is kept in
the injected ReferenceCache under fixed keys. Admin mutations call
``invalidate_reference_data``; anything else becomes visible after the TTL.

Database errors propagate to the caller untouched. An unreachable cache only
costs the round trip: reads fall through to the database.
"""

import logging

import redis
from sqlalchemy.orm import selectinload

from intern_tracker.models.training import Procedure, Requirement, Rotation

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "reference:"
ROTATIONS_KEY = "reference:rotations"
PROCEDURES_KEY = "reference:procedures"


def _query_active_rotations():
    rotations = (
        Rotation.query
        .filter(Rotation.is_active.is_(True))
        .options(selectinload(Rotation.requirements).selectinload(Requirement.procedure))
        .order_by(Rotation.name)
        .all()
    )
    logger.debug("Loaded %d active rotations from database", len(rotations))
    return [
        {
            "id": r.id,
            "name": r.name,
            "state": r.state,
            "is_active": r.is_active,
            "requirements": [
                {
                    "id": req.id,
                    "procedure_id": req.procedure_id,
                    "procedure_name": req.procedure.name if req.procedure else None,
                    "min_count": req.min_count,
                }
                for req in sorted(r.requirements, key=lambda x: x.id)
            ],
        }
        for r in rotations
    ]


def _query_active_procedures():
    procedures = (
        Procedure.query
        .join(Rotation, Procedure.rotation_id == Rotation.id)
        .filter(Rotation.is_active.is_(True))
        .order_by(Procedure.rotation_id, Procedure.name)
        .all()
    )
    return [{"id": p.id, "name": p.name, "rotation_id": p.rotation_id} for p in procedures]


def load_active_rotations(cache=None):
    """Return active rotations, each with its requirements and target procedure.

    Shape::

        [{"id", "name", "state", "is_active",
          "requirements": [{"id", "procedure_id", "procedure_name", "min_count"}]}]

    Without a cache every call queries the database.
    """
    if cache is None:
        return _query_active_rotations()
    return cache.get_or_load(ROTATIONS_KEY, _query_active_rotations)


def list_active_procedures(cache=None):
    """Procedures belonging to active rotations, for the log-entry picker."""
    if cache is None:
        return _query_active_procedures()
    return cache.get_or_load(PROCEDURES_KEY, _query_active_procedures)


def invalidate_reference_data(cache):
    """Drop every cached reference entry. Safe to call with ``cache=None``."""
    if cache is None:
        return 0
    try:
        removed = cache.invalidate(REFERENCE_PREFIX)
    except redis.RedisError as exc:
        # the change is already committed; entries left behind expire with the TTL
        logger.error("Reference cache invalidation failed: %s", exc)
        return 0
    logger.info("Reference cache invalidated (%d keys)", removed)
    return removed

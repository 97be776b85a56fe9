"""
Probes for the load balancer and uptime checks.

    GET /api/v1/health/ready   process is up (no dependency checks)
    GET /api/v1/health/live    database round trip + reference cache status

The cache being down degrades nothing but latency, so only the database
decides between 200 and 503.
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from intern_tracker.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


def _check_database():
    started = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness probe: database unreachable: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


def _check_cache():
    cache = current_app.extensions.get("reference_cache")
    if cache is None:
        return {"status": "skipped", "detail": "no reference cache configured"}
    return cache.health_check()


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"})


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {
        "database": _check_database(),
        "cache": _check_cache(),
        "app": {
            "name": "Intern Training Tracker",
            "debug": current_app.debug,
            "testing": current_app.testing,
        },
    }
    healthy = checks["database"]["status"] == "ok"
    return jsonify({"status": "healthy" if healthy else "degraded", "checks": checks}), (200 if healthy else 503)

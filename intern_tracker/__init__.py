"""
Intern Training Tracker: application factory.

    from intern_tracker import create_app
    app = create_app()            # APP_ENV, else "development"
    app = create_app("testing")

Everything under /api/v1 is JSON; the caller is identified by the
X-User-Id header (see intern_tracker.auth).
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import OperationalError

from intern_tracker.auth import init_auth
from intern_tracker.config import config
from intern_tracker.middleware.logging_config import configure_logging
from intern_tracker.middleware.rate_limiter import init_rate_limits
from intern_tracker.middleware.timing import init_request_timing
from intern_tracker.models import db
from intern_tracker.services.cache_service import build_cache

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(key_func=get_remote_address, default_limits=[])


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, connection_record):
    # SQLite ships with FK checks off; cascades on log_entries rely on them
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _cors_origins(raw):
    if not raw or raw == "*":
        return "*"
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    CORS(app, origins=_cors_origins(app.config.get("CORS_ORIGINS")))
    build_cache(app)


def _register_blueprints(app):
    from intern_tracker.blueprints.export_bp import export_bp
    from intern_tracker.blueprints.health_bp import health_bp
    from intern_tracker.blueprints.logs_bp import logs_bp
    from intern_tracker.blueprints.progress_bp import progress_bp
    from intern_tracker.blueprints.reference_bp import reference_bp
    from intern_tracker.blueprints.review_bp import review_bp

    for bp in (progress_bp, logs_bp, review_bp, export_bp, reference_bp, health_bp):
        app.register_blueprint(bp)


def _register_app_errors(app):
    """JSON bodies for errors raised outside any blueprint handler."""

    @app.errorhandler(404)
    def _unknown_route(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def _wrong_method(e):
        return {"error": "Method not allowed", "path": request.path}, 405

    @app.errorhandler(429)
    def _throttled(e):
        return {"error": "Too many requests", "detail": str(e.description)}, 429

    @app.errorhandler(500)
    def _unhandled(e):
        logger.error("Unhandled error on %s %s: %s", request.method, request.path, e, exc_info=True)
        return {"error": "Internal server error"}, 500


def _register_cli(app):
    @app.cli.command("clear-reference-cache")
    def clear_reference_cache_cmd():
        """Drop cached rotations / procedures so the next request reloads them."""
        from intern_tracker.services.reference_data import invalidate_reference_data

        removed = invalidate_reference_data(app.extensions["reference_cache"])
        logger.info("Cleared %s reference cache keys.", removed)


def create_app(config_name=None):
    """Build the tracker app for *config_name* ("development" | "testing" | "production")."""
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    configure_logging(app)
    _init_extensions(app)
    init_request_timing(app)
    init_auth(app)

    # model classes must be imported before create_all / alembic autogenerate
    from intern_tracker.models import training  # noqa: F401

    if not app.testing:
        with app.app_context():
            try:
                db.create_all()
            except OperationalError as exc:
                # schema is owned by `flask db upgrade` when this fails
                logger.warning("Skipping create_all: %s", exc)

    _register_blueprints(app)
    init_rate_limits(app, limiter)
    _register_cli(app)
    _register_app_errors(app)
    return app

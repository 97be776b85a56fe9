"""
Shared pytest fixtures for the Intern Training Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - reference_cache: the app's ReferenceCache (emptied per test)
    - unreachable_cache: ReferenceCache over a backend that always raises ConnectionError
    - admin / tutor / intern: pre-created users
    - make_user / make_rotation / make_log: factory fixtures for test data
    - icu: "ICU" rotation with two procedures and requirements {5, 3}
    - auth_headers: builds the identity header for a user
"""

from datetime import date

import pytest
import redis

from intern_tracker import create_app
from intern_tracker.auth import USER_HEADER
from intern_tracker.models import db as _db
from intern_tracker.models.training import (
    ROLE_ADMIN,
    ROLE_INTERN,
    ROLE_TUTOR,
    STATE_ACTIVE,
    STATUS_PENDING,
    LogEntry,
    Procedure,
    Requirement,
    Rotation,
    User,
    Verification,
)
from intern_tracker.services.cache_service import ReferenceCache


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # ids are reused after the reset; cached reference rows would be stale
        app.extensions["reference_cache"].clear()
        yield
        app.extensions["reference_cache"].clear()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def reference_cache(app):
    return app.extensions["reference_cache"]


class UnreachableBackend:
    """Redis client stand-in whose every call fails as if the server were down."""

    def __init__(self):
        self.calls = []

    def _fail(self, name):
        self.calls.append(name)
        raise redis.ConnectionError("Error 111 connecting to redis:6379. Connection refused.")

    def get(self, key):
        self._fail("get")

    def setex(self, key, ttl_seconds, value):
        self._fail("setex")

    def delete(self, *keys):
        self._fail("delete")

    def keys(self, pattern):
        self._fail("keys")

    def ping(self):
        self._fail("ping")


@pytest.fixture()
def unreachable_cache():
    """ReferenceCache whose backend refuses every connection."""
    return ReferenceCache(backend=UnreachableBackend(), namespace="down:")


# ── Builders (handed out by the factory fixtures below) ─────────────────


def _create_user(name, role=ROLE_INTERN, email=None):
    user = User(name=name, email=email or f"{name.lower().replace(' ', '.')}@test.local", role=role)
    _db.session.add(user)
    _db.session.flush()
    return user


def _create_rotation(name, requirements, state=STATE_ACTIVE, is_active=True):
    """Create a rotation with one procedure per ``{procedure_name: min_count}`` item.

    A min_count of 0 creates the procedure without a requirement.
    Returns ``(rotation, {procedure_name: Procedure})``.
    """
    rotation = Rotation(name=name, state=state, is_active=is_active)
    _db.session.add(rotation)
    _db.session.flush()
    procedures = {}
    for proc_name, min_count in requirements.items():
        proc = Procedure(rotation_id=rotation.id, name=proc_name)
        _db.session.add(proc)
        _db.session.flush()
        if min_count:
            _db.session.add(Requirement(rotation_id=rotation.id, procedure_id=proc.id, min_count=min_count))
        procedures[proc_name] = proc
    _db.session.flush()
    return rotation, procedures


def _create_log(intern, procedure, count=1, status=STATUS_PENDING, log_date=None,
                verifier=None, reason=None, notes=None, with_verification=True):
    entry = LogEntry(
        intern_id=intern.id,
        procedure_id=procedure.id,
        date=log_date or date.today(),
        count=count,
        notes=notes,
    )
    if with_verification:
        entry.verification = Verification(
            status=status,
            verifier_id=verifier.id if verifier else None,
            reason=reason,
        )
    _db.session.add(entry)
    _db.session.flush()
    return entry


# ── Factory fixtures ─────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """``make_user(name, role=INTERN, email=None)``: flushed, not committed."""
    return _create_user


@pytest.fixture()
def make_rotation():
    """``make_rotation(name, {procedure_name: min_count}, state, is_active)``.

    A min_count of 0 creates the procedure without a requirement.
    """
    return _create_rotation


@pytest.fixture()
def make_log():
    """``make_log(intern, procedure, count, status, ...)``; adds a Verification unless told not to."""
    return _create_log


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def admin():
    user = _create_user("Admin Ada", ROLE_ADMIN)
    _db.session.commit()
    return user


@pytest.fixture()
def tutor():
    user = _create_user("Tutor Tamar", ROLE_TUTOR)
    _db.session.commit()
    return user


@pytest.fixture()
def intern():
    user = _create_user("Intern Itai", ROLE_INTERN)
    _db.session.commit()
    return user


@pytest.fixture()
def icu():
    """ICU rotation requiring Arterial Line x5 and Central Line x3."""
    rotation, procedures = _create_rotation("ICU", {"Arterial Line": 5, "Central Line": 3})
    _db.session.commit()
    return rotation, procedures


@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {USER_HEADER: str(user.id)}

    return _headers

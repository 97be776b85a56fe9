"""
Intern Training Tracker
Request identity & role-based access control.

Session handling lives in front of this service (reverse proxy / SSO);
it forwards the authenticated user's id in the ``X-User-Id`` header.
This module turns that header into ``g.current_user`` and provides:

    - login_required          — 401 when no known user is attached
    - role_required(*roles)   — 403 when the user's role is not listed
    - can_access_user()       — interns may only read their own data
    - resolve_target_user_id  — parse + authorise the ``userId`` query arg

Roles: INTERN, TUTOR, ADMIN (TUTOR and ADMIN can review and read anyone).
"""

import functools
import logging

from flask import g, request

from intern_tracker.models import db
from intern_tracker.models.training import REVIEWER_ROLES, ROLE_INTERN, User
from intern_tracker.utils.errors import E, api_error
from intern_tracker.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


def _load_current_user():
    g.current_user = None
    user_id = parse_int_arg(request.headers.get(USER_HEADER, "").strip())
    if not user_id:
        return
    user = db.session.get(User, user_id)
    if user is None:
        logger.warning("Unknown user id in %s header: %s", USER_HEADER, user_id)
        return
    g.current_user = user


def init_auth(app):
    """Attach the request's user (if any) before every API request."""

    @app.before_request
    def _attach_user():
        if request.path.startswith("/api/"):
            _load_current_user()


def current_user():
    return getattr(g, "current_user", None)


def login_required(f):
    """Decorator: require an identified user."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_user() is None:
            return api_error(E.UNAUTHORIZED, "Unauthorized")
        return f(*args, **kwargs)

    return decorated


def role_required(*roles):
    """
    Decorator: require one of *roles*. Implies login_required.

    Usage:
        @role_required("TUTOR", "ADMIN")
        def verify_queue(): ...
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user is None:
                return api_error(E.UNAUTHORIZED, "Unauthorized")
            if user.role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access %s (requires %s)",
                    user.role, request.endpoint, sorted(allowed),
                )
                return api_error(E.FORBIDDEN, "Forbidden")
            return f(*args, **kwargs)

        return decorated

    return decorator


def can_access_user(requester, user_id) -> bool:
    """Interns may only read their own data; tutors and admins may read anyone's."""
    if requester is None:
        return False
    if requester.role in REVIEWER_ROLES:
        return True
    return requester.role == ROLE_INTERN and requester.id == user_id


def resolve_target_user_id(raw):
    """Return ``(user_id, None)`` for the ``userId`` query arg, or ``(None, error_response)``.

    Missing ``userId`` means the current user. Malformed ids → 400,
    reading someone else's data as an intern → 403.
    """
    requester = current_user()
    if raw is None or str(raw).strip() == "":
        return requester.id, None
    user_id = parse_int_arg(str(raw).strip())
    if user_id is None or user_id < 1:
        return None, api_error(E.VALIDATION_INVALID, "Invalid user ID", details={"userId": "invalid"})
    if not can_access_user(requester, user_id):
        logger.warning("User %s denied access to data of user %s", requester.id, user_id)
        return None, api_error(E.FORBIDDEN, "Forbidden")
    return user_id, None

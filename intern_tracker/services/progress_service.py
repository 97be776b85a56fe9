"""
Progress Service — intern dashboards and the tutor/admin overview.

Reads:
  - reference rotations through the injected ReferenceCache
  - log entries in one bulk query per call (never one query per rotation
    or per intern), grouped client-side by rotation / intern

Error contract:
  - bad user id          → ValidationError, raised before any query
  - database failures    → ProgressError chaining the original exception
  - unknown tutor target → NotFoundError
  - pending-verification and recent-activity lookups swallow their own
    database errors (logged) and return [] so the dashboard still renders
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import redis
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import contains_eager, joinedload

from intern_tracker.core.exceptions import NotFoundError, ProgressError, ValidationError
from intern_tracker.models import db
from intern_tracker.models.training import (
    ROLE_INTERN,
    STATUS_APPROVED,
    STATUS_PENDING,
    LogEntry,
    Procedure,
    User,
    Verification,
)
from intern_tracker.services.progress import LogRow, calculate_progress, group_by_intern
from intern_tracker.services.reference_data import load_active_rotations

logger = logging.getLogger(__name__)

DEFAULT_LOG_WINDOW_DAYS = 730      # two years of logs count towards progress
RECENT_ACTIVITY_DAYS = 7
PENDING_LIMIT = 5
ACTIVITY_LIMIT = 10

ACTIVITY_LOG_CREATED = "LOG_CREATED"
ACTIVITY_LOG_VERIFIED = "LOG_VERIFIED"
ACTIVITY_LOG_REJECTED = "LOG_REJECTED"

_AGGREGATION_ERRORS = (SQLAlchemyError, redis.RedisError)


def _utcnow():
    return datetime.now(timezone.utc)


def require_user_id(user_id) -> int:
    """Validate and normalise a user id without touching the database."""
    if user_id is None or isinstance(user_id, bool):
        raise ValidationError("User ID is required", details={"userId": "required"})
    if isinstance(user_id, str):
        user_id = user_id.strip()
        if not user_id:
            raise ValidationError("User ID is required", details={"userId": "required"})
        if not (user_id.isascii() and user_id.isdigit()):
            raise ValidationError("User ID must be a positive integer", details={"userId": "invalid"})
        user_id = int(user_id)
    if not isinstance(user_id, int) or user_id <= 0:
        raise ValidationError("User ID must be a positive integer", details={"userId": "invalid"})
    return user_id


def fetch_intern_log_rows(intern_ids, since=None) -> list[LogRow]:
    """All log entries for *intern_ids* in a single query.

    Joins the procedure (for its rotation id) and the optional verification
    (for its status). *since* bounds ``LogEntry.date`` from below.
    """
    intern_ids = list(intern_ids)
    if not intern_ids:
        return []

    q = (
        db.session.query(
            LogEntry.id,
            LogEntry.intern_id,
            Procedure.rotation_id,
            LogEntry.count,
            Verification.status,
        )
        .join(Procedure, LogEntry.procedure_id == Procedure.id)
        .outerjoin(Verification, Verification.log_entry_id == LogEntry.id)
        .filter(LogEntry.intern_id.in_(intern_ids))
    )
    if since is not None:
        q = q.filter(LogEntry.date >= since)
    return [LogRow(*row) for row in q.all()]


def _classify_activity(log):
    name = log.procedure.name if log.procedure else "Unknown procedure"
    status = log.verification.status if log.verification else None
    if status == STATUS_APPROVED:
        return ACTIVITY_LOG_VERIFIED, f"{name} verified"
    if status is None or status == STATUS_PENDING:
        return ACTIVITY_LOG_CREATED, f"Logged {log.count} {name}"
    return ACTIVITY_LOG_REJECTED, f"{name} rejected"


class ProgressService:
    """Progress aggregation bound to one reference cache and log window."""

    def __init__(self, cache=None, log_window_days=DEFAULT_LOG_WINDOW_DAYS, clock=None):
        self.cache = cache
        self.log_window_days = log_window_days
        self._clock = clock or _utcnow

    @classmethod
    def from_app(cls, app):
        return cls(
            cache=app.extensions.get("reference_cache"),
            log_window_days=app.config.get("LOG_WINDOW_DAYS", DEFAULT_LOG_WINDOW_DAYS),
        )

    def _window_start(self):
        if not self.log_window_days:
            return None
        return self._clock().date() - timedelta(days=self.log_window_days)

    # ── Intern progress ──────────────────────────────────────────────────

    def calculate_for_intern(self, user_id):
        """Return ``(rotations, summary)`` for one intern."""
        user_id = require_user_id(user_id)
        try:
            reference = load_active_rotations(self.cache)
            rows = fetch_intern_log_rows([user_id], since=self._window_start())
        except _AGGREGATION_ERRORS as exc:
            logger.exception("Progress aggregation failed for user=%s", user_id)
            raise ProgressError() from exc
        return calculate_progress(reference, rows)

    def get_intern_progress(self, user_id):
        """Full intern dashboard payload."""
        user_id = require_user_id(user_id)
        rotations, summary = self.calculate_for_intern(user_id)
        return {
            "summary": summary.to_dict(),
            "rotations": [r.to_dict() for r in rotations],
            "pending_verifications": self.get_pending_verifications(user_id, PENDING_LIMIT),
            "recent_activity": self.get_recent_activity(user_id, ACTIVITY_LIMIT),
        }

    # ── Tutor / admin views ──────────────────────────────────────────────

    def list_interns(self):
        interns = (
            User.query.filter(User.role == ROLE_INTERN)
            .order_by(User.name, User.id)
            .all()
        )
        return [{"id": u.id, "name": u.display_name, "email": u.email} for u in interns]

    def get_tutor_progress(self, intern_id=None):
        """Intern progress for the tutor selector.

        Without *intern_id* the earliest-registered intern is selected.
        """
        if intern_id is None or intern_id == "":
            intern = (
                User.query.filter(User.role == ROLE_INTERN)
                .order_by(User.created_at, User.id)
                .first()
            )
            if intern is None:
                raise NotFoundError("Intern")
        else:
            intern_id = require_user_id(intern_id)
            intern = db.session.get(User, intern_id)
            if intern is None or intern.role != ROLE_INTERN:
                raise NotFoundError("Intern", intern_id)

        progress = self.get_intern_progress(intern.id)
        progress["selected_intern_id"] = intern.id
        progress["selected_intern_name"] = intern.display_name
        return progress

    def get_dashboard_overview(self):
        """Summary for every intern plus global counters.

        Issues a fixed number of queries regardless of how many interns exist.
        """
        try:
            interns = User.query.filter(User.role == ROLE_INTERN).order_by(User.name, User.id).all()
            reference = load_active_rotations(self.cache)
            rows = fetch_intern_log_rows([u.id for u in interns], since=self._window_start())

            total_pending = (
                db.session.query(func.count(Verification.id))
                .filter(Verification.status == STATUS_PENDING)
                .scalar()
            ) or 0
            since = self._clock() - timedelta(days=RECENT_ACTIVITY_DAYS)
            last_7_days = (
                db.session.query(func.count(LogEntry.id))
                .filter(LogEntry.created_at >= since)
                .scalar()
            ) or 0
        except _AGGREGATION_ERRORS as exc:
            logger.exception("Dashboard overview aggregation failed")
            raise ProgressError("Failed to get dashboard overview") from exc

        by_intern = group_by_intern(rows)
        summaries = []
        for intern in interns:
            _, summary = calculate_progress(reference, by_intern.get(intern.id, []))
            summaries.append({
                "id": intern.id,
                "name": intern.display_name,
                "email": intern.email,
                "total_verified": summary.total_verified,
                "total_pending": summary.total_pending,
                "total_over_achieved": summary.total_over_achieved,
                "completion_percentage": summary.completion_percentage,
                "over_achievement_percentage": summary.over_achievement_percentage,
            })

        return {
            "total_interns": len(interns),
            "total_pending_verifications": total_pending,
            "last_7_days_activity": last_7_days,
            "interns": summaries,
        }

    # ── Dashboard side panels ────────────────────────────────────────────

    def get_pending_verifications(self, user_id, limit=PENDING_LIMIT):
        """Newest PENDING verifications of the intern's log entries."""
        try:
            verifications = (
                Verification.query
                .join(LogEntry, Verification.log_entry_id == LogEntry.id)
                .filter(Verification.status == STATUS_PENDING, LogEntry.intern_id == user_id)
                .options(
                    contains_eager(Verification.log_entry).options(
                        joinedload(LogEntry.procedure),
                        joinedload(LogEntry.intern),
                    ),
                )
                .order_by(Verification.timestamp.desc(), Verification.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError:
            logger.exception("Pending verifications lookup failed for user=%s", user_id)
            db.session.rollback()
            return []

        items = []
        for v in verifications:
            log = v.log_entry
            created = v.timestamp or log.created_at
            items.append({
                "id": v.id,
                "log_entry_id": log.id,
                "procedure_name": log.procedure.name,
                "intern_name": log.intern.display_name,
                "date": log.date.isoformat(),
                "count": log.count,
                "notes": log.notes,
                "created_at": created.isoformat() if created else None,
            })
        return items

    def get_recent_activity(self, user_id, limit=ACTIVITY_LIMIT):
        """The intern's latest log entries classified by verification outcome."""
        try:
            logs = (
                LogEntry.query
                .filter(LogEntry.intern_id == user_id)
                .options(joinedload(LogEntry.procedure), joinedload(LogEntry.verification))
                .order_by(LogEntry.created_at.desc(), LogEntry.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError:
            logger.exception("Recent activity lookup failed for user=%s", user_id)
            db.session.rollback()
            return []

        activity = []
        for log in logs:
            kind, description = _classify_activity(log)
            activity.append({
                "id": log.id,
                "type": kind,
                "description": description,
                "timestamp": log.created_at.isoformat() if log.created_at else None,
                "intern_name": "You",
                "procedure_name": log.procedure.name if log.procedure else None,
            })
        return activity


def get_progress_service():
    """ProgressService bound to the current application's cache and config."""
    from flask import current_app

    return ProgressService.from_app(current_app)

"""
Log Entry & Verification Service.

Interns submit log entries; each new entry gets a PENDING verification.
Tutors and admins approve or reject it. APPROVED and REJECTED are terminal.

Concurrent reviews:
    The decision is written with a conditional UPDATE guarded by
    ``status = 'PENDING' AND version = :expected``. When another reviewer
    got there first the UPDATE matches no row and ConflictError is raised,
    so the first decision always wins.

Layer contract:
    - All db.session writes for logs and verifications live here.
    - Blueprints only parse input and map exceptions to HTTP codes.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import joinedload

from intern_tracker.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from intern_tracker.models import db
from intern_tracker.models.training import (
    MAX_NOTES_LENGTH,
    MAX_REASON_LENGTH,
    REVIEW_DECISIONS,
    ROLE_INTERN,
    STATUS_PENDING,
    STATUS_REJECTED,
    LogEntry,
    Procedure,
    Verification,
)
from intern_tracker.utils.helpers import commit_or_raise, parse_date_input, sanitize_text

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def _clean(value, max_length, field):
    try:
        return sanitize_text(value, max_length)
    except ValueError as exc:
        raise ValidationError(f"{field} {exc}", details={field: str(exc)}) from exc


def _positive_int(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"})
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"}) from exc
    if number < 1:
        raise ValidationError(f"{field} must be >= 1", details={field: "min 1"})
    return number


# ── Intern submissions ───────────────────────────────────────────────────────


def create_log(intern, procedure_id, log_date, count, notes=None, today=None):
    """Record that *intern* performed a procedure *count* times on *log_date*.

    Returns:
        The created log entry as a dict (with its PENDING verification).
    """
    if intern is None or intern.role != ROLE_INTERN:
        raise PermissionDeniedError("Only interns can create log entries")

    procedure_id = _positive_int(procedure_id, "procedure_id")
    count = _positive_int(count, "count")
    try:
        when = parse_date_input(log_date)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"date": "invalid"}) from exc
    if when is None:
        raise ValidationError("date is required", details={"date": "required"})
    if when > (today or date.today()):
        raise ValidationError("Date cannot be in the future", details={"date": "future"})
    notes = _clean(notes, MAX_NOTES_LENGTH, "notes")

    procedure = db.session.get(Procedure, procedure_id)
    if procedure is None:
        raise NotFoundError("Procedure", procedure_id)

    entry = LogEntry(
        intern_id=intern.id,
        procedure_id=procedure.id,
        date=when,
        count=count,
        notes=notes,
        verification=Verification(status=STATUS_PENDING, verifier_id=None),
    )
    db.session.add(entry)
    commit_or_raise("LogEntry")
    logger.info("Log entry created id=%s intern=%s procedure=%s count=%s",
                entry.id, intern.id, procedure.id, count)
    return entry.to_dict()


def list_my_logs(intern_id, page=1, limit=DEFAULT_PAGE_SIZE):
    """One page of the intern's log entries, newest date first."""
    page = max(1, int(page or 1))
    limit = min(MAX_PAGE_SIZE, max(1, int(limit or DEFAULT_PAGE_SIZE)))
    skip = (page - 1) * limit

    q = LogEntry.query.filter(LogEntry.intern_id == intern_id)
    total = q.count()
    logs = (
        q.options(joinedload(LogEntry.procedure), joinedload(LogEntry.verification))
        .order_by(LogEntry.date.desc(), LogEntry.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return {
        "logs": [log.to_dict() for log in logs],
        "total": total,
        "page": page,
        "limit": limit,
        "has_more": skip + len(logs) < total,
    }


# ── Tutor review ─────────────────────────────────────────────────────────────


def list_pending_for_tutor(skip=0, take=DEFAULT_PAGE_SIZE):
    """Log entries awaiting review across all interns."""
    logs = (
        LogEntry.query
        .join(Verification, Verification.log_entry_id == LogEntry.id)
        .filter(Verification.status == STATUS_PENDING)
        .options(
            joinedload(LogEntry.intern),
            joinedload(LogEntry.procedure),
            joinedload(LogEntry.verification),
        )
        .order_by(LogEntry.date.desc(), LogEntry.id.desc())
        .offset(max(0, skip))
        .limit(min(MAX_PAGE_SIZE, max(1, take)))
        .all()
    )
    items = []
    for log in logs:
        d = log.to_dict()
        d["intern"] = {"id": log.intern.id, "name": log.intern.name, "email": log.intern.email}
        items.append(d)
    return items


def verify_log(reviewer, log_entry_id, status, reason=None, expected_version=None):
    """Approve or reject a pending log entry.

    Args:
        reviewer: The TUTOR or ADMIN user making the decision.
        log_entry_id: Log entry under review.
        status: "APPROVED" or "REJECTED".
        reason: Required (non-blank) for REJECTED.
        expected_version: Verification version the reviewer saw. Defaults
            to the version read here.

    Raises:
        PermissionDeniedError, ValidationError, NotFoundError,
        ConflictError (already reviewed or lost a concurrent race).
    """
    if reviewer is None or not reviewer.is_reviewer:
        raise PermissionDeniedError("Only tutors and admins can review log entries")
    if status not in REVIEW_DECISIONS:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(REVIEW_DECISIONS))}",
            details={"status": "invalid"},
        )
    reason = _clean(reason, MAX_REASON_LENGTH, "reason")
    if status == STATUS_REJECTED and not reason:
        raise ValidationError("Reason is required when rejecting", details={"reason": "required"})

    verification = Verification.query.filter_by(log_entry_id=log_entry_id).first()
    if verification is None:
        raise NotFoundError("LogEntry", log_entry_id)
    if verification.status != STATUS_PENDING:
        raise ConflictError("Already reviewed", resource="Verification")

    version = verification.version if expected_version is None else expected_version
    result = db.session.execute(
        update(Verification)
        .where(
            Verification.id == verification.id,
            Verification.status == STATUS_PENDING,
            Verification.version == version,
        )
        .values(
            status=status,
            reason=reason,
            verifier_id=reviewer.id,
            timestamp=datetime.now(timezone.utc),
            version=Verification.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        logger.warning("Concurrent review rejected log_entry=%s reviewer=%s expected_version=%s",
                       log_entry_id, reviewer.id, version)
        raise ConflictError("Log entry was reviewed concurrently", resource="Verification")

    commit_or_raise("Verification")
    db.session.refresh(verification)
    logger.info("Verification decision=%s log_entry=%s reviewer=%s",
                status, log_entry_id, reviewer.id)
    return verification.to_dict()

"""
Training Models — users, rotations, procedures, requirements, log entries, verifications.

Relationships:
    Rotation 1─* Procedure
    Rotation 1─* Requirement *─1 Procedure
    User(intern) 1─* LogEntry *─1 Procedure
    LogEntry 1─1 Verification *─1 User(verifier)

Status/role/state columns are plain strings validated against the
frozensets below (SQLite has no native enum support).
"""

from datetime import datetime, timezone

from intern_tracker.models import db

# ── Constants ─────────────────────────────────────────────────────────────────

ROLE_INTERN = "INTERN"
ROLE_TUTOR = "TUTOR"
ROLE_ADMIN = "ADMIN"
VALID_ROLES = frozenset({ROLE_INTERN, ROLE_TUTOR, ROLE_ADMIN})
REVIEWER_ROLES = frozenset({ROLE_TUTOR, ROLE_ADMIN})

STATE_NOT_STARTED = "NOT_STARTED"
STATE_ACTIVE = "ACTIVE"
STATE_FINISHED = "FINISHED"
VALID_ROTATION_STATES = frozenset({STATE_NOT_STARTED, STATE_ACTIVE, STATE_FINISHED})

STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
VALID_VERIFICATION_STATUSES = frozenset({STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED})
REVIEW_DECISIONS = frozenset({STATUS_APPROVED, STATUS_REJECTED})

MAX_NOTES_LENGTH = 1000
MAX_REASON_LENGTH = 500


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200))
    email = db.Column(db.String(200), nullable=False, unique=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_INTERN, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)

    log_entries = db.relationship(
        "LogEntry", back_populates="intern", lazy="dynamic",
        foreign_keys="LogEntry.intern_id",
    )
    verifications = db.relationship(
        "Verification", back_populates="verifier", lazy="dynamic",
        foreign_keys="Verification.verifier_id",
    )

    @property
    def display_name(self):
        return self.name or "Unknown"

    @property
    def is_reviewer(self):
        return self.role in REVIEWER_ROLES

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": _iso(self.created_at),
        }


# ═══════════════════════════════════════════════════════════════
# 2. ROTATIONS
# ═══════════════════════════════════════════════════════════════
class Rotation(db.Model):
    __tablename__ = "rotations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    description = db.Column(db.Text)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    state = db.Column(db.String(20), nullable=False, default=STATE_NOT_STARTED)
    created_at = db.Column(db.DateTime, default=_utcnow)

    procedures = db.relationship(
        "Procedure", back_populates="rotation", cascade="all, delete-orphan",
        order_by="Procedure.name",
    )
    requirements = db.relationship(
        "Requirement", back_populates="rotation", cascade="all, delete-orphan",
    )

    def to_dict(self, include_requirements=False):
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "state": self.state,
            "created_at": _iso(self.created_at),
        }
        if include_requirements:
            d["requirements"] = [r.to_dict() for r in self.requirements]
        return d


# ═══════════════════════════════════════════════════════════════
# 3. PROCEDURES
# ═══════════════════════════════════════════════════════════════
class Procedure(db.Model):
    __tablename__ = "procedures"

    id = db.Column(db.Integer, primary_key=True)
    rotation_id = db.Column(
        db.Integer, db.ForeignKey("rotations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)

    __table_args__ = (
        db.UniqueConstraint("rotation_id", "name", name="uq_procedure_rotation_name"),
    )

    rotation = db.relationship("Rotation", back_populates="procedures")

    def to_dict(self):
        return {
            "id": self.id,
            "rotation_id": self.rotation_id,
            "name": self.name,
            "description": self.description,
        }


# ═══════════════════════════════════════════════════════════════
# 4. REQUIREMENTS
# ═══════════════════════════════════════════════════════════════
class Requirement(db.Model):
    """Minimum number of times a procedure must be logged within a rotation."""

    __tablename__ = "requirements"

    id = db.Column(db.Integer, primary_key=True)
    rotation_id = db.Column(
        db.Integer, db.ForeignKey("rotations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    procedure_id = db.Column(
        db.Integer, db.ForeignKey("procedures.id", ondelete="CASCADE"), nullable=False
    )
    min_count = db.Column(db.Integer, nullable=False, default=1)

    __table_args__ = (
        db.UniqueConstraint("rotation_id", "procedure_id", name="uq_requirement_rotation_procedure"),
        db.CheckConstraint("min_count >= 1", name="ck_requirement_min_count"),
    )

    rotation = db.relationship("Rotation", back_populates="requirements")
    procedure = db.relationship("Procedure")

    def to_dict(self):
        return {
            "id": self.id,
            "rotation_id": self.rotation_id,
            "procedure_id": self.procedure_id,
            "procedure_name": self.procedure.name if self.procedure else None,
            "min_count": self.min_count,
        }


# ═══════════════════════════════════════════════════════════════
# 5. LOG ENTRIES
# ═══════════════════════════════════════════════════════════════
class LogEntry(db.Model):
    """An intern performing a procedure ``count`` times on ``date``.

    Created on intern submission and never deleted in the normal flow.
    """

    __tablename__ = "log_entries"

    id = db.Column(db.Integer, primary_key=True)
    intern_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    procedure_id = db.Column(
        db.Integer, db.ForeignKey("procedures.id", ondelete="CASCADE"), nullable=False
    )
    date = db.Column(db.Date, nullable=False)
    count = db.Column(db.Integer, nullable=False, default=1)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=_utcnow, index=True)

    __table_args__ = (
        db.Index("ix_log_entries_intern_date", "intern_id", "date"),
        db.CheckConstraint("count >= 1", name="ck_log_entry_count"),
    )

    intern = db.relationship("User", back_populates="log_entries", foreign_keys=[intern_id])
    procedure = db.relationship("Procedure")
    verification = db.relationship(
        "Verification", back_populates="log_entry", uselist=False,
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_verification=True):
        d = {
            "id": self.id,
            "intern_id": self.intern_id,
            "procedure_id": self.procedure_id,
            "procedure_name": self.procedure.name if self.procedure else None,
            "date": self.date.isoformat() if self.date else None,
            "count": self.count,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }
        if include_verification:
            d["verification"] = self.verification.to_dict() if self.verification else None
        return d


# ═══════════════════════════════════════════════════════════════
# 6. VERIFICATIONS
# ═══════════════════════════════════════════════════════════════
class Verification(db.Model):
    """
    A tutor's decision on a LogEntry.

    Business rules:
    - One verification per log entry (log_entry_id is unique).
    - Created as PENDING together with the log entry; APPROVED and
      REJECTED are terminal.
    - ``version`` is bumped on every decision and used as the guard of
      the conditional UPDATE in log_service.verify_log.
    """

    __tablename__ = "verifications"

    id = db.Column(db.Integer, primary_key=True)
    log_entry_id = db.Column(
        db.Integer, db.ForeignKey("log_entries.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    verifier_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    timestamp = db.Column(db.DateTime, default=_utcnow)
    reason = db.Column(db.String(MAX_REASON_LENGTH))
    version = db.Column(db.Integer, nullable=False, default=1)

    log_entry = db.relationship("LogEntry", back_populates="verification")
    verifier = db.relationship("User", back_populates="verifications", foreign_keys=[verifier_id])

    def to_dict(self):
        return {
            "id": self.id,
            "log_entry_id": self.log_entry_id,
            "status": self.status,
            "verifier_id": self.verifier_id,
            "verifier_name": self.verifier.name if self.verifier else None,
            "timestamp": _iso(self.timestamp),
            "reason": self.reason,
            "version": self.version,
        }

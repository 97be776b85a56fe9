"""
Progress calculation — pure functions over loaded reference data and log rows.

No database access happens here. ProgressService feeds in:
  - rotations as returned by reference_data.load_active_rotations()
  - LogRow tuples from a single bulk log-entry query

Per rotation:
    required  = Σ requirement.min_count
    verified  = Σ log.count where verification status is APPROVED
    pending   = Σ log.count where verification status is PENDING
    completion_percentage = min(round(verified / required * 100), 100)
                            or 0 with no_requirement=True when required == 0

The overall summary applies the same formula to the summed totals.
Rounding is half-up (12.5 → 13), not Python's banker's rounding.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import NamedTuple

from intern_tracker.models.training import (
    STATE_ACTIVE,
    STATE_FINISHED,
    STATE_NOT_STARTED,
    STATUS_APPROVED,
    STATUS_PENDING,
)


class LogRow(NamedTuple):
    """Flattened log entry as needed by the calculator."""

    log_id: int
    intern_id: int
    rotation_id: int
    count: int
    status: str | None


@dataclass(frozen=True)
class RotationProgress:
    rotation_id: int
    rotation_name: str
    required: int
    verified: int
    pending: int
    logged: int
    over_achieved: int
    completion_percentage: int
    over_achievement_percentage: int
    no_requirement: bool
    state: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ProgressSummary:
    total_required: int
    total_verified: int
    total_pending: int
    total_logged: int
    total_over_achieved: int
    completion_percentage: int
    over_achievement_percentage: int
    no_requirement: bool

    def to_dict(self):
        return asdict(self)


# ── Formulas ─────────────────────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def completion_percentage(verified: int, required: int) -> int:
    """Verified over required as a whole percentage, capped at 100; 0 if nothing is required."""
    if required <= 0:
        return 0
    return min(round_half_up(verified / required * 100), 100)


def over_achievement(verified: int, required: int) -> int:
    return max(0, verified - required)


def over_achievement_percentage(verified: int, required: int) -> int:
    if required <= 0:
        return 0
    return round_half_up(over_achievement(verified, required) / required * 100)


def resolve_state(stored_state: str, pct: int) -> str:
    """Rotation state as shown on the dashboard.

    Completion overrides the stored state: 100% forces FINISHED, and any
    progress on a NOT_STARTED rotation shows it as ACTIVE.
    """
    if pct >= 100:
        return STATE_FINISHED
    if pct > 0 and stored_state == STATE_NOT_STARTED:
        return STATE_ACTIVE
    return stored_state


# ── Grouping ─────────────────────────────────────────────────────────────────


def group_by_rotation(rows) -> dict[int, list[LogRow]]:
    grouped: dict[int, list[LogRow]] = defaultdict(list)
    for row in rows:
        grouped[row.rotation_id].append(row)
    return grouped


def group_by_intern(rows) -> dict[int, list[LogRow]]:
    grouped: dict[int, list[LogRow]] = defaultdict(list)
    for row in rows:
        grouped[row.intern_id].append(row)
    return grouped


def _sum_counts(rows, status=None) -> int:
    if status is None:
        return sum(r.count for r in rows)
    return sum(r.count for r in rows if r.status == status)


# ── Calculators ──────────────────────────────────────────────────────────────


def calculate_rotation_progress(rotation: dict, rows) -> RotationProgress:
    """Progress for one rotation. *rows* must already belong to that rotation."""
    required = sum(req["min_count"] for req in rotation.get("requirements", []))
    verified = _sum_counts(rows, STATUS_APPROVED)
    pending = _sum_counts(rows, STATUS_PENDING)
    pct = completion_percentage(verified, required)

    return RotationProgress(
        rotation_id=rotation["id"],
        rotation_name=rotation["name"],
        required=required,
        verified=verified,
        pending=pending,
        logged=_sum_counts(rows),
        over_achieved=over_achievement(verified, required),
        completion_percentage=pct,
        over_achievement_percentage=over_achievement_percentage(verified, required),
        no_requirement=required == 0,
        state=resolve_state(rotation.get("state") or STATE_NOT_STARTED, pct),
    )


def summarize(rotations) -> ProgressSummary:
    total_required = sum(r.required for r in rotations)
    total_verified = sum(r.verified for r in rotations)

    return ProgressSummary(
        total_required=total_required,
        total_verified=total_verified,
        total_pending=sum(r.pending for r in rotations),
        total_logged=sum(r.logged for r in rotations),
        total_over_achieved=sum(r.over_achieved for r in rotations),
        completion_percentage=completion_percentage(total_verified, total_required),
        over_achievement_percentage=over_achievement_percentage(total_verified, total_required),
        no_requirement=total_required == 0,
    )


def calculate_progress(reference, rows):
    """Combine reference rotations and log rows into (rotations, summary).

    Log rows for rotations outside *reference* (inactive rotations) are ignored.
    """
    by_rotation = group_by_rotation(rows)
    rotation_progress = [
        calculate_rotation_progress(rotation, by_rotation.get(rotation["id"], []))
        for rotation in reference
    ]
    return rotation_progress, summarize(rotation_progress)

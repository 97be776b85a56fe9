"""
Tests for the tutor/admin dashboard overview.

Covers:
  - per-intern summaries and global counters
  - the number of SQL statements does not grow with the number of interns
  - database failures surface as ProgressError
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from intern_tracker.core.exceptions import ProgressError
from intern_tracker.models import db
from intern_tracker.services import progress_service as progress_service_module
from intern_tracker.services.progress_service import ProgressService


@pytest.fixture()
def seed_interns(make_user, make_log):
    """``seed_interns(n, procs, tutor, start=0)``: n interns, each 2 approved Arterial Line + 1 pending Central Line."""

    def _seed(n, procs, tutor, start=0):
        interns = []
        for i in range(start, start + n):
            intern = make_user(f"Intern {i:02d}")
            make_log(intern, procs["Arterial Line"], 2, "APPROVED", verifier=tutor)
            make_log(intern, procs["Central Line"], 1, "PENDING")
            interns.append(intern)
        db.session.commit()
        return interns

    return _seed


def _count_statements(fn):
    statements = []

    def _listener(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", _listener)
    try:
        result = fn()
    finally:
        event.remove(db.engine, "before_cursor_execute", _listener)
    return result, len(statements)


def test_overview_counts_and_summaries(reference_cache, tutor, icu, seed_interns):
    _, procs = icu
    interns = seed_interns(3, procs, tutor)

    overview = ProgressService(cache=reference_cache).get_dashboard_overview()

    assert overview["total_interns"] == 3
    assert overview["total_pending_verifications"] == 3
    assert overview["last_7_days_activity"] == 6
    assert [i["id"] for i in overview["interns"]] == [u.id for u in interns]

    row = overview["interns"][0]
    assert row["total_verified"] == 2
    assert row["total_pending"] == 1
    assert row["completion_percentage"] == 25
    assert row["total_over_achieved"] == 0
    assert set(row) == {
        "id", "name", "email", "total_verified", "total_pending",
        "total_over_achieved", "completion_percentage", "over_achievement_percentage",
    }


def test_overview_excludes_old_activity(reference_cache, tutor, icu, make_user, make_log):
    _, procs = icu
    intern = make_user("Old Timer")
    old = make_log(intern, procs["Arterial Line"], 1, "PENDING")
    old.created_at = datetime.now(timezone.utc) - timedelta(days=30)
    make_log(intern, procs["Arterial Line"], 1, "PENDING")
    db.session.commit()

    overview = ProgressService(cache=reference_cache).get_dashboard_overview()

    assert overview["last_7_days_activity"] == 1
    assert overview["total_pending_verifications"] == 2


def test_overview_with_no_interns(reference_cache, icu):
    overview = ProgressService(cache=reference_cache).get_dashboard_overview()

    assert overview["total_interns"] == 0
    assert overview["interns"] == []


@pytest.mark.slow
def test_overview_query_count_independent_of_intern_count(reference_cache, tutor, icu, seed_interns):
    _, procs = icu
    seed_interns(1, procs, tutor)
    service = ProgressService(cache=reference_cache)

    # cold cache for both runs so reference loading is counted each time
    reference_cache.clear()
    _, queries_for_one = _count_statements(service.get_dashboard_overview)

    seed_interns(4, procs, tutor, start=1)
    reference_cache.clear()
    overview, queries_for_five = _count_statements(service.get_dashboard_overview)

    assert overview["total_interns"] == 5
    assert queries_for_one == queries_for_five


def test_overview_database_failure(reference_cache, intern, icu, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    monkeypatch.setattr(progress_service_module, "fetch_intern_log_rows", _boom)

    with pytest.raises(ProgressError, match="Failed to get dashboard overview"):
        ProgressService(cache=reference_cache).get_dashboard_overview()

"""
API tests for /api/v1/progress, /api/v1/progress/tutor and /api/v1/interns.

Covers:
  - identity header handling (401)
  - interns read only their own progress (403 otherwise)
  - malformed ids → 400, unknown intern → 404
  - overview tab restricted to tutors/admins
  - aggregation failures → 500 "Failed to get progress"
"""

import pytest
from sqlalchemy.exc import OperationalError

from intern_tracker.models import db
from intern_tracker.services import progress_service as progress_service_module


@pytest.fixture()
def seeded(intern, tutor, icu, make_log):
    _, procs = icu
    make_log(intern, procs["Arterial Line"], 3, "APPROVED", verifier=tutor)
    make_log(intern, procs["Arterial Line"], 2, "PENDING")
    make_log(intern, procs["Central Line"], 1, "APPROVED", verifier=tutor)
    db.session.commit()
    return intern


def test_progress_requires_identity(client):
    res = client.get("/api/v1/progress")
    assert res.status_code == 401
    assert res.get_json()["code"] == "ERR_UNAUTHORIZED"


def test_progress_unknown_user_header(client):
    res = client.get("/api/v1/progress", headers={"X-User-Id": "999"})
    assert res.status_code == 401


def test_intern_reads_own_progress(client, seeded, auth_headers):
    res = client.get("/api/v1/progress", headers=auth_headers(seeded))

    assert res.status_code == 200
    data = res.get_json()
    assert data["summary"]["total_required"] == 8
    assert data["summary"]["total_verified"] == 4
    assert data["summary"]["completion_percentage"] == 50
    assert data["rotations"][0]["rotation_name"] == "ICU"
    assert len(data["pending_verifications"]) == 1
    assert len(data["recent_activity"]) == 3


def test_intern_reads_own_progress_by_explicit_id(client, seeded, auth_headers):
    res = client.get(f"/api/v1/progress?userId={seeded.id}", headers=auth_headers(seeded))
    assert res.status_code == 200


def test_intern_cannot_read_other_intern(client, seeded, auth_headers, make_user):
    other = make_user("Intern Noa")
    db.session.commit()

    res = client.get(f"/api/v1/progress?userId={seeded.id}", headers=auth_headers(other))
    assert res.status_code == 403


def test_tutor_reads_intern_progress(client, seeded, tutor, auth_headers):
    res = client.get(f"/api/v1/progress?userId={seeded.id}", headers=auth_headers(tutor))
    assert res.status_code == 200
    assert res.get_json()["summary"]["total_verified"] == 4


@pytest.mark.parametrize("bad", ["abc", "0", "-3", "1.5"])
def test_malformed_user_id(client, tutor, auth_headers, bad):
    res = client.get(f"/api/v1/progress?userId={bad}", headers=auth_headers(tutor))
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_invalid_tab(client, intern, auth_headers):
    res = client.get("/api/v1/progress?tab=everything", headers=auth_headers(intern))
    assert res.status_code == 400


def test_overview_requires_reviewer(client, intern, auth_headers):
    res = client.get("/api/v1/progress?tab=overview", headers=auth_headers(intern))
    assert res.status_code == 403


def test_overview_for_tutor(client, seeded, tutor, auth_headers):
    res = client.get("/api/v1/progress?tab=overview", headers=auth_headers(tutor))

    assert res.status_code == 200
    data = res.get_json()
    assert data["total_interns"] == 1
    assert data["total_pending_verifications"] == 1
    assert data["interns"][0]["completion_percentage"] == 50


def test_progress_failure_returns_500(client, seeded, auth_headers, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database unavailable"))

    monkeypatch.setattr(progress_service_module, "fetch_intern_log_rows", _boom)

    res = client.get("/api/v1/progress", headers=auth_headers(seeded))
    assert res.status_code == 500
    assert res.get_json()["error"] == "Failed to get progress"


# ── Tutor view ──────────────────────────────────────────────────────────────


def test_tutor_view_defaults_to_first_intern(client, seeded, tutor, auth_headers):
    res = client.get("/api/v1/progress/tutor", headers=auth_headers(tutor))

    assert res.status_code == 200
    data = res.get_json()
    assert data["selected_intern_id"] == seeded.id
    assert data["selected_intern_name"] == "Intern Itai"


def test_tutor_view_explicit_intern(client, seeded, admin, auth_headers):
    res = client.get(f"/api/v1/progress/tutor?internId={seeded.id}", headers=auth_headers(admin))
    assert res.status_code == 200


def test_tutor_view_unknown_intern(client, tutor, auth_headers):
    res = client.get("/api/v1/progress/tutor?internId=4242", headers=auth_headers(tutor))
    assert res.status_code == 404


def test_tutor_view_bad_intern_id(client, tutor, auth_headers):
    res = client.get("/api/v1/progress/tutor?internId=xyz", headers=auth_headers(tutor))
    assert res.status_code == 400


def test_tutor_view_forbidden_for_intern(client, intern, auth_headers):
    res = client.get("/api/v1/progress/tutor", headers=auth_headers(intern))
    assert res.status_code == 403


def test_list_interns(client, seeded, tutor, auth_headers):
    res = client.get("/api/v1/interns", headers=auth_headers(tutor))

    assert res.status_code == 200
    assert [i["name"] for i in res.get_json()["interns"]] == ["Intern Itai"]


def test_progress_served_while_cache_is_down(app, client, seeded, tutor, unreachable_cache, auth_headers,
                                             monkeypatch):
    monkeypatch.setitem(app.extensions, "reference_cache", unreachable_cache)

    res = client.get("/api/v1/progress", headers=auth_headers(seeded))
    assert res.status_code == 200
    assert res.get_json()["summary"]["completion_percentage"] == 50

    assert client.get("/api/v1/progress?tab=overview", headers=auth_headers(tutor)).status_code == 200
    procedures = client.get("/api/v1/procedures", headers=auth_headers(seeded))
    assert procedures.status_code == 200
    assert len(procedures.get_json()["procedures"]) == 2

    live = client.get("/api/v1/health/live").get_json()
    assert live["status"] == "healthy"
    assert live["checks"]["cache"]["status"] == "error"

"""
API tests for log submission and tutor review.

Endpoints:
    GET/POST /api/v1/logs
    GET      /api/v1/verify-queue
    POST     /api/v1/verifications
"""

from datetime import date

import pytest

from intern_tracker.models import db


@pytest.fixture()
def pending_log(intern, icu, make_log):
    _, procs = icu
    entry = make_log(intern, procs["Arterial Line"], 2, "PENDING", log_date=date(2026, 3, 1))
    db.session.commit()
    return entry


# ── /logs ───────────────────────────────────────────────────────────────────


def test_intern_creates_log(client, intern, icu, auth_headers):
    _, procs = icu
    res = client.post(
        "/api/v1/logs",
        json={"procedureId": procs["Arterial Line"].id, "date": "2026-03-01", "count": 2, "notes": "ok"},
        headers=auth_headers(intern),
    )

    assert res.status_code == 201
    data = res.get_json()
    assert data["verification"]["status"] == "PENDING"
    assert data["procedure_name"] == "Arterial Line"


def test_create_log_missing_fields(client, intern, auth_headers):
    res = client.post("/api/v1/logs", json={"count": 1}, headers=auth_headers(intern))

    assert res.status_code == 400
    assert set(res.get_json()["details"]) == {"procedureId", "date"}


def test_create_log_non_json_body(client, intern, auth_headers):
    res = client.post("/api/v1/logs", data="nope", headers=auth_headers(intern))
    assert res.status_code == 400


def test_create_log_business_rule_violation(client, intern, icu, auth_headers):
    _, procs = icu
    res = client.post(
        "/api/v1/logs",
        json={"procedureId": procs["Arterial Line"].id, "date": "2026-03-01", "count": 0},
        headers=auth_headers(intern),
    )
    assert res.status_code == 422


def test_create_log_unknown_procedure(client, intern, auth_headers):
    res = client.post(
        "/api/v1/logs",
        json={"procedureId": 999, "date": "2026-03-01", "count": 1},
        headers=auth_headers(intern),
    )
    assert res.status_code == 404


def test_tutor_cannot_create_log(client, tutor, icu, auth_headers):
    _, procs = icu
    res = client.post(
        "/api/v1/logs",
        json={"procedureId": procs["Arterial Line"].id, "date": "2026-03-01", "count": 1},
        headers=auth_headers(tutor),
    )
    assert res.status_code == 403


def test_list_own_logs(client, pending_log, intern, auth_headers):
    res = client.get("/api/v1/logs?page=1&limit=10", headers=auth_headers(intern))

    assert res.status_code == 200
    data = res.get_json()
    assert data["total"] == 1
    assert data["logs"][0]["id"] == pending_log.id


# ── Review ──────────────────────────────────────────────────────────────────


def test_verify_queue(client, pending_log, tutor, auth_headers):
    res = client.get("/api/v1/verify-queue", headers=auth_headers(tutor))

    assert res.status_code == 200
    [item] = res.get_json()["items"]
    assert item["id"] == pending_log.id
    assert item["intern"]["name"] == "Intern Itai"


def test_verify_queue_forbidden_for_intern(client, intern, auth_headers):
    assert client.get("/api/v1/verify-queue", headers=auth_headers(intern)).status_code == 403


def test_approve_via_api(client, pending_log, tutor, auth_headers):
    res = client.post(
        "/api/v1/verifications",
        json={"logEntryId": pending_log.id, "status": "approved", "version": 1},
        headers=auth_headers(tutor),
    )

    assert res.status_code == 200
    data = res.get_json()
    assert data["status"] == "APPROVED"
    assert data["version"] == 2


def test_reject_without_reason(client, pending_log, tutor, auth_headers):
    res = client.post(
        "/api/v1/verifications",
        json={"logEntryId": pending_log.id, "status": "REJECTED"},
        headers=auth_headers(tutor),
    )
    assert res.status_code == 422


def test_double_review_conflicts(client, pending_log, tutor, auth_headers):
    body = {"logEntryId": pending_log.id, "status": "APPROVED"}
    assert client.post("/api/v1/verifications", json=body, headers=auth_headers(tutor)).status_code == 200

    res = client.post("/api/v1/verifications", json=body, headers=auth_headers(tutor))
    assert res.status_code == 409
    assert res.get_json()["code"] == "ERR_CONFLICT_STATE"


def test_stale_version_conflicts(client, pending_log, tutor, auth_headers):
    res = client.post(
        "/api/v1/verifications",
        json={"logEntryId": pending_log.id, "status": "APPROVED", "version": 3},
        headers=auth_headers(tutor),
    )
    assert res.status_code == 409


def test_verification_missing_log_entry_id(client, tutor, auth_headers):
    res = client.post("/api/v1/verifications", json={"status": "APPROVED"}, headers=auth_headers(tutor))
    assert res.status_code == 400


def test_verification_unknown_log(client, tutor, auth_headers):
    res = client.post(
        "/api/v1/verifications",
        json={"logEntryId": 31337, "status": "APPROVED"},
        headers=auth_headers(tutor),
    )
    assert res.status_code == 404


def test_intern_cannot_verify(client, pending_log, intern, auth_headers):
    res = client.post(
        "/api/v1/verifications",
        json={"logEntryId": pending_log.id, "status": "APPROVED"},
        headers=auth_headers(intern),
    )
    assert res.status_code == 403


def test_approval_shows_up_in_progress(client, pending_log, intern, tutor, auth_headers):
    client.post(
        "/api/v1/verifications",
        json={"logEntryId": pending_log.id, "status": "APPROVED"},
        headers=auth_headers(tutor),
    )

    data = client.get("/api/v1/progress", headers=auth_headers(intern)).get_json()
    assert data["summary"]["total_verified"] == 2
    assert data["summary"]["total_pending"] == 0
    assert data["recent_activity"][0]["type"] == "LOG_VERIFIED"

"""
Health probes, request timing headers and app-level error handlers.
"""


def test_ready(client):
    res = client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.get_json() == {"status": "ok"}


def test_live_reports_dependencies(client):
    res = client.get("/api/v1/health/live")

    assert res.status_code == 200
    data = res.get_json()
    assert data["status"] == "healthy"
    assert data["checks"]["database"]["status"] == "ok"
    assert data["checks"]["cache"] == {"status": "ok", "backend": "memory"}
    assert data["checks"]["app"]["testing"] is True


def test_health_needs_no_identity(client):
    assert client.get("/api/v1/health/live").status_code == 200


def test_request_id_and_duration_headers(client, intern, auth_headers):
    res = client.get("/api/v1/logs", headers={**auth_headers(intern), "X-Request-ID": "req-123"})

    assert res.headers["X-Request-ID"] == "req-123"
    assert float(res.headers["X-Request-Duration-Ms"]) >= 0


def test_unknown_route_is_json_404(client):
    res = client.get("/api/v1/does-not-exist")
    assert res.status_code == 404
    assert res.get_json()["error"] == "Not found"


def test_wrong_method_is_json_405(client):
    res = client.delete("/api/v1/health/ready")
    assert res.status_code == 405
    assert res.get_json()["error"] == "Method not allowed"

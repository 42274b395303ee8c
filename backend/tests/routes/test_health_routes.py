from tests.support import MEMBER, TODAY, identity_headers


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"


def test_metrics_exposition(client):
    client.get("/api/v1/schedule", params={"start_date": TODAY.isoformat()}, headers=identity_headers(MEMBER))

    r = client.get("/metrics")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert "clubhouse_http_requests_total" in r.text
    assert "clubhouse_service_operations_total" in r.text

"""
Tests for the health and readiness endpoints.

- /health: Liveness probe
- /ready: Readiness probe with a database check
"""
from repositories.base import Database


# =============================================================================
# HEALTH ENDPOINT TESTS (LIVENESS)
# =============================================================================

def test_health_endpoint(client):
    """Test the /health liveness endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert data["timestamp"].endswith("Z")


# =============================================================================
# READINESS ENDPOINT TESTS
# =============================================================================

def test_ready_endpoint(client):
    """Test the /ready readiness endpoint with a reachable database."""
    response = client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert [dep["name"] for dep in data["dependencies"]] == ["database"]
    assert data["dependencies"][0]["status"] == "ok"


def test_ready_reports_unavailable_database(client, monkeypatch):
    """A failing database ping turns readiness into a 503."""
    def broken_ping(self):
        raise OSError("disk unavailable")

    monkeypatch.setattr(Database, "ping", broken_ping)

    response = client.get("/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["dependencies"][0]["status"] == "unavailable"
    assert data["dependencies"][0]["message"] == "Connection failed: OSError"

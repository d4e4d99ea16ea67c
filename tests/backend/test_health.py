"""
Tests for health check endpoints.

These tests verify:
- Basic health endpoint returns 200 without touching the databases
- Database health reports per-database status and degrades gracefully
- Total outage returns 503
- Pool configuration is exposed without credentials
"""

from wismon.database.registry import LogicalDatabase


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    def test_health_endpoint_returns_200_when_api_running(self, client, app_pools):
        """Basic health check should return 200 if API is up."""
        probes_before = app_pools[LogicalDatabase.SSO].probe_calls

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "development"
        assert data["uptime"] >= 0
        assert app_pools[LogicalDatabase.SSO].probe_calls == probes_before

    def test_root_lists_docs(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"


class TestDatabaseHealthEndpoint:
    """Tests for GET /health/database endpoint."""

    def test_returns_200_when_all_databases_up(self, client):
        response = client.get("/health/database")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert set(data["databases"]) == {"SSO", "WIS", "WISAKA", "WISMON", "PERPUSTAKAAN"}
        assert data["databases"]["WIS"]["status"] == "connected"
        assert data["databases"]["WIS"]["pool"]["total_connections"] == 2
        assert "checkDuration" in data
        assert "timestamp" in data

    def test_reports_degraded_when_some_databases_down(self, client, app_pools):
        """Losing a non-essential database after startup degrades the report."""
        app_pools[LogicalDatabase.PERPUSTAKAAN].down = True

        response = client.get("/health/database")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["databases"]["PERPUSTAKAAN"]["status"] == "disconnected"
        assert data["databases"]["PERPUSTAKAAN"]["error"]

    def test_returns_503_when_every_database_down(self, client, app_pools):
        for pool in app_pools.values():
            pool.down = True

        response = client.get("/health/database")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestDatabaseConfigEndpoint:
    """Tests for GET /health/database/config endpoint."""

    def test_config_has_no_credentials(self, client):
        response = client.get("/health/database/config")

        assert response.status_code == 200
        config = response.json()["config"]
        assert set(config) == {"sso", "wis", "wisaka", "wismon", "perpustakaan"}
        assert config["wis"] == {
            "host": "wis.db.internal",
            "port": 3306,
            "database": "wis_db",
            "connectionLimit": 15,
        }
        assert "s3cret-password" not in response.text


class TestDetailedHealthEndpoint:
    """Tests for GET /health/detailed endpoint."""

    def test_includes_system_and_databases(self, client):
        response = client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["system"]["pid"] > 0
        assert data["databases"]["SSO"]["status"] == "connected"

    def test_returns_503_when_every_database_down(self, client, app_pools):
        for pool in app_pools.values():
            pool.down = True

        response = client.get("/health/detailed")

        assert response.status_code == 503

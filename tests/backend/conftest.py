"""
Backend-specific test fixtures and configuration.

These fixtures extend the global fixtures with an in-memory stand-in for
``DatabasePool`` (see ``fakes.py``) so the connection manager, services and
routes can be exercised without a MySQL server.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "backend"))

from fakes import FakePool, RecordingSleep  # noqa: E402
from wismon.database.registry import LogicalDatabase  # noqa: E402


# =============================================================================
# Connection Manager Fixtures
# =============================================================================

@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_pools() -> dict[LogicalDatabase, FakePool]:
    """One healthy fake pool per logical database."""
    return {db: FakePool(db) for db in LogicalDatabase}


@pytest.fixture
def make_manager(fake_sleep):
    """
    Factory building a ConnectionManager over fake pools.

    Usage:
        manager = make_manager(pools, environment="production")
    """
    from wismon.database.connections import ConnectionManager

    def _make(pools, **kwargs):
        kwargs.setdefault("environment", "test")
        kwargs.setdefault("sleep", fake_sleep)
        return ConnectionManager(pools, **kwargs)

    return _make


@pytest.fixture
def manager(make_manager, fake_pools):
    return make_manager(fake_pools)


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def student_handler(student_row):
    """
    WIS handler answering student lookups.

    Matches on NRM plus NIM, the exact name or the name without spaces;
    anything else returns no rows.
    """
    def _handle(sql: str, params: list):
        if "FROM mahasiswa" not in sql:
            return []
        if params == [student_row["nrm"]]:
            return [dict(student_row)]
        if len(params) == 2 and params[1] == student_row["nrm"]:
            value = params[0].lower()
            candidates = {
                student_row["nim"].lower(),
                student_row["namam"].lower(),
                student_row["namam"].replace(" ", "").lower(),
            }
            if value in candidates:
                return [dict(student_row)]
        return []

    return _handle


@pytest.fixture
def app_pools(fake_pools, student_handler):
    fake_pools[LogicalDatabase.WIS].handler = student_handler
    return fake_pools


@pytest.fixture
def app(settings, make_manager, app_pools, token_authority):
    """Application wired to fake pools and the test token authority."""
    from wismon.main import create_app

    return create_app(
        settings=settings,
        manager=make_manager(app_pools),
        tokens=token_authority,
    )


@pytest.fixture
def client(app):
    """TestClient with the lifespan (startup probe and shutdown) running."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def access_token(token_authority, subject) -> str:
    return token_authority.generate_access_token(subject)


@pytest.fixture
def refresh_token(token_authority, subject) -> str:
    return token_authority.generate_refresh_token(subject)


# =============================================================================
# Response Assertion Helpers
# =============================================================================

@pytest.fixture
def assert_error_response():
    """Helper to assert the error envelope produced by the exception handler."""
    def _assert(response, status_code: int, error_type: str = None):
        assert response.status_code == status_code
        data = response.json()
        assert data["success"] is False
        assert data["message"]
        assert isinstance(data["errors"], list)
        if error_type:
            assert data["errorType"] == error_type
    return _assert

"""
Global test fixtures for the WISMON backend.

This module provides shared fixtures for all tests including:
- A complete set of DB_* environment variables
- JWT secrets and a token authority
- Student rows as stored in WIS ``mahasiswa``
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))


ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"

LOGICAL_DATABASES = ("SSO", "WIS", "WISAKA", "WISMON", "PERPUSTAKAAN")


def database_env() -> dict[str, str]:
    """Every DB_<NAME>_<FIELD> variable with a plausible value."""
    env = {}
    for index, name in enumerate(LOGICAL_DATABASES):
        env[f"DB_{name}_HOST"] = f"{name.lower()}.db.internal"
        env[f"DB_{name}_PORT"] = str(3306 + index)
        env[f"DB_{name}_USER"] = f"{name.lower()}_user"
        env[f"DB_{name}_PASSWORD"] = f"{name.lower()}-password"
        env[f"DB_{name}_NAME"] = f"{name.lower()}_db"
    return env


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture
def db_env(monkeypatch, tmp_path) -> dict[str, str]:
    """
    Populate the process environment with all 25 database variables.

    Runs from an empty directory so a developer's .env never leaks in.
    """
    monkeypatch.chdir(tmp_path)
    env = database_env()
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    for key in ("DB_REQUIRE_SSL", "DB_SSL_REJECT_UNAUTHORIZED", "ESSENTIAL_DATABASES"):
        monkeypatch.delenv(key, raising=False)
    return env


@pytest.fixture
def clear_settings_cache():
    """Reset the cached settings before and after a test."""
    from wismon.config import get_settings

    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


@pytest.fixture
def access_secret() -> str:
    return ACCESS_SECRET


@pytest.fixture
def refresh_secret() -> str:
    return REFRESH_SECRET


@pytest.fixture
def settings():
    """Development settings with valid, distinct JWT secrets."""
    from wismon.config import Settings

    return Settings(
        environment="development",
        jwt_secret=ACCESS_SECRET,
        jwt_refresh_secret=REFRESH_SECRET,
    )


# =============================================================================
# Token Fixtures
# =============================================================================

@pytest.fixture
def token_authority():
    """Token authority with the default 15 minute / 30 day lifetimes."""
    from wismon.core.security import TokenAuthority

    return TokenAuthority(ACCESS_SECRET, REFRESH_SECRET)


@pytest.fixture
def subject():
    """Identity claims for the test student."""
    from wismon.schemas.auth import SubjectClaims

    return SubjectClaims(nrm="20231001", nim="2110511001", namam="Budi Santoso")


# =============================================================================
# Student Fixtures
# =============================================================================

@pytest.fixture
def student_row() -> dict:
    """A student row as returned by the WIS lookup query."""
    return {
        "nrm": "20231001",
        "nim": "2110511001",
        "namam": "Budi Santoso",
        "tgdaftar": date(2021, 8, 23),
        "tplahir": "Jakarta",
        "kdagama": "1",
        "phone": "081234567890",
    }

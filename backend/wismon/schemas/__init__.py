"""
Request and response schemas for API endpoints.
"""
from wismon.schemas.auth import (
    ApiResponse,
    LoginRequest,
    LoginResult,
    RefreshRequest,
    SubjectClaims,
    TokenPair,
    TokenPayload,
)
from wismon.schemas.health import (
    ConnectionTestResult,
    DatabaseHealthEntry,
    DatabaseHealthReport,
    PoolStats,
)

__all__ = [
    # Auth
    "ApiResponse",
    "LoginRequest",
    "LoginResult",
    "RefreshRequest",
    "SubjectClaims",
    "TokenPair",
    "TokenPayload",
    # Health
    "ConnectionTestResult",
    "DatabaseHealthEntry",
    "DatabaseHealthReport",
    "PoolStats",
]

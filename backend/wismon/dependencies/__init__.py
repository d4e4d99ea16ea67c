"""
FastAPI dependencies for authentication and shared resources.
"""
from wismon.dependencies.auth import (
    CurrentStudent,
    get_app_settings,
    get_auth_service,
    get_connection_manager,
    get_current_student,
    get_rate_limiter,
    get_token_authority,
)

__all__ = [
    "CurrentStudent",
    "get_app_settings",
    "get_auth_service",
    "get_connection_manager",
    "get_current_student",
    "get_rate_limiter",
    "get_token_authority",
]

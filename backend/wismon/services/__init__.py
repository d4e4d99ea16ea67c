"""
Business logic services.
"""
from wismon.services.auth_service import AuthService

__all__ = ["AuthService"]

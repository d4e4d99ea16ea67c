"""
API Routers module.
"""
from wismon.routers import auth, health

__all__ = ["auth", "health"]

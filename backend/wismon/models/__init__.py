"""
Domain models for rows read from the university databases.
"""
from wismon.models.student import Student

__all__ = ["Student"]

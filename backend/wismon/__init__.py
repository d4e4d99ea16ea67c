"""
WISMON backend core: multi-database MySQL connection manager and JWT token authority.
"""
__version__ = "1.0.0"

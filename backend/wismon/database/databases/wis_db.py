"""
WIS database configuration.
Student registry (mahasiswa master data).
"""

DB_NAME = "WIS"


class Tables:
    """Table names in the WIS database."""
    MAHASISWA = "mahasiswa"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Student registry used for login and profile lookups",
    "tables": [Tables.MAHASISWA],
    "always_log_queries": False,
}

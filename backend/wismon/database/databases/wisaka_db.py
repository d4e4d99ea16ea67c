"""
WISAKA database configuration.
Academic records: KRS, KHS and transcripts.
"""

DB_NAME = "WISAKA"


class Tables:
    """Table names in the WISAKA database."""
    KRS = "krs"
    KRS_MATAKULIAH = "krsmatakuliah"
    KHS = "khs"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Academic records (study plans, grades, transcripts)",
    "tables": [Tables.KRS, Tables.KRS_MATAKULIAH, Tables.KHS],
    # Academic queries are audited regardless of environment
    "always_log_queries": True,
}

"""
Logical database definitions.
"""
from wismon.database.databases import (
    perpustakaan_db,
    sso_db,
    wis_db,
    wisaka_db,
    wismon_db,
)

__all__ = ["sso_db", "wis_db", "wisaka_db", "wismon_db", "perpustakaan_db"]

"""
PERPUSTAKAAN database configuration.
Library collections, loans and member activity.
"""

DB_NAME = "PERPUSTAKAAN"


class Tables:
    """Table names in the PERPUSTAKAAN database."""
    MAHASISWA = "mahasiswa"
    ADMIN = "admin"
    KOLEKSI = "koleksi"
    AKTIVITAS = "aktivitas"
    PENGAJUAN = "pengajuan"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Library catalogue, loans and requests",
    "tables": [
        Tables.MAHASISWA,
        Tables.ADMIN,
        Tables.KOLEKSI,
        Tables.AKTIVITAS,
        Tables.PENGAJUAN,
    ],
    "always_log_queries": False,
}

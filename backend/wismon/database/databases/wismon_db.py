"""
WISMON database configuration.
Financial store: tuition payments and transactions.
"""

DB_NAME = "WISMON"


class Tables:
    """Table names in the WISMON database."""
    TRANSAKSI = "transaksi"
    JENIS_TRANSAKSI = "jenistransaksi"
    AKUN = "akun"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Payment history and financial transactions",
    "tables": [Tables.TRANSAKSI, Tables.JENIS_TRANSAKSI, Tables.AKUN],
    "always_log_queries": True,
}

"""
Logical database registry and startup policy.

Every logical database is declared here once. The essential subset whose
loss aborts startup is named configuration, not derived.
"""
import logging
from enum import Enum
from typing import Iterable, Mapping

from wismon.database.databases import (
    perpustakaan_db,
    sso_db,
    wis_db,
    wisaka_db,
    wismon_db,
)
from wismon.errors import ConnectivityError
from wismon.schemas.health import ConnectionTestResult

logger = logging.getLogger(__name__)


class LogicalDatabase(str, Enum):
    """The five MySQL schemas the backend talks to."""
    SSO = sso_db.DB_NAME
    WIS = wis_db.DB_NAME
    WISAKA = wisaka_db.DB_NAME
    WISMON = wismon_db.DB_NAME
    PERPUSTAKAAN = perpustakaan_db.DB_NAME


# All database manifests
ALL_DB_MANIFESTS = {
    LogicalDatabase.SSO: sso_db.DB_MANIFEST,
    LogicalDatabase.WIS: wis_db.DB_MANIFEST,
    LogicalDatabase.WISAKA: wisaka_db.DB_MANIFEST,
    LogicalDatabase.WISMON: wismon_db.DB_MANIFEST,
    LogicalDatabase.PERPUSTAKAAN: perpustakaan_db.DB_MANIFEST,
}

# Identity store and financial store
DEFAULT_ESSENTIAL_DATABASES = frozenset({LogicalDatabase.SSO, LogicalDatabase.WISMON})


def get_manifest(database: LogicalDatabase) -> dict:
    return ALL_DB_MANIFESTS[LogicalDatabase(database)]


def parse_databases(names: Iterable[str]) -> frozenset[LogicalDatabase]:
    """Resolve configured database names (case-insensitive) to members."""
    resolved = set()
    for name in names:
        try:
            resolved.add(LogicalDatabase(name.strip().upper()))
        except ValueError:
            raise ValueError(f"Unknown logical database: {name}") from None
    return frozenset(resolved)


def enforce_startup_policy(
    results: Mapping[LogicalDatabase, ConnectionTestResult],
    essential: Iterable[LogicalDatabase] = DEFAULT_ESSENTIAL_DATABASES,
) -> str:
    """
    Decide whether the process may start given the probe results.

    Args:
        results: Probe result per logical database
        essential: Databases that must be reachable

    Returns:
        "healthy" when every database is up, "degraded" otherwise

    Raises:
        ConnectivityError: If any essential database failed its probe
    """
    failed_essential = sorted(
        db.value for db in essential if not results.get(db, _MISSING).success
    )
    if failed_essential:
        logger.critical(
            "Cannot start server - essential databases failed: %s",
            ", ".join(failed_essential),
        )
        raise ConnectivityError(
            f"Essential databases unreachable: {', '.join(failed_essential)}",
            databases=failed_essential,
        )

    up = sum(1 for r in results.values() if r.success)
    if up == len(results):
        logger.info("All database connections successful")
        return "healthy"

    down = sorted(db.value for db, r in results.items() if not r.success)
    logger.warning(
        "%d/%d database connections successful; limited functionality for: %s",
        up,
        len(results),
        ", ".join(down),
    )
    return "degraded"


_MISSING = ConnectionTestResult(success=False, attempts=0, error="not probed")

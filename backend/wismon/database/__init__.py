"""
Database module - MySQL pools, retry policies and logical database definitions.
"""
from wismon.database.config import DatabaseConfig, load_database_configs
from wismon.database.connections import ConnectionManager, QueryOptions
from wismon.database.databases import (
    perpustakaan_db,
    sso_db,
    wis_db,
    wisaka_db,
    wismon_db,
)
from wismon.database.registry import LogicalDatabase, enforce_startup_policy

__all__ = [
    "ConnectionManager",
    "QueryOptions",
    "DatabaseConfig",
    "load_database_configs",
    "LogicalDatabase",
    "enforce_startup_policy",
    "sso_db",
    "wis_db",
    "wisaka_db",
    "wismon_db",
    "perpustakaan_db",
]

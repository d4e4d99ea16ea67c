"""
Per-database connection configuration read from ``DB_<NAME>_*`` variables.
"""
import logging
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from wismon.config import Settings
from wismon.database.registry import LogicalDatabase
from wismon.errors import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("HOST", "PORT", "USER", "PASSWORD", "NAME")


class DatabaseEnv(BaseSettings):
    """Raw environment values for one database, read with a ``DB_<NAME>_`` prefix."""

    host: str = ""
    port: str = ""
    user: str = ""
    password: str = ""
    name: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


class SSLOptions(BaseModel):
    """TLS settings applied when ``DB_REQUIRE_SSL`` is on."""
    reject_unauthorized: bool = True

    class Config:
        frozen = True


class DatabaseConfig(BaseModel):
    """Immutable connection configuration for one logical database."""
    name: LogicalDatabase
    host: str
    port: int = Field(..., ge=1, le=65535)
    user: str
    password: str = Field(..., repr=False)
    database: str
    connection_limit: int = 15
    acquire_timeout: float = Field(30.0, description="Seconds to wait for a pooled connection")
    idle_timeout: int = Field(
        300, description="Maximum age in seconds of a pooled connection before it is recycled"
    )
    ssl: Optional[SSLOptions] = None
    charset: str = "utf8mb4"
    timezone: str = "+00:00"

    class Config:
        frozen = True

    def public_view(self) -> dict:
        """Configuration without credentials, for monitoring."""
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "connectionLimit": self.connection_limit,
        }


def env_var_name(database: LogicalDatabase, field: str) -> str:
    return f"DB_{database.value}_{field}"


def _read_env(database: LogicalDatabase) -> DatabaseEnv:
    return DatabaseEnv(_env_prefix=f"DB_{database.value}_")


def _parse_port(database: LogicalDatabase, raw: str) -> int:
    try:
        port = int(raw.strip(), 10)
    except ValueError:
        port = 0
    if port < 1 or port > 65535:
        raise ConfigurationError(
            f"Invalid port number for {database.value} database: {raw}",
            missing=[env_var_name(database, "PORT")],
        )
    return port


def load_database_configs(settings: Settings) -> dict[LogicalDatabase, DatabaseConfig]:
    """
    Validate the environment and build one config per logical database.

    Every blank or absent variable is collected before failing so the
    operator sees the whole list at once.

    Raises:
        ConfigurationError: If any variable is missing or a port is invalid
    """
    raw = {db: _read_env(db) for db in LogicalDatabase}

    missing = [
        env_var_name(db, field)
        for db, env in raw.items()
        for field in REQUIRED_FIELDS
        if not getattr(env, field.lower()).strip()
    ]
    if missing:
        for name in missing:
            logger.error("Missing or empty environment variable: %s", name)
        raise ConfigurationError.for_missing(missing)

    ssl = None
    if settings.db_require_ssl:
        ssl = SSLOptions(reject_unauthorized=settings.db_ssl_reject_unauthorized)

    configs = {
        db: DatabaseConfig(
            name=db,
            host=env.host,
            port=_parse_port(db, env.port),
            user=env.user,
            password=env.password,
            database=env.name,
            connection_limit=settings.db_connection_limit,
            acquire_timeout=settings.db_acquire_timeout_seconds,
            idle_timeout=settings.db_idle_timeout_seconds,
            ssl=ssl,
        )
        for db, env in raw.items()
    }
    logger.info("Environment validation passed - all database credentials present")
    return configs

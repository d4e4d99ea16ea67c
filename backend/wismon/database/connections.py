"""
Connection manager owning one pool per logical database.

Constructed once in the application lifespan and injected into consumers;
there are no module-level pools.
"""
import asyncio
import logging
import re
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from wismon.config import Settings
from wismon.database.config import DatabaseConfig, load_database_configs
from wismon.database.pool import (
    ECONNRESET,
    ETIMEDOUT,
    PROTOCOL_CONNECTION_LOST,
    DatabasePool,
    QueryResult,
    Transaction,
    error_code,
)
from wismon.database.registry import LogicalDatabase, get_manifest
from wismon.database.retry import (
    QUERY_RETRY_POLICY,
    STARTUP_PROBE_POLICY,
    RetryExhausted,
    RetryPolicy,
    with_retry,
)
from wismon.errors import ConnectivityError, QueryError, QueryTimeoutError
from wismon.schemas.health import (
    ConnectionTestResult,
    DatabaseHealthEntry,
    DatabaseHealthReport,
    classify_health,
)

logger = logging.getLogger(__name__)

# Only connection-level failures are worth a second attempt
TRANSIENT_ERROR_CODES = frozenset({ECONNRESET, ETIMEDOUT, PROTOCOL_CONNECTION_LOST})

_SSL_HINTS = ("secure connection", "SSL", "TLS")


class QueryOptions(BaseModel):
    """Per-call execution options."""
    timeout: float = Field(30.0, gt=0, description="Seconds before the call fails with a timeout")
    retry_on_failure: bool = Field(True, description="Allow one retry for transient errors")
    log_query: Optional[bool] = Field(
        None, description="Log query text and results; None derives from environment"
    )

    class Config:
        frozen = True


def _compact(sql: str) -> str:
    return re.sub(r"\s+", " ", sql).strip()


class _StatementTimedOut(Exception):
    """The statement itself outlived its deadline."""


def _discard_result(task: "asyncio.Future[Any]") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Late failure of timed-out query discarded: %s", task.exception())


class ConnectionManager:
    """Probes, executes against, reports on and closes the database pools."""

    def __init__(
        self,
        pools: Mapping[LogicalDatabase, DatabasePool],
        *,
        environment: str = "development",
        default_timeout: float = 30.0,
        probe_policy: RetryPolicy = STARTUP_PROBE_POLICY,
        query_policy: RetryPolicy = QUERY_RETRY_POLICY,
        transient_codes: frozenset[str] = TRANSIENT_ERROR_CODES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._pools = dict(pools)
        self.environment = environment
        self.default_timeout = default_timeout
        self.probe_policy = probe_policy
        self.query_policy = query_policy
        self.transient_codes = transient_codes
        self._sleep = sleep

    @classmethod
    async def from_settings(cls, settings: Settings) -> "ConnectionManager":
        """Validate configuration and build every pool."""
        configs = load_database_configs(settings)
        return await cls.from_configs(configs, settings)

    @classmethod
    async def from_configs(
        cls, configs: Mapping[LogicalDatabase, DatabaseConfig], settings: Settings
    ) -> "ConnectionManager":
        pools = {}
        for db, config in configs.items():
            pools[db] = await DatabasePool.create(config)
        return cls(
            pools,
            environment=settings.environment,
            default_timeout=settings.query_timeout_seconds,
        )

    @property
    def databases(self) -> list[LogicalDatabase]:
        return list(self._pools)

    def pool(self, database: LogicalDatabase) -> DatabasePool:
        try:
            return self._pools[LogicalDatabase(database)]
        except KeyError:
            raise ValueError(f"No pool configured for database: {database}") from None

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    async def _probe_one(self, database: LogicalDatabase, pool: DatabasePool) -> ConnectionTestResult:
        name = database.value
        max_attempts = self.probe_policy.max_attempts

        async def attempt_probe(attempt: int) -> float:
            logger.info("Testing %s database connection (attempt %d/%d)...", name, attempt, max_attempts)
            return await pool.probe()

        def on_failure(attempt: int, exc: BaseException, delay: Optional[float]) -> None:
            logger.error("%s database connection failed (attempt %d): %s", name, attempt, exc)
            if any(hint in str(exc) for hint in _SSL_HINTS):
                logger.error(
                    "%s: TLS handshake failed. Set DB_REQUIRE_SSL=false or enable TLS on the server.",
                    name,
                )
            if delay is not None:
                logger.info("Retrying %s connection in %.0fms...", name, delay * 1000)

        try:
            response_time, attempts = await with_retry(
                attempt_probe, self.probe_policy, on_failure=on_failure, sleep=self._sleep
            )
        except RetryExhausted as e:
            return ConnectionTestResult(
                success=False,
                attempts=e.attempts,
                error=str(e.last_error) or type(e.last_error).__name__,
            )

        config = pool.config
        logger.info(
            "%s database connected to %s:%s/%s in %.0fms",
            name, config.host, config.port, config.database, response_time,
        )
        return ConnectionTestResult(success=True, attempts=attempts, response_time_ms=response_time)

    async def probe_all(self) -> dict[LogicalDatabase, ConnectionTestResult]:
        """Probe every pool concurrently; never raises."""
        databases = list(self._pools)
        results = await asyncio.gather(
            *(self._probe_one(db, self._pools[db]) for db in databases)
        )
        return dict(zip(databases, results))

    async def test_connections(self) -> dict[LogicalDatabase, ConnectionTestResult]:
        """
        Probe every database concurrently with retry and summarise.

        Returns:
            Probe result per logical database

        Raises:
            ConnectivityError: If no database could be reached at all
        """
        logger.info(
            "Starting database connection tests (%d attempts, exponential backoff)",
            self.probe_policy.max_attempts,
        )
        start = time.perf_counter()
        results = await self.probe_all()
        total_ms = (time.perf_counter() - start) * 1000

        successful = [r for r in results.values() if r.success]
        logger.info(
            "Database connection summary: %d/%d up in %.0fms",
            len(successful), len(results), total_ms,
        )
        if successful:
            avg = sum(r.response_time_ms or 0 for r in successful) / len(successful)
            logger.info("Average response time: %.0fms", avg)
        for db, result in results.items():
            if not result.success:
                logger.error("%s database: %s", db.value, result.error)

        if not successful:
            raise ConnectivityError(
                "Critical failure: No database connections could be established",
                databases=[db.value for db in results],
            )
        return results

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    def _should_log(self, database: LogicalDatabase, options: QueryOptions) -> bool:
        if options.log_query is not None:
            return options.log_query
        return self.environment == "development" or get_manifest(database)["always_log_queries"]

    def is_transient(self, exc: BaseException) -> bool:
        return error_code(exc) in self.transient_codes

    async def _run_with_timeout(
        self, pool: DatabasePool, sql: str, params: Optional[Sequence[Any]], timeout: float
    ) -> QueryResult:
        task = asyncio.ensure_future(pool.execute(sql, params))
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            # The query keeps its connection until it settles; its outcome is dropped
            task.add_done_callback(_discard_result)
            raise _StatementTimedOut()
        return task.result()

    async def execute(
        self,
        database: LogicalDatabase,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        options: Optional[QueryOptions] = None,
    ) -> QueryResult:
        """
        Execute a parameterized statement against one logical database.

        Args:
            database: Target logical database
            sql: Statement with positional ``?`` placeholders
            params: Values bound to the placeholders in order
            options: Timeout, retry and logging options

        Returns:
            List of row dicts for reads, affected_rows/insert_id for writes

        Raises:
            QueryTimeoutError: If the statement did not settle in time
            QueryError: If the statement failed after every permitted attempt
        """
        database = LogicalDatabase(database)
        options = options or QueryOptions(timeout=self.default_timeout)
        pool = self.pool(database)
        name = database.value
        log_query = self._should_log(database, options)
        policy = self.query_policy
        if not options.retry_on_failure:
            policy = policy.model_copy(update={"max_attempts": 1})

        if log_query:
            logger.info("%s DB - Executing query: %s params=%r", name, _compact(sql), params)

        async def attempt_query(attempt: int) -> QueryResult:
            start = time.perf_counter()
            try:
                result = await self._run_with_timeout(pool, sql, params, options.timeout)
            except _StatementTimedOut:
                raise QueryTimeoutError(name, attempt, options.timeout) from None
            if log_query:
                count = len(result) if isinstance(result, list) else result.get("affected_rows")
                logger.info(
                    "%s DB - Query successful: %s rows in %.0fms%s",
                    name, count, (time.perf_counter() - start) * 1000,
                    f" (attempt {attempt})" if attempt > 1 else "",
                )
            return result

        def on_failure(attempt: int, exc: BaseException, delay: Optional[float]) -> None:
            logger.error(
                "%s DB - Query error (attempt %d): %s code=%s query=%s",
                name, attempt, exc, error_code(exc), _compact(sql),
            )
            if delay is not None:
                logger.info("Retrying %s query in %.0fms...", name, delay * 1000)

        try:
            result, _ = await with_retry(
                attempt_query,
                policy,
                is_retryable=self.is_transient,
                on_failure=on_failure,
                sleep=self._sleep,
            )
        except RetryExhausted as e:
            if isinstance(e.last_error, QueryTimeoutError):
                raise e.last_error from None
            raise QueryError(name, e.attempts, e.last_error) from e.last_error
        return result

    @asynccontextmanager
    async def transaction(self, database: LogicalDatabase) -> AsyncIterator[Transaction]:
        """Multi-statement transaction local to one database's pool."""
        async with self.pool(database).transaction() as tx:
            yield tx

    # ------------------------------------------------------------------
    # Health and shutdown
    # ------------------------------------------------------------------

    async def get_database_health(self) -> DatabaseHealthReport:
        """Re-probe every database and classify overall status."""
        results = await self.probe_all()
        databases = {
            db.value: DatabaseHealthEntry(
                status="connected" if result.success else "disconnected",
                response_time_ms=result.response_time_ms,
                error=result.error,
                pool=self._pools[db].stats(),
            )
            for db, result in results.items()
        }
        up = sum(1 for r in results.values() if r.success)
        return DatabaseHealthReport(
            status=classify_health(up, len(results)),
            databases=databases,
        )

    def describe(self) -> dict[str, dict]:
        """Pool configuration without credentials."""
        return {db.value.lower(): pool.config.public_view() for db, pool in self._pools.items()}

    async def close(self) -> None:
        """
        Close every pool concurrently.

        A failure closing one pool is logged and never prevents closing the
        others or propagates to the caller.
        """
        logger.info("Closing database connections gracefully...")
        databases = list(self._pools)
        outcomes = await asyncio.gather(
            *(self._pools[db].close() for db in databases),
            return_exceptions=True,
        )
        failures = 0
        for db, outcome in zip(databases, outcomes):
            if isinstance(outcome, BaseException):
                failures += 1
                logger.error("Error closing %s database pool: %s", db.value, outcome)
            else:
                logger.info("%s database pool closed", db.value)
        if failures:
            logger.warning("%d database pool(s) failed to close cleanly", failures)
        else:
            logger.info("All database connections closed successfully")

"""
One aiomysql connection pool per logical database.

Callers never touch a raw connection outside ``DatabasePool.connection()``,
which always hands it back to the pool.
"""
import asyncio
import errno
import logging
import ssl
import time
import weakref
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence, Union

import aiomysql
import pymysql
from pymysql.constants import CR

from wismon.database.config import DatabaseConfig, SSLOptions
from wismon.schemas.health import PoolStats

logger = logging.getLogger(__name__)

# Normalised codes for connection-level failures
ECONNRESET = "ECONNRESET"
ETIMEDOUT = "ETIMEDOUT"
PROTOCOL_CONNECTION_LOST = "PROTOCOL_CONNECTION_LOST"

_CONNECTION_LOST_CODES = (CR.CR_SERVER_LOST, CR.CR_SERVER_GONE_ERROR)

Rows = list[dict[str, Any]]
WriteResult = dict[str, Optional[int]]
QueryResult = Union[Rows, WriteResult]


def error_code(exc: BaseException) -> Optional[str]:
    """
    Map a driver or socket exception to a stable error code.

    Connection losses map to PROTOCOL_CONNECTION_LOST, resets to ECONNRESET,
    timeouts to ETIMEDOUT, and server errors to their numeric MySQL code
    (e.g. "1064" for a syntax error).
    """
    if isinstance(exc, ConnectionResetError):
        return ECONNRESET
    if isinstance(exc, pymysql.err.MySQLError) and exc.args and isinstance(exc.args[0], int):
        code = exc.args[0]
        if code in _CONNECTION_LOST_CODES:
            return PROTOCOL_CONNECTION_LOST
        return str(code)
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ETIMEDOUT
    if isinstance(exc, OSError) and exc.errno == errno.ETIMEDOUT:
        return ETIMEDOUT
    return getattr(exc, "code", None)


def translate_placeholders(sql: str) -> str:
    """
    Rewrite positional ``?`` placeholders to the driver's ``%s`` style.

    Placeholders inside quoted literals or identifiers are left alone and
    literal ``%`` signs are escaped, since the driver always formats. A
    backslash inside a string literal escapes the character after it.
    """
    out = []
    quote: Optional[str] = None
    escaped = False
    for ch in sql:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\" and quote != "`":
                escaped = True
            elif ch == quote:
                quote = None
            out.append("%%" if ch == "%" else ch)
        elif ch in ("'", '"', "`"):
            quote = ch
            out.append(ch)
        elif ch == "?":
            out.append("%s")
        elif ch == "%":
            out.append("%%")
        else:
            out.append(ch)
    return "".join(out)


def build_ssl_context(options: Optional[SSLOptions]) -> Optional[ssl.SSLContext]:
    if options is None:
        return None
    context = ssl.create_default_context()
    if not options.reject_unauthorized:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


async def run_statement(conn: Any, sql: str, params: Optional[Sequence[Any]]) -> QueryResult:
    """Execute one statement on ``conn``; rows for reads, counters for writes."""
    async with conn.cursor() as cur:
        await cur.execute(translate_placeholders(sql), tuple(params or ()))
        if cur.description:
            return list(await cur.fetchall())
        return {"affected_rows": cur.rowcount, "insert_id": cur.lastrowid}


class Transaction:
    """Statements executed on a single connection inside BEGIN/COMMIT."""

    def __init__(self, conn: Any):
        self._conn = conn

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        return await run_statement(self._conn, sql, params)


class DatabasePool:
    """Bounded pool of live connections to one logical database."""

    def __init__(self, config: DatabaseConfig, pool: Any):
        self.config = config
        self.name = config.name.value
        self._pool = pool
        self._seen: "weakref.WeakSet[Any]" = weakref.WeakSet()
        self._waiting = 0
        self.connections_established = 0
        self.pool_errors = 0

    @classmethod
    async def create(cls, config: DatabaseConfig) -> "DatabasePool":
        """
        Build the pool without opening a connection.

        Reachability is established by the startup probe, so an unreachable
        server never fails construction.
        """
        pool = await aiomysql.create_pool(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            db=config.database,
            minsize=0,
            maxsize=config.connection_limit,
            # Recycles by connection age on acquire, not by idle time
            pool_recycle=config.idle_timeout,
            charset=config.charset,
            ssl=build_ssl_context(config.ssl),
            init_command=f"SET time_zone = '{config.timezone}'",
            autocommit=True,
            cursorclass=aiomysql.DictCursor,
        )
        return cls(config, pool)

    async def _acquire(self) -> Any:
        return await self._pool.acquire()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Any]:
        """Borrow a connection for the lifetime of the block."""
        self._waiting += 1
        try:
            conn = await asyncio.wait_for(self._acquire(), timeout=self.config.acquire_timeout)
        except Exception as e:
            self._on_error(e)
            raise
        finally:
            self._waiting -= 1

        if conn not in self._seen:
            self._seen.add(conn)
            self.connections_established += 1
            logger.info("New connection established to %s database", self.name)

        try:
            yield conn
        except Exception as e:
            self._on_error(e)
            raise
        finally:
            await self._pool.release(conn)

    def _on_error(self, exc: BaseException) -> None:
        code = error_code(exc)
        if code not in (PROTOCOL_CONNECTION_LOST, ECONNRESET, ETIMEDOUT):
            return
        self.pool_errors += 1
        logger.error("%s database pool error: %s", self.name, exc)
        if code == PROTOCOL_CONNECTION_LOST:
            logger.warning("Attempting to reconnect to %s database...", self.name)

    async def probe(self) -> float:
        """Run ``SELECT 1`` and return the round trip in milliseconds."""
        start = time.perf_counter()
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS test")
                await cur.fetchone()
        return (time.perf_counter() - start) * 1000

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        async with self.connection() as conn:
            return await run_statement(conn, sql, params)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Commit on clean exit, roll back on any error."""
        async with self.connection() as conn:
            await conn.begin()
            try:
                yield Transaction(conn)
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()

    def stats(self) -> PoolStats:
        return PoolStats(
            total_connections=self._pool.size,
            idle_connections=self._pool.freesize,
            queued_requests=self._waiting,
        )

    async def close(self) -> None:
        self._pool.close()
        await self._pool.wait_closed()

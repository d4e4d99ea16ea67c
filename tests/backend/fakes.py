"""
In-memory stand-ins for the database layer used across backend tests.
"""

import inspect
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

from wismon.database.config import DatabaseConfig
from wismon.database.registry import LogicalDatabase
from wismon.schemas.health import PoolStats


def make_config(database: LogicalDatabase, **overrides) -> DatabaseConfig:
    values = {
        "name": database,
        "host": f"{database.value.lower()}.db.internal",
        "port": 3306,
        "user": "app",
        "password": "s3cret-password",
        "database": f"{database.value.lower()}_db",
    }
    values.update(overrides)
    return DatabaseConfig(**values)


class FakePool:
    """
    In-memory implementation of the ``DatabasePool`` surface.

    ``probe_outcomes`` are consumed one per probe (a float is a latency, an
    exception is raised); once exhausted, ``down`` decides between failure and
    a 5ms success. ``handler(sql, params)`` answers every ``execute`` call and
    may be sync or async, return a result or raise.
    """

    def __init__(
        self,
        database: LogicalDatabase,
        handler: Optional[Callable[[str, list], Any]] = None,
        probe_outcomes: Optional[list] = None,
        down: bool = False,
    ):
        self.config = make_config(database)
        self.name = database.value
        self.handler = handler or (lambda sql, params: [])
        self.probe_outcomes = list(probe_outcomes or [])
        self.down = down
        self.probe_calls = 0
        self.queries: list[tuple[str, list]] = []
        self.close_calls = 0
        self.close_error: Optional[BaseException] = None
        self.committed = False
        self.rolled_back = False

    async def probe(self) -> float:
        self.probe_calls += 1
        if self.probe_outcomes:
            outcome = self.probe_outcomes.pop(0)
        elif self.down:
            outcome = ConnectionRefusedError(f"connect to {self.name} refused")
        else:
            outcome = 5.0
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def execute(self, sql: str, params=None):
        self.queries.append((sql, list(params or [])))
        result = self.handler(sql, list(params or []))
        if inspect.isawaitable(result):
            result = await result
        return result

    @asynccontextmanager
    async def transaction(self):
        tx = MagicMock()
        tx.execute = AsyncMock(side_effect=self.execute)
        try:
            yield tx
        except BaseException:
            self.rolled_back = True
            raise
        else:
            self.committed = True

    def stats(self) -> PoolStats:
        return PoolStats(total_connections=2, idle_connections=1, queued_requests=0)

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class RecordingSleep:
    """Replacement for ``asyncio.sleep`` that records delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)



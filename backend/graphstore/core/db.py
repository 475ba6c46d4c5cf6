"""Statement execution against the relational store."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .config import get_settings
from .logging import get_logger

logger = get_logger(__name__)

Row = Mapping[str, Any]

_async_engine: AsyncEngine | None = None
_executor: "SQLAlchemyExecutor | None" = None


class Executor(Protocol):
    """Anything able to run one parameterized statement and return rows."""

    async def execute(self, sql: str, params: Sequence[Any]) -> list[Row]: ...


class SQLAlchemyExecutor:
    """Executor backed by an async SQLAlchemy engine.

    Statements are passed to the DBAPI untouched through ``exec_driver_sql``
    so positional ``$n`` placeholders reach asyncpg as written. Driver errors
    propagate to the caller.
    """

    def __init__(self, engine: AsyncEngine, *, log_statements: bool = False) -> None:
        self.engine = engine
        self.log_statements = log_statements

    async def execute(self, sql: str, params: Sequence[Any]) -> list[Row]:
        if self.log_statements:
            logger.info("executor.execute", sql=sql, params=list(params))
        else:
            logger.debug("executor.execute", sql=sql)

        async with self.engine.connect() as connection:
            result = await connection.exec_driver_sql(sql, tuple(params))
            rows = [dict(row) for row in result.mappings().all()]

        return rows


def get_engine() -> AsyncEngine:
    """Return a singleton instance of the async engine."""

    global _async_engine
    if _async_engine is None:
        settings = get_settings()
        _async_engine = create_async_engine(
            settings.database_url,
            echo=False,
            pool_size=settings.pool_size,
            pool_pre_ping=True,
        )
    return _async_engine


def get_executor() -> SQLAlchemyExecutor:
    """Create or return the shared statement executor."""

    global _executor
    if _executor is None:
        settings = get_settings()
        _executor = SQLAlchemyExecutor(get_engine(), log_statements=settings.development)
    return _executor


async def dispose_engine() -> None:
    """Close pooled connections, used on application shutdown."""

    global _async_engine, _executor
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _executor = None

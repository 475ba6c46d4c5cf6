"""Request-scoped batching loaders for relationship resolution.

Loads issued while the event loop is in the same scheduling tick are queued
and dispatched together once the loop gets back to its ready queue, so a
burst of field resolutions for one relationship costs a single statement.
Every loader caches its futures by key for the lifetime of the request.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Hashable, Sequence
from dataclasses import replace
from typing import Any, Generic, TypeVar

from graphstore.core.db import Executor, Row
from graphstore.core.errors import GraphStoreError, InvariantViolation
from graphstore.core.logging import get_logger
from graphstore.models.connection import Connection, ConnectionArguments, Edge, PageInfo

from .pagination import apply_connection_args, connection_params, validate_connection_args
from .query import KEY_ALIAS, CompiledRelationship, render_query

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

BatchFn = Callable[[list[K]], Awaitable[Sequence[V | BaseException]]]


class LoaderClosedError(GraphStoreError):
    """A load was attempted after the owning request finished."""


class BatchLoader(Generic[K, V]):
    """Coalesce and memoize key lookups.

    ``batch_fn`` receives the distinct keys queued during one tick and must
    return one value per key in the same order. A returned exception instance
    fails only that key; a raised exception fails the whole batch.
    """

    def __init__(self, batch_fn: BatchFn, *, name: str) -> None:
        self.name = name
        self._batch_fn = batch_fn
        self._cache: dict[K, asyncio.Future[V]] = {}
        self._queue: list[tuple[K, asyncio.Future[V]]] = []
        self._dispatch_handle: asyncio.Handle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    def load(self, key: K) -> asyncio.Future[V]:
        """Future for ``key``; cancelling it leaves the shared cached result alone."""

        if self._closed:
            raise LoaderClosedError(f"loader {self.name} is closed")

        cached = self._cache.get(key)
        if cached is not None:
            return asyncio.shield(cached)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[V] = loop.create_future()
        self._cache[key] = future
        self._queue.append((key, future))

        if self._dispatch_handle is None:
            self._dispatch_handle = loop.call_soon(self._dispatch)

        return asyncio.shield(future)

    async def load_many(self, keys: Sequence[K]) -> list[V]:
        return list(await asyncio.gather(*(self.load(key) for key in keys)))

    def _dispatch(self) -> None:
        self._dispatch_handle = None
        batch, self._queue = self._queue, []
        if not batch:
            return

        task = asyncio.get_running_loop().create_task(self._run_batch(batch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_batch(self, batch: list[tuple[K, asyncio.Future[V]]]) -> None:
        keys = [key for key, _ in batch]
        logger.debug("loader.dispatch", loader=self.name, keys=len(keys))

        try:
            values = await self._batch_fn(keys)
            if len(values) != len(keys):
                raise InvariantViolation(
                    f"loader {self.name} returned {len(values)} values for {len(keys)} keys"
                )
        except asyncio.CancelledError:
            for _, future in batch:
                future.cancel()
            raise
        except Exception as exc:
            logger.warning("loader.batch_failed", loader=self.name, keys=len(keys), error=repr(exc))
            for _, future in batch:
                if not future.done():
                    future.set_exception(exc)
            return

        for (_, future), value in zip(batch, values):
            if future.done():
                continue
            if isinstance(value, BaseException):
                future.set_exception(value)
            else:
                future.set_result(value)

    async def close(self) -> None:
        """Abandon queued and in-flight work; later loads raise."""

        self._closed = True
        if self._dispatch_handle is not None:
            self._dispatch_handle.cancel()
            self._dispatch_handle = None

        for _, future in self._queue:
            future.cancel()
        self._queue.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        # a task cancelled before its first step never reaches its own cleanup
        for future in self._cache.values():
            if not future.done():
                future.cancel()


def _key(value: Any) -> str:
    # driver values (uuid.UUID) and caller values (str) must group together
    if isinstance(value, str):
        try:
            return str(uuid.UUID(value))
        except ValueError:
            return value
    return str(value)


def _node(row: Row) -> dict[str, Any]:
    return {column: value for column, value in row.items() if column != KEY_ALIAS}


class SingularRelationshipLoader:
    """To-one relationship: every batch runs the precompiled statement once."""

    def __init__(self, compiled: CompiledRelationship, executor: Executor) -> None:
        self.compiled = compiled
        self.executor = executor
        self._loader: BatchLoader[Any, dict[str, Any] | None] = BatchLoader(self._load_batch, name=compiled.name)

    def load(self, key: Any) -> asyncio.Future[dict[str, Any] | None]:
        return self._loader.load(key)

    async def load_many(self, keys: Sequence[Any]) -> list[dict[str, Any] | None]:
        return await self._loader.load_many(keys)

    async def _load_batch(self, keys: list[Any]) -> list[dict[str, Any] | None]:
        rows = await self.executor.execute(self.compiled.sql, [keys])

        column = self.compiled.resolved_key_column
        rows_by_key: dict[str, dict[str, Any]] = {}
        for row in rows:
            rows_by_key.setdefault(_key(row[column]), _node(row))

        return [rows_by_key.get(_key(key)) for key in keys]

    async def close(self) -> None:
        await self._loader.close()


class PluralRelationshipLoader:
    """To-many relationship returning connections.

    Arguments differ per call, so each distinct ``(key, args)`` pair gets its
    own statement; pairs queued in the same tick run concurrently.
    """

    def __init__(self, compiled: CompiledRelationship, executor: Executor) -> None:
        self.compiled = compiled
        self.executor = executor
        self._loader: BatchLoader[tuple[Any, ConnectionArguments], Connection] = BatchLoader(
            self._load_batch, name=compiled.name
        )

    def load(self, key: Any, args: ConnectionArguments | None = None) -> asyncio.Future[Connection]:
        args = args or ConnectionArguments()
        validate_connection_args(args, self.compiled.columns)
        return self._loader.load((key, args))

    async def _load_batch(self, pairs: list[tuple[Any, ConnectionArguments]]) -> list[Connection | BaseException]:
        return list(
            await asyncio.gather(
                *(self._load_connection(key, args) for key, args in pairs),
                return_exceptions=True,
            )
        )

    async def _load_connection(self, key: Any, args: ConnectionArguments) -> Connection:
        query = apply_connection_args(self.compiled.query, args, self.compiled.columns)
        limit = query.limit
        if limit is not None:
            # one extra row tells whether another page exists
            query = replace(query, limit=limit + 1)

        rows = await self.executor.execute(render_query(query), connection_params(key, args))

        has_more = limit is not None and len(rows) > limit
        if has_more:
            rows = rows[:limit]
        if args.is_backward:
            # scanned newest first, handed back in forward order
            rows = list(reversed(rows))

        edges = [Edge(node=_node(row), cursor=_key(row["id"])) for row in rows]
        return Connection(
            edges=edges,
            page_info=PageInfo(
                has_previous_page=has_more and args.is_backward,
                has_next_page=has_more and not args.is_backward,
            ),
            count=len(edges),
            total_count=len(edges),
        )

    async def close(self) -> None:
        await self._loader.close()


RelationshipLoader = SingularRelationshipLoader | PluralRelationshipLoader


class RequestLoaders:
    """Loaders for one request, created lazily per relationship."""

    def __init__(self, executor: Executor) -> None:
        self.executor = executor
        self._loaders: dict[str, RelationshipLoader] = {}

    def get(self, compiled: CompiledRelationship) -> RelationshipLoader:
        loader = self._loaders.get(compiled.name)
        if loader is None:
            factory = SingularRelationshipLoader if compiled.is_singular else PluralRelationshipLoader
            loader = factory(compiled, self.executor)
            self._loaders[compiled.name] = loader
        return loader

    async def close(self) -> None:
        await asyncio.gather(*(loader.close() for loader in self._loaders.values()))
        self._loaders.clear()

    async def __aenter__(self) -> "RequestLoaders":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

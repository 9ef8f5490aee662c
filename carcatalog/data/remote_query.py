"""
Remote query state holder.

Wraps one async query function and exposes its latest result as
`QueryResult(data, is_loading, error, refetch)`. Every fetch is stamped with
a request generation; a response is applied only if no newer response has
been applied already, so a slow early request never overwrites a fast
later one.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set

from carcatalog.pipeline.view_models import RawRecord
from carcatalog.utils.logger import get_logger

logger = get_logger("data.remote_query")

QueryFn = Callable[[], Awaitable[List[RawRecord]]]


async def _noop() -> None:
    return None


@dataclass
class QueryResult:
    """Snapshot of a query's state."""
    data: List[RawRecord] = field(default_factory=list)
    is_loading: bool = False
    error: Optional[Exception] = None
    refetch: Callable[[], Awaitable[None]] = _noop


class RemoteQuery:
    """
    Query state for one record source.

    Args:
        query_fn: Coroutine function returning raw records.
        key: Name used in log lines (e.g. "brands", "models:volvo").
        enabled: Disabled queries do not fetch on `load()`; explicit
            `refetch()` still runs.
    """

    def __init__(self, query_fn: QueryFn, key: str = "records", enabled: bool = True):
        self._query_fn = query_fn
        self.key = key
        self.enabled = enabled
        self.data: List[RawRecord] = []
        self.error: Optional[Exception] = None
        self.updated_at: Optional[float] = None
        self._issued_generation = 0
        self._applied_generation = 0
        self._pending: Set[int] = set()

    @property
    def generation(self) -> int:
        """Generation of the most recently applied response (0 = none yet)."""
        return self._applied_generation

    @property
    def is_loading(self) -> bool:
        """True while a request newer than the applied response is in flight."""
        return any(gen > self._applied_generation for gen in self._pending)

    @property
    def has_fetched(self) -> bool:
        return self._issued_generation > 0

    def set_enabled(self, enabled: bool) -> None:
        if enabled != self.enabled:
            logger.debug("Query %s %s", self.key, "enabled" if enabled else "disabled")
        self.enabled = enabled

    def result(self) -> QueryResult:
        return QueryResult(
            data=self.data,
            is_loading=self.is_loading,
            error=self.error,
            refetch=self.refetch,
        )

    async def load(self) -> QueryResult:
        """Fetch if enabled; otherwise return the current state untouched."""
        if self.enabled:
            await self._run()
        return self.result()

    async def refetch(self) -> None:
        """Issue a new request. Failures land in `error`, never raise."""
        await self._run()

    async def _run(self) -> None:
        self._issued_generation += 1
        generation = self._issued_generation
        self._pending.add(generation)
        try:
            data = await self._query_fn()
        except Exception as exc:
            if generation > self._applied_generation:
                self._applied_generation = generation
                self.error = exc
                logger.error(f"Query {self.key} failed (generation {generation}): {exc}")
            else:
                logger.info(f"Discarded stale failure for {self.key} (generation {generation})")
        else:
            if generation > self._applied_generation:
                self._applied_generation = generation
                self.data = list(data or [])
                self.error = None
                self.updated_at = time.monotonic()
                logger.debug("Query %s applied generation %d (%d records)", self.key, generation, len(self.data))
            else:
                logger.info(
                    "Discarded stale response for %s (generation %d, applied %d)",
                    self.key, generation, self._applied_generation,
                )
        finally:
            self._pending.discard(generation)

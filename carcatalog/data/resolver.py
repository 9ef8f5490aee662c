"""
Data source resolver.

Chooses, once per session, which acquisition strategy supplies records and
exposes a uniform `SourceResult(records, is_loading, error, refetch)` no
matter which strategy is active.

    MOBILE_API            constrained platform: remote query, last-good fallback
    SSG_ONLY              desktop web, authoritative snapshot: no remote query
    STATIC_WITH_FALLBACK  desktop web, snapshot present: snapshot, else remote query
    API_ONLY              desktop web, no snapshot: remote query
"""
from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from carcatalog.data.remote_query import QueryResult, RemoteQuery
from carcatalog.data.routes import CatalogRoute
from carcatalog.data.snapshot_store import SnapshotStore, SnapshotStoreError
from carcatalog.pipeline.view_models import RawRecord
from carcatalog.utils.logger import get_logger
from carcatalog.utils.platform import PlatformFacts

logger = get_logger("data.resolver")


class Strategy(str, Enum):
    MOBILE_API = "mobile_api"
    SSG_ONLY = "ssg_only"
    STATIC_WITH_FALLBACK = "static_with_fallback"
    API_ONLY = "api_only"


class SnapshotUnavailableError(RuntimeError):
    """The authoritative snapshot is empty or malformed; static content must be regenerated."""


async def _noop() -> None:
    return None


@dataclass
class SourceResult:
    """Uniform record-access surface handed to the pipeline."""
    records: List[RawRecord] = field(default_factory=list)
    is_loading: bool = False
    error: Optional[Exception] = None
    refetch: Callable[[], Awaitable[None]] = _noop


def select_strategy(platform: PlatformFacts, snapshots: SnapshotStore, route: CatalogRoute) -> Strategy:
    """Pick the acquisition strategy for a session. Evaluated once."""
    if platform.is_constrained_platform():
        # Snapshots only exist for the web build
        return Strategy.MOBILE_API
    if snapshots.is_snapshot_authoritative(route):
        return Strategy.SSG_ONLY
    if snapshots.is_snapshot_present(route):
        return Strategy.STATIC_WITH_FALLBACK
    return Strategy.API_ONLY


class LastGoodCache:
    """
    Last successful record list of a session.

    Bounded by age and by how many times it may stand in for an empty
    response; past either bound it is dropped.
    """

    def __init__(self, max_age: float = 300.0, max_serves: int = 5, clock: Callable[[], float] = time.monotonic):
        self.max_age = max_age
        self.max_serves = max_serves
        self._clock = clock
        self._records: Optional[List[RawRecord]] = None
        self._stored_at = 0.0
        self._serves = 0

    def store(self, records: List[RawRecord]) -> None:
        if records is self._records:
            return
        self._records = records
        self._stored_at = self._clock()
        self._serves = 0

    def get(self) -> Optional[List[RawRecord]]:
        """Return cached records if not expired (does not count as a serve)."""
        if self._records is None:
            return None
        age = self._clock() - self._stored_at
        if age > self.max_age:
            logger.info("Last-good records expired (age %.1fs)", age)
            self.clear()
            return None
        return self._records

    def serve(self) -> Optional[List[RawRecord]]:
        """Count one fallback serve; drops the records once the serve budget is spent."""
        records = self.get()
        if records is None:
            return None
        if self._serves >= self.max_serves:
            logger.info("Last-good records dropped after %d serves", self._serves)
            self.clear()
            return None
        self._serves += 1
        return records

    def clear(self) -> None:
        self._records = None
        self._serves = 0


class AcquisitionStrategy(ABC):
    """One way of acquiring records for a session."""

    strategy: Strategy
    is_synchronous: bool = False

    @abstractmethod
    def current(self) -> SourceResult:
        """Current records/loading/error state without triggering I/O."""

    @abstractmethod
    async def load(self) -> SourceResult:
        """Acquire records (remote strategies issue the query)."""

    async def refetch(self) -> None:
        """Re-acquire records. No-op for static strategies."""
        return None


def _from_query(query_result: QueryResult) -> SourceResult:
    return SourceResult(
        records=query_result.data,
        is_loading=query_result.is_loading,
        error=query_result.error,
        refetch=query_result.refetch,
    )


class ApiOnlyStrategy(AcquisitionStrategy):
    strategy = Strategy.API_ONLY

    def __init__(self, query: RemoteQuery):
        self.query = query

    def current(self) -> SourceResult:
        result = self.query.result()
        if not result.data and not result.error and not self.query.has_fetched and self.query.enabled:
            # Not started yet: render a spinner, not an empty list
            result.is_loading = True
        return _from_query(result)

    async def load(self) -> SourceResult:
        await self.query.load()
        return self.current()

    async def refetch(self) -> None:
        await self.query.refetch()


class MobileApiStrategy(ApiOnlyStrategy):
    """Remote query plus the last-good fallback for transient empty results on re-mount."""

    strategy = Strategy.MOBILE_API

    def __init__(self, query: RemoteQuery, last_good: LastGoodCache):
        super().__init__(query)
        self.last_good = last_good

    def current(self) -> SourceResult:
        result = super().current()
        result.refetch = self.refetch
        if result.records and not result.is_loading:
            self.last_good.store(result.records)
            return result
        if not result.records and not result.is_loading:
            cached = self.last_good.get()
            if cached:
                return SourceResult(records=cached, is_loading=False, error=result.error, refetch=self.refetch)
        return result

    def _count_fallback(self) -> None:
        if not self.query.data and not self.query.is_loading:
            # One serve per empty response, not per read
            cached = self.last_good.serve()
            if cached:
                logger.info("Serving %d last-good records in place of an empty response", len(cached))

    async def load(self) -> SourceResult:
        await self.query.load()
        self._count_fallback()
        return self.current()

    async def refetch(self) -> None:
        await self.query.refetch()
        self._count_fallback()


class SsgOnlyStrategy(AcquisitionStrategy):
    """Authoritative snapshot; never touches the remote service."""

    strategy = Strategy.SSG_ONLY
    is_synchronous = True

    def __init__(self, snapshots: SnapshotStore, route: CatalogRoute):
        self.snapshots = snapshots
        self.route = route
        self._result = self._read()

    def _read(self) -> SourceResult:
        try:
            records = self.snapshots.read_snapshot(self.route)
        except SnapshotStoreError as exc:
            logger.error(f"Snapshot for {self.route} is malformed: {exc}")
            return SourceResult(error=SnapshotUnavailableError(str(exc)))
        if not records:
            logger.error(f"Snapshot for {self.route} is empty; static content must be regenerated")
            return SourceResult(error=SnapshotUnavailableError(f"Snapshot for {self.route} is empty"))
        return SourceResult(records=records)

    def current(self) -> SourceResult:
        return self._result

    async def load(self) -> SourceResult:
        return self._result


class StaticWithFallbackStrategy(AcquisitionStrategy):
    """Snapshot when it has records, otherwise behaves exactly like API_ONLY."""

    strategy = Strategy.STATIC_WITH_FALLBACK

    def __init__(self, snapshots: SnapshotStore, route: CatalogRoute, query: RemoteQuery):
        self.route = route
        self.fallback = ApiOnlyStrategy(query)
        try:
            records = snapshots.read_snapshot(route)
        except SnapshotStoreError as exc:
            logger.warning(f"Snapshot for {route} is malformed, falling back to the API: {exc}")
            records = []
        if not records:
            logger.warning(f"Snapshot for {route} is empty, falling back to the API")
        self._static_records = records

    @property
    def uses_fallback(self) -> bool:
        return not self._static_records

    @property
    def is_synchronous(self) -> bool:
        return not self.uses_fallback

    def current(self) -> SourceResult:
        if self.uses_fallback:
            return self.fallback.current()
        return SourceResult(records=self._static_records)

    async def load(self) -> SourceResult:
        if self.uses_fallback:
            return await self.fallback.load()
        return self.current()

    async def refetch(self) -> None:
        if self.uses_fallback:
            await self.fallback.refetch()


class DataSourceResolver:
    """
    Owns the strategy chosen for one session.

    Args:
        route: Catalog route being browsed.
        platform: Platform facts.
        snapshots: Snapshot provider.
        query: Remote query for the route (unused by SSG_ONLY).
        last_good: Session-owned last-good cache (MOBILE_API only).
    """

    def __init__(
        self,
        route: CatalogRoute,
        platform: PlatformFacts,
        snapshots: SnapshotStore,
        query: RemoteQuery,
        last_good: Optional[LastGoodCache] = None,
    ):
        self.route = route
        self.platform = platform
        self.query = query
        self.last_good = last_good or LastGoodCache()
        self.strategy = select_strategy(platform, snapshots, route)
        self.acquisition = self._build(snapshots)

        if self.strategy != Strategy.MOBILE_API:
            # Desktop web only queries while the view is focused
            query.set_enabled(False if self.strategy == Strategy.SSG_ONLY else query.enabled)

        logger.info(
            f"Data loading strategy for {route}: {self.strategy.value} "
            f"(platform={platform.name})"
        )

    def _build(self, snapshots: SnapshotStore) -> AcquisitionStrategy:
        if self.strategy == Strategy.MOBILE_API:
            return MobileApiStrategy(self.query, self.last_good)
        if self.strategy == Strategy.SSG_ONLY:
            return SsgOnlyStrategy(snapshots, self.route)
        if self.strategy == Strategy.STATIC_WITH_FALLBACK:
            return StaticWithFallbackStrategy(snapshots, self.route, self.query)
        return ApiOnlyStrategy(self.query)

    @property
    def is_synchronous(self) -> bool:
        return self.acquisition.is_synchronous

    def set_focused(self, focused: bool) -> None:
        """Gate the remote query on view focus (constrained platforms stay enabled)."""
        if self.strategy == Strategy.MOBILE_API:
            self.query.set_enabled(True)
        elif self.strategy != Strategy.SSG_ONLY:
            self.query.set_enabled(focused)

    def current(self) -> SourceResult:
        return self.acquisition.current()

    async def load(self) -> SourceResult:
        return await self.acquisition.load()

    async def refetch(self) -> None:
        await self.acquisition.refetch()

    def teardown(self) -> None:
        self.last_good.clear()

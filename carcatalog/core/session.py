"""
Catalog session.

Orchestrates one browsing view: acquisition strategy -> normalize -> filter
-> sort/group -> paginate, with image preloading of the visible tiles.
Owns every piece of mutable state of the view and releases it on teardown.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from carcatalog.core.config import CatalogConfig, get_config
from carcatalog.core.preload import ImagePreloadOrchestrator
from carcatalog.data.api_client import CatalogApiClient
from carcatalog.data.image_cache import HttpImageCache
from carcatalog.data.remote_query import RemoteQuery
from carcatalog.data.resolver import (
    DataSourceResolver,
    LastGoodCache,
    SnapshotUnavailableError,
    SourceResult,
    Strategy,
)
from carcatalog.data.routes import CatalogRoute, parse_route
from carcatalog.data.snapshot_store import SnapshotStore
from carcatalog.pipeline.filters import (
    FilterQuery,
    describe_empty_result,
    filter_options,
    filter_records_async,
)
from carcatalog.pipeline.grouping import OrderBy, sort_and_group
from carcatalog.pipeline.normalizer import DEFAULT_CHUNK_SIZE, normalize_async
from carcatalog.pipeline.pagination import PaginationController
from carcatalog.pipeline.view_models import Group, RawRecord, RecordKind, ViewModel
from carcatalog.utils.logger import get_logger
from carcatalog.utils.platform import PlatformFacts

logger = get_logger("core.session")


class ViewStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    EMPTY_NO_DATA = "empty_no_data"
    EMPTY_NO_RESULTS = "empty_no_results"
    ACQUISITION_ERROR = "acquisition_error"
    SNAPSHOT_UNAVAILABLE = "snapshot_unavailable"


@dataclass
class CatalogReadModel:
    """What the rendering surface draws."""
    route: str
    strategy: Strategy
    status: ViewStatus
    records: List[ViewModel] = field(default_factory=list)    # visible, flat
    groups: List[Group] = field(default_factory=list)         # visible, sectioned
    is_loading: bool = False
    error: Optional[Exception] = None
    visible_page: int = 1
    has_more: bool = False
    total: int = 0
    page_size: int = 0


class CatalogSession:
    """
    One browsing session over a catalog route.

    Args:
        route: Route being browsed.
        resolver: Data source resolver (strategy already chosen).
        pagination: Pagination controller (paged on constrained platforms).
        preloader: Optional image preload orchestrator.
        query: Initial filter query.
        order_by: Initial ordering.
        grouped: Section the result under group labels.
        prefer_high_res: Use high resolution model images as primary.
        chunk_size: Records per normalize/filter chunk.
        image_base_url: Base for relative image paths.
        closers: Coroutine functions releasing owned clients on teardown.
    """

    def __init__(
        self,
        route: CatalogRoute,
        resolver: DataSourceResolver,
        pagination: PaginationController,
        preloader: Optional[ImagePreloadOrchestrator] = None,
        query: Optional[FilterQuery] = None,
        order_by: OrderBy = OrderBy.NAME,
        grouped: bool = True,
        prefer_high_res: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        image_base_url: Optional[str] = None,
        closers: Optional[List[Callable[[], Awaitable[None]]]] = None,
    ):
        self.route = route
        self.resolver = resolver
        self.pagination = pagination
        self.preloader = preloader
        self.query = query or FilterQuery()
        self.order_by = order_by
        self.grouped = grouped
        self.prefer_high_res = prefer_high_res
        self.chunk_size = chunk_size
        self.image_base_url = image_base_url
        self._closers = list(closers or [])

        self._raw: Optional[List[RawRecord]] = None
        self._normalized: List[ViewModel] = []
        self._filtered: List[ViewModel] = []
        self._source = SourceResult()
        self._generation = 0
        self._closed = False

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_config(
        cls,
        route: Union[str, CatalogRoute],
        config: Optional[CatalogConfig] = None,
        *,
        platform: Optional[PlatformFacts] = None,
        snapshots: Optional[SnapshotStore] = None,
        api_transport: Optional[httpx.AsyncBaseTransport] = None,
        image_transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs: Any,
    ) -> "CatalogSession":
        """Wire a session from configuration."""
        config = config or get_config()
        route = parse_route(route) if isinstance(route, str) else route
        platform = platform or PlatformFacts.from_config(config)
        snapshots = snapshots or SnapshotStore.from_config(config)

        client = CatalogApiClient.from_config(config, transport=api_transport)
        if route.kind == RecordKind.BRAND:
            query_fn = client.get_brands
        else:
            brand = route.brand_name

            async def query_fn() -> List[RawRecord]:
                return await client.get_models(brand)

        remote = RemoteQuery(query_fn, key=str(route))
        last_good = LastGoodCache(config.last_good_max_age, config.last_good_max_serves)
        resolver = DataSourceResolver(route, platform, snapshots, remote, last_good)

        pagination = PaginationController(
            page_size=config.page_size,
            paged=platform.is_constrained_platform(),
            advance_delay=config.advance_delay,
        )
        image_cache = HttpImageCache(max_entries=config.image_cache_max_entries, transport=image_transport)
        preloader = ImagePreloadOrchestrator(
            image_cache,
            critical_count=config.preload_critical,
            high_count=config.preload_high,
            batch_size=config.preload_batch_size,
            batch_delay=config.preload_batch_delay,
        )

        return cls(
            route,
            resolver,
            pagination,
            preloader,
            prefer_high_res=platform.prefers_high_res_images,
            chunk_size=config.chunk_size,
            image_base_url=config.image_base_url,
            closers=[client.aclose, image_cache.aclose],
            **kwargs,
        )

    @property
    def strategy(self) -> Strategy:
        return self.resolver.strategy

    # ------------------------------------------------------------------ #
    # Pipeline
    # ------------------------------------------------------------------ #

    async def _recompute(self) -> bool:
        """
        Run the pipeline over the resolver's current records.

        Returns:
            False if a newer recompute started meanwhile and this result was dropped.
        """
        self._generation += 1
        generation = self._generation
        source = self.resolver.current()

        normalized = self._normalized
        if source.records is not self._raw:
            normalized = await normalize_async(
                source.records,
                self.route.kind,
                prefer_high_res=self.prefer_high_res,
                chunk_size=self.chunk_size,
                image_base_url=self.image_base_url,
            )
            if generation != self._generation:
                logger.debug("Dropped stale normalize (generation %d)", generation)
                return False

        filtered = await filter_records_async(normalized, self.query, chunk_size=self.chunk_size)
        if generation != self._generation:
            logger.debug("Dropped stale filter (generation %d)", generation)
            return False

        groups = sort_and_group(filtered, self.order_by, grouped=self.grouped)

        self._raw = source.records
        self._normalized = normalized
        self._filtered = filtered
        self._source = source
        self.pagination.update(groups)

        logger.info(
            f"{self.route}: {len(normalized)} records, {len(filtered)} after filter, "
            f"{len(self.pagination.visible)} visible"
        )
        self._preload_visible()
        return True

    def _preload_visible(self) -> None:
        if self.preloader is not None and not self._closed:
            self.preloader.schedule(self.pagination.visible)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def load(self) -> CatalogReadModel:
        """Acquire records through the chosen strategy and run the pipeline."""
        await self.resolver.load()
        await self._recompute()
        return self.read_model()

    async def refetch(self) -> CatalogReadModel:
        await self.resolver.refetch()
        await self._recompute()
        return self.read_model()

    async def set_query(self, query: Optional[Union[FilterQuery, Dict[str, Any]]]) -> CatalogReadModel:
        if not isinstance(query, FilterQuery):
            query = FilterQuery.from_mapping(query)
        self.query = query
        self.pagination.reset()
        await self._recompute()
        return self.read_model()

    async def set_order(self, order_by: Union[OrderBy, str], grouped: Optional[bool] = None) -> CatalogReadModel:
        self.order_by = OrderBy(order_by)
        if grouped is not None:
            self.grouped = grouped
        self.pagination.reset()
        await self._recompute()
        return self.read_model()

    async def advance(self) -> bool:
        """Show one more page. Returns False if the request was dropped."""
        moved = await self.pagination.advance()
        if moved:
            self._preload_visible()
        return moved

    def reset(self) -> None:
        self.pagination.reset()

    async def set_focused(self, focused: bool) -> CatalogReadModel:
        """Focus changes gate the remote query on desktop web; gaining focus loads."""
        self.resolver.set_focused(focused)
        if focused and self.resolver.query.enabled and not self.resolver.query.has_fetched:
            return await self.load()
        return self.read_model()

    def filter_options(self) -> Dict[str, List[str]]:
        return filter_options(self._normalized)

    def read_model(self) -> CatalogReadModel:
        source = self._source if self._raw is not None else self.resolver.current()
        total = self.pagination.total
        return CatalogReadModel(
            route=str(self.route),
            strategy=self.strategy,
            status=self._status(source, total),
            records=self.pagination.visible,
            groups=self.pagination.visible_groups,
            is_loading=source.is_loading,
            error=source.error,
            visible_page=self.pagination.current_page,
            has_more=self.pagination.has_more,
            total=total,
            page_size=self.pagination.page_size,
        )

    def _status(self, source: SourceResult, total: int) -> ViewStatus:
        if isinstance(source.error, SnapshotUnavailableError):
            return ViewStatus.SNAPSHOT_UNAVAILABLE
        if total:
            return ViewStatus.READY
        if source.is_loading or (self._raw is None and source.error is None):
            return ViewStatus.LOADING
        if source.error is not None:
            return ViewStatus.ACQUISITION_ERROR
        if describe_empty_result(self.query) == "no_results":
            return ViewStatus.EMPTY_NO_RESULTS
        return ViewStatus.EMPTY_NO_DATA

    async def teardown(self) -> None:
        """Release everything the session owns. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        if self.preloader is not None:
            await self.preloader.teardown()
        self.resolver.teardown()
        for close in self._closers:
            await close()
        self._closers.clear()
        logger.info(f"Session for {self.route} torn down")

"""
Image preloading for the visible catalog tiles.

Splits the visible images into priority tiers and fetches them ahead of
display:
- critical: the first tiles on screen, fetched first
- high: the next tiles, fetched right after the critical ones
- lazy: everything else, fetched last in small batches

Usage:
    orchestrator = ImagePreloadOrchestrator(HttpImageCache())
    orchestrator.schedule(read_model.records)
    ...
    await orchestrator.teardown()
"""
import asyncio
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from carcatalog.data.image_cache import ImageFetcher
from carcatalog.pipeline.view_models import AnyView, RecordKind
from carcatalog.utils.images import optimize_image_url
from carcatalog.utils.logger import get_logger

logger = get_logger("core.preload")


@dataclass
class PreloadPlan:
    """Image URLs split by priority tier, in display order."""
    critical: List[str] = field(default_factory=list)
    high: List[str] = field(default_factory=list)
    lazy: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.critical) + len(self.high) + len(self.lazy)


class ImagePreloadOrchestrator:
    """
    Tiered image preloader.

    Args:
        fetcher: Image fetch/cache collaborator.
        critical_count: Number of leading tiles fetched immediately.
        high_count: Number of tiles after the critical ones queued first.
        batch_size: Images fetched per background batch.
        batch_delay: Seconds to wait between background batches.
    """

    def __init__(
        self,
        fetcher: ImageFetcher,
        critical_count: int = 3,
        high_count: int = 7,
        batch_size: int = 3,
        batch_delay: float = 0.1,
    ):
        self.fetcher = fetcher
        self.critical_count = max(0, critical_count)
        self.high_count = max(0, high_count)
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self._critical: List[str] = []
        self._queue: List[Tuple[str, str]] = []
        self._preloaded: Set[str] = set()
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> List[str]:
        return self._critical + [url for url, _ in self._queue]

    @property
    def preloaded(self) -> Set[str]:
        return set(self._preloaded)

    def plan(self, items: Iterable[AnyView]) -> PreloadPlan:
        sources: List[Tuple[str, str]] = []
        seen: Set[str] = set()
        for item in items:
            url = item.image_refs.primary
            if not url or url in seen:
                continue
            seen.add(url)
            sources.append((url, "brand" if item.kind == RecordKind.BRAND else "model"))

        def tier(entries: List[Tuple[str, str]], priority: str) -> List[str]:
            return [optimize_image_url(url, context=context, priority=priority) for url, context in entries]

        high_end = self.critical_count + self.high_count
        return PreloadPlan(
            critical=tier(sources[: self.critical_count], "critical"),
            high=tier(sources[self.critical_count: high_end], "high"),
            lazy=tier(sources[high_end:], "lazy"),
        )

    async def _preload(self, urls: List[str], priority: str) -> None:
        urls = [url for url in urls if url not in self._preloaded]
        if not urls:
            return
        try:
            loaded = await self.fetcher.preload(urls, priority)
        except Exception as e:
            logger.warning(f"[FAIL] {priority} preload of {len(urls)} images: {e}")
            return
        # Only what actually arrived; the rest is retried by a later schedule()
        self._preloaded.update(url for url in loaded if url in urls)

    async def _drain(self) -> None:
        start = time.time()
        count = 0
        while self._critical or self._queue:
            if self._critical:
                urls, self._critical = self._critical, []
                await self._preload(urls, "critical")
                count += len(urls)
                continue
            batch = self._queue[: self.batch_size]
            del self._queue[: self.batch_size]
            await self._preload([url for url, _ in batch], batch[0][1])
            count += len(batch)
            if self._queue:
                await asyncio.sleep(self.batch_delay)
        logger.debug(f"Background preload finished: {count} images ({time.time() - start:.2f}s)")

    def schedule(self, items: Iterable[AnyView]) -> PreloadPlan:
        """
        Plan the tiers and hand them to the background task, replacing any pending work.

        Returns at once; critical images are fetched first by the background
        task, ahead of the high and lazy queue. Must be called from a running
        event loop.
        """
        plan = self.plan(items)
        self._critical = [url for url in plan.critical if url not in self._preloaded]
        self._queue = [(url, "high") for url in plan.high if url not in self._preloaded]
        self._queue += [(url, "lazy") for url in plan.lazy if url not in self._preloaded]
        if (self._critical or self._queue) and (self._task is None or self._task.done()):
            self._task = asyncio.create_task(self._drain())

        logger.info(
            f"Preload scheduled: {len(plan.critical)} critical, "
            f"{len(plan.high)} high, {len(plan.lazy)} lazy"
        )
        return plan

    async def wait(self) -> None:
        """Wait for the background queue to drain."""
        if self._task is not None:
            await self._task

    async def teardown(self) -> None:
        """Cancel background work and drop everything preloaded."""
        self._critical = []
        self._queue.clear()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._preloaded.clear()
        self.fetcher.clear_cache()
        logger.info("Preload teardown: queue cleared, image cache released")

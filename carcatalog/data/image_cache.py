"""
Image fetch/cache collaborator used by the preload orchestrator.

Downloads image bytes ahead of display and keeps them in a bounded
in-memory cache so the first render of a tile is served locally.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Protocol

import httpx

from carcatalog.utils.logger import get_logger

logger = get_logger("data.image_cache")


class ImageFetcher(Protocol):
    """Anything that can prefetch image URLs and drop what it cached."""

    async def preload(self, urls: List[str], priority: str) -> List[str]:
        """Fetch `urls`; returns the ones now cached."""
        ...

    def clear_cache(self) -> None:
        ...


class HttpImageCache:
    """
    Prefetches images over HTTP into a bounded LRU byte cache.

    Failures are logged and never raised; a missing image only means the
    tile renders from the network later.

    Args:
        max_entries: Maximum number of images kept in memory.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        max_entries: int = 256,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.max_entries = max_entries
        self._cache: "OrderedDict[str, bytes]" = OrderedDict()
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)
        self.failures: Dict[str, str] = {}

    def __contains__(self, url: str) -> bool:
        return url in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, url: str) -> Optional[bytes]:
        data = self._cache.get(url)
        if data is not None:
            self._cache.move_to_end(url)
        return data

    async def _fetch(self, url: str) -> bool:
        if url in self._cache:
            self._cache.move_to_end(url)
            return True
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self.failures[url] = str(exc)
            logger.warning(f"Image preload failed for {url}: {exc}")
            return False

        self.failures.pop(url, None)
        self._cache[url] = response.content
        while len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)
        return True

    async def preload(self, urls: Iterable[str], priority: str = "normal") -> List[str]:
        urls = [url for url in urls if url]
        if not urls:
            return []
        logger.debug("Preloading %d images (%s)", len(urls), priority)
        loaded = []
        for url in urls:
            if await self._fetch(url):
                loaded.append(url)
        return loaded

    def clear_cache(self) -> None:
        self._cache.clear()
        self.failures.clear()

    async def aclose(self) -> None:
        await self._client.aclose()

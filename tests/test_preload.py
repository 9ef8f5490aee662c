"""
Tests for tiered image preloading and the HTTP image cache.
"""

import asyncio

import httpx
import pytest

from carcatalog.core.preload import ImagePreloadOrchestrator
from carcatalog.data.image_cache import HttpImageCache
from carcatalog.pipeline.view_models import BrandView, ImageRefs, ModelView


def _brands(count, image=lambda i: f"https://cdn.example.com/{i}.png"):
    return [BrandView(id=str(i), title=f"B{i}", image_refs=ImageRefs(primary=image(i))) for i in range(count)]


def _base(url):
    return url.split("?")[0]


# ── Planning ─────────────────────────────────────────────────────────────

class TestPlan:
    def test_tiers_partition_without_overlap(self, fetcher):
        orchestrator = ImagePreloadOrchestrator(fetcher, critical_count=3, high_count=4)
        plan = orchestrator.plan(_brands(12))
        assert len(plan.critical) == 3
        assert len(plan.high) == 4
        assert len(plan.lazy) == 5
        everything = plan.critical + plan.high + plan.lazy
        assert len(set(everything)) == 12
        assert [_base(url) for url in everything] == [f"https://cdn.example.com/{i}.png" for i in range(12)]

    def test_skips_empty_and_duplicate_images(self, fetcher):
        items = _brands(4, image=lambda i: "" if i == 1 else "https://cdn.example.com/same.png")
        plan = ImagePreloadOrchestrator(fetcher).plan(items)
        assert plan.total == 1

    def test_urls_carry_size_parameters(self, fetcher):
        plan = ImagePreloadOrchestrator(fetcher, critical_count=1).plan(
            [ModelView(id="m", title="Volvo XC90", image_refs=ImageRefs(primary="https://cdn.example.com/xc90.jpg"))]
        )
        assert plan.critical == ["https://cdn.example.com/xc90.jpg?w=400&h=300&q=90&f=webp&fit=cover&auto=format%2Ccompress"]


# ── Scheduling ───────────────────────────────────────────────────────────

class SlowFetcher:
    """Fetcher whose downloads never finish until released."""

    def __init__(self):
        self.release = asyncio.Event()
        self.started = []

    async def preload(self, urls, priority):
        self.started.append(priority)
        await self.release.wait()
        return list(urls)

    def clear_cache(self):
        pass


class PartialFetcher:
    """Fetcher that silently misses some URLs, like an image host returning 404s."""

    def __init__(self, missing):
        self.missing = set(missing)
        self.requested = []

    async def preload(self, urls, priority):
        self.requested.extend(urls)
        return [url for url in urls if url not in self.missing]

    def clear_cache(self):
        pass


@pytest.mark.asyncio
async def test_critical_first_rest_in_batches(fetcher):
    orchestrator = ImagePreloadOrchestrator(fetcher, critical_count=2, high_count=2, batch_size=3, batch_delay=0)
    orchestrator.schedule(_brands(9))
    assert fetcher.calls == []

    await orchestrator.wait()
    assert fetcher.calls[0][1] == "critical"
    assert len(fetcher.calls[0][0]) == 2
    batch_sizes = [len(urls) for urls, _ in fetcher.calls[1:]]
    assert batch_sizes == [3, 3, 1]
    assert fetcher.calls[1][1] == "high"
    assert len(fetcher.fetched) == 9


@pytest.mark.asyncio
async def test_schedule_does_not_wait_for_downloads():
    fetcher = SlowFetcher()
    orchestrator = ImagePreloadOrchestrator(fetcher, critical_count=2, batch_delay=0)
    plan = orchestrator.schedule(_brands(4))
    assert len(plan.critical) == 2

    await asyncio.sleep(0)
    assert fetcher.started == ["critical"]
    assert orchestrator.preloaded == set()

    fetcher.release.set()
    await orchestrator.wait()
    assert len(orchestrator.preloaded) == 4


@pytest.mark.asyncio
async def test_already_preloaded_urls_are_skipped(fetcher):
    orchestrator = ImagePreloadOrchestrator(fetcher, critical_count=2, high_count=0, batch_delay=0)
    items = _brands(4)
    orchestrator.schedule(items)
    await orchestrator.wait()
    calls = len(fetcher.calls)

    orchestrator.schedule(items)
    await orchestrator.wait()
    assert len(fetcher.calls) == calls


@pytest.mark.asyncio
async def test_missed_images_are_retried():
    items = _brands(3)
    missing = ImagePreloadOrchestrator(None, critical_count=3).plan(items).critical[1]
    partial = PartialFetcher([missing])
    orchestrator = ImagePreloadOrchestrator(partial, critical_count=3, batch_delay=0)

    orchestrator.schedule(items)
    await orchestrator.wait()
    assert missing not in orchestrator.preloaded
    assert len(orchestrator.preloaded) == 2

    partial.missing.clear()
    orchestrator.schedule(items)
    await orchestrator.wait()
    assert partial.requested.count(missing) == 2
    assert missing in orchestrator.preloaded


@pytest.mark.asyncio
async def test_failures_are_not_raised(fetcher):
    orchestrator = ImagePreloadOrchestrator(fetcher, critical_count=1)
    plan = orchestrator.plan(_brands(1))
    fetcher.fail_on = set(plan.critical)

    orchestrator.schedule(_brands(1))
    await orchestrator.wait()
    assert orchestrator.preloaded == set()


@pytest.mark.asyncio
async def test_teardown_cancels_queue_and_clears_cache(fetcher):
    orchestrator = ImagePreloadOrchestrator(fetcher, critical_count=1, high_count=0, batch_size=1, batch_delay=10)
    orchestrator.schedule(_brands(5))
    await asyncio.sleep(0)
    assert orchestrator.pending

    await orchestrator.teardown()
    assert orchestrator.pending == []
    assert orchestrator.preloaded == set()
    assert fetcher.cleared == 1
    fetched = len(fetcher.fetched)
    await asyncio.sleep(0)
    assert len(fetcher.fetched) == fetched


# ── HTTP image cache ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_http_image_cache_is_bounded():
    requests = []

    def handler(request):
        requests.append(str(request.url))
        if request.url.path == "/missing.png":
            return httpx.Response(404)
        return httpx.Response(200, content=b"img:" + request.url.path.encode())

    cache = HttpImageCache(max_entries=2, transport=httpx.MockTransport(handler))
    await cache.preload([
        "https://cdn.example.com/a.png",
        "https://cdn.example.com/b.png",
        "https://cdn.example.com/missing.png",
        "https://cdn.example.com/c.png",
    ], "critical")

    assert len(cache) == 2
    assert "https://cdn.example.com/a.png" not in cache
    assert cache.get("https://cdn.example.com/c.png") == b"img:/c.png"
    assert "https://cdn.example.com/missing.png" in cache.failures

    await cache.preload(["https://cdn.example.com/c.png"], "lazy")
    assert len(requests) == 4

    cache.clear_cache()
    assert len(cache) == 0
    await cache.aclose()


@pytest.mark.asyncio
async def test_http_image_cache_reports_what_arrived():
    def handler(request):
        if request.url.path == "/missing.png":
            return httpx.Response(404)
        return httpx.Response(200, content=b"img")

    cache = HttpImageCache(transport=httpx.MockTransport(handler))
    bad = "https://cdn.example.com/\x00.png"
    loaded = await cache.preload([
        "https://cdn.example.com/a.png",
        bad,
        "https://cdn.example.com/missing.png",
        "https://cdn.example.com/b.png",
    ], "high")

    assert loaded == ["https://cdn.example.com/a.png", "https://cdn.example.com/b.png"]
    assert bad in cache.failures
    await cache.aclose()

"""Pytest configuration and shared fixtures for catalog tests."""

import json

import pytest

from carcatalog.core.config import CatalogConfig
from carcatalog.data.remote_query import RemoteQuery
from carcatalog.data.snapshot_store import SnapshotStore


# ---------------------------------------------------------------------------
# Raw records as the remote API returns them
# ---------------------------------------------------------------------------

@pytest.fixture
def raw_brands():
    return [
        {"id": "b1", "merke_id": "10", "title": "Audi", "country": "Germany", "brandimage": "https://cdn.example.com/audi.png"},
        {"id": "b2", "merke_id": "11", "title": "BMW", "country": "Germany", "brandimage": "https://cdn.example.com/bmw.png"},
        {"id": "b3", "merke_id": "12", "title": "Alfa Romeo", "country": "Italy", "brandimage": "//cdn.example.com/alfa.png"},
        {"id": "b4", "merke_id": "13", "title": "Tesla", "country": "USA", "brandimage": "wix:image://v1/abc123~mv2.png/tesla.png"},
        {"id": "b5", "merke_id": "14", "title": "Lada", "brandimage": None},
    ]


@pytest.fixture
def raw_models():
    return [
        {
            "ID": "m1", "C_merke": "Volvo", "C_modell": "XC90",
            "MINI_AR": "2002", "MAX_YEAR": "2024",
            "BRANSLE_SAMLAD": "Diesel, Petrol,Hybrid", "kaross_samlad": "SUV", "HJUL_DRIFT_SAMLAD": "AWD",
            "minSeats": "5", "maxSeats": "7", "t_count": 1200,
            "Car Image": "https://cdn.example.com/xc90-small.jpg", "high_res": "https://cdn.example.com/xc90.jpg",
        },
        {
            "ID": "m2", "C_merke": "Volvo", "C_modell": "V70",
            "MINI_AR": 1996, "MAX_YEAR": 2016,
            "BRANSLE_SAMLAD": "Diesel,Petrol", "kaross_samlad": "Wagon", "HJUL_DRIFT_SAMLAD": "FWD,AWD",
            "minSeats": 5, "maxSeats": 5, "t_count": "800",
            "Car Image": "https://cdn.example.com/v70-small.jpg", "high_res": "https://cdn.example.com/v70.jpg",
        },
        {
            "ID": "m3", "C_merke": "Volvo", "C_modell": "EX30",
            "MINI_AR": 2023, "MAX_YEAR": 2024,
            "BRANSLE_SAMLAD": "Electric", "kaross_samlad": "SUV", "HJUL_DRIFT_SAMLAD": "RWD",
            "minSeats": 5, "maxSeats": 5, "t_count": 40,
            "Car Image": "", "high_res": None,
        },
    ]


def make_titled_brands(count, prefix="Brand"):
    """`count` brand records with distinct, sortable titles."""
    return [
        {"id": f"b{i:03d}", "title": f"{prefix} {i:03d}", "brandimage": f"https://cdn.example.com/{i}.png"}
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class FakeQueryFn:
    """Async query function returning canned responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class FakeFetcher:
    """Image fetcher that records what it was asked to preload."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.cleared = 0
        self.fail_on = set(fail_on or [])

    async def preload(self, urls, priority):
        self.calls.append((list(urls), priority))
        if self.fail_on.intersection(urls):
            raise RuntimeError("image host unreachable")
        return list(urls)

    def clear_cache(self):
        self.cleared += 1

    @property
    def fetched(self):
        return [url for urls, _ in self.calls for url in urls]


@pytest.fixture
def fake_query_fn():
    return FakeQueryFn


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def remote_query(raw_brands):
    return RemoteQuery(FakeQueryFn(raw_brands), key="brands")


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

@pytest.fixture
def snapshot_dir(tmp_path, raw_brands):
    """Snapshot directory holding a brand list and one brand's models."""
    content = tmp_path / "content"
    content.mkdir()
    (content / "car-brands.json").write_text(json.dumps(raw_brands), encoding="utf-8")
    (content / "brand-volvo.json").write_text(json.dumps({
        "brand": {"title": "Volvo", "slug": "volvo"},
        "models": [
            {
                "id": "s1", "c_merke": "Volvo", "c_modell": "XC60",
                "minYear": 2008, "maxYear": 2024, "registeredCars": 900,
                "imageUrl": "https://cdn.example.com/xc60-small.jpg",
                "fuelTypes": ["Diesel", "Hybrid"], "bodyTypes": ["SUV"], "engineTypes": ["AWD"],
                "seats": "5-5",
                "originalData": {"high_res": "https://cdn.example.com/xc60.jpg"},
            },
        ],
    }), encoding="utf-8")
    return content


@pytest.fixture
def dev_snapshots(snapshot_dir):
    return SnapshotStore(snapshot_dir=snapshot_dir)


@pytest.fixture
def prod_snapshots(snapshot_dir):
    return SnapshotStore(snapshot_dir=snapshot_dir, production_build=True)


@pytest.fixture
def config(tmp_path):
    return CatalogConfig(
        api_base_url="http://catalog.test/api",
        snapshot_dir=str(tmp_path / "missing"),
        advance_delay=0.0,
        preload_batch_delay=0.0,
    )

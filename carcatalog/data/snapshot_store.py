"""
Static snapshot access layer.

Reads the JSON files written by the snapshot build step and returns records
shaped like the remote API payloads expected by the normalizer.

Layout of the snapshot directory:
    car-brands.json         list of brand entries
    brand-<slug>.json       {"brand": {...}, "models": [...]}
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from carcatalog.core.config import CatalogConfig
from carcatalog.data.routes import CatalogRoute, parse_route
from carcatalog.pipeline.view_models import RawRecord, RecordKind
from carcatalog.utils.logger import get_logger

logger = get_logger("data.snapshot_store")

BRANDS_FILE = "car-brands.json"


def _project_root() -> Path:
    """Return project root (parent of carcatalog package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_SNAPSHOT_DIR = _project_root() / ".ssg-cache" / "content"


class SnapshotStoreError(RuntimeError):
    """Raised when a snapshot file exists but cannot be read as records."""


def _join(values: Any) -> str:
    if isinstance(values, (list, tuple)):
        return ",".join(str(value) for value in values if value is not None)
    return values if isinstance(values, str) else ""


def _split_seats(seats: Any) -> List[str]:
    parts = str(seats or "").split("-")
    low = parts[0].strip() if parts else ""
    high = parts[1].strip() if len(parts) > 1 and parts[1].strip() else low
    return [low or "0", high or "0"]


def snapshot_brand_to_record(entry: Dict[str, Any]) -> RawRecord:
    """Adapt a snapshot brand entry to the API brand shape."""
    original = entry.get("originalData") or {}
    return {
        "id": entry.get("id"),
        "merke_id": entry.get("merke_id"),
        "title": entry.get("title"),
        "slug": entry.get("slug"),
        "brandimage": entry.get("brandimage"),
        "bannerimage": entry.get("bannerimage"),
        "country_code": entry.get("country_code"),
        "country": entry.get("country") or original.get("country"),
        "flags": entry.get("flags"),
    }


def snapshot_model_to_record(entry: Dict[str, Any]) -> RawRecord:
    """Adapt a snapshot model entry to the API model shape."""
    if "C_merke" in entry:
        # Already in API shape
        return dict(entry)

    original = entry.get("originalData") or {}
    min_seats, max_seats = _split_seats(entry.get("seats"))
    return {
        "ID": entry.get("id"),
        "C_merke": entry.get("c_merke"),
        "C_modell": entry.get("c_modell"),
        "MINI_AR": entry.get("minYear"),
        "MAX_YEAR": entry.get("maxYear"),
        "t_count": entry.get("registeredCars"),
        "Car Image": entry.get("imageUrl"),
        "high_res": original.get("high_res") or entry.get("imageUrl"),
        "BRANSLE_SAMLAD": _join(entry.get("fuelTypes")),
        "kaross_samlad": _join(entry.get("bodyTypes")),
        "HJUL_DRIFT_SAMLAD": _join(entry.get("engineTypes")),
        "minSeats": min_seats,
        "maxSeats": max_seats,
    }


@dataclass
class SnapshotStore:
    """
    Synchronous, read-only access to build-time snapshot files.

    Args:
        snapshot_dir: Directory holding the snapshot JSON files.
        production_build: A present snapshot is authoritative in production builds.
        ssg_test_override: Treat present snapshots as authoritative outside production.
    """

    snapshot_dir: Optional[Union[str, Path]] = None
    production_build: bool = False
    ssg_test_override: bool = False

    def __post_init__(self) -> None:
        self.snapshot_dir = Path(self.snapshot_dir) if self.snapshot_dir else DEFAULT_SNAPSHOT_DIR

    @classmethod
    def from_config(cls, config: CatalogConfig) -> "SnapshotStore":
        snapshot_dir = Path(config.snapshot_dir)
        if not snapshot_dir.is_absolute():
            snapshot_dir = _project_root() / snapshot_dir
        return cls(
            snapshot_dir=snapshot_dir,
            production_build=config.is_production_build,
            ssg_test_override=config.ssg_test_override,
        )

    # ------------------------------------------------------------------ #
    # Public interface
    # ------------------------------------------------------------------ #

    def file_for(self, route: Union[str, CatalogRoute]) -> Path:
        route = parse_route(route) if isinstance(route, str) else route
        if route.kind == RecordKind.BRAND:
            return self.snapshot_dir / BRANDS_FILE
        return self.snapshot_dir / f"brand-{route.brand_slug}.json"

    def is_snapshot_present(self, route: Union[str, CatalogRoute]) -> bool:
        return self.file_for(route).is_file()

    def is_snapshot_authoritative(self, route: Union[str, CatalogRoute]) -> bool:
        if not self.is_snapshot_present(route):
            return False
        return self.production_build or self.ssg_test_override

    def read_snapshot(self, route: Union[str, CatalogRoute]) -> List[RawRecord]:
        """
        Read the records for `route`.

        Returns:
            Raw records in API shape; [] when no snapshot file exists.

        Raises:
            SnapshotStoreError: when the file cannot be decoded as UTF-8 JSON or has the wrong shape.
        """
        route = parse_route(route) if isinstance(route, str) else route
        path = self.file_for(route)
        if not path.is_file():
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as exc:
            raise SnapshotStoreError(f"Failed to read snapshot {path}: {exc}") from exc

        if route.kind == RecordKind.BRAND:
            entries = document
            adapt = snapshot_brand_to_record
        else:
            entries = document.get("models") if isinstance(document, dict) else document
            adapt = snapshot_model_to_record

        if not isinstance(entries, list):
            raise SnapshotStoreError(f"Snapshot {path} does not contain a record list")

        records = [adapt(entry) for entry in entries if isinstance(entry, dict)]
        logger.info("Snapshot %s returned %d records", path.name, len(records))
        return records

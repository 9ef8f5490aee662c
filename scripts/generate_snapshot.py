#!/usr/bin/env python3
"""
Snapshot Generation Script
==========================
Queries the catalog API and writes the static snapshot served by the web
build:

  <out>/car-brands.json        list of brand entries
  <out>/brand-<slug>.json      {"brand": {...}, "models": [...]}

Usage:
  python scripts/generate_snapshot.py                    # all brands, config defaults
  python scripts/generate_snapshot.py --out build/ssg    # custom output directory
  python scripts/generate_snapshot.py --brand volvo      # only one brand's models
  python scripts/generate_snapshot.py --dry-run          # fetch and report, write nothing
"""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from carcatalog.core.config import CatalogConfig
from carcatalog.data.api_client import CatalogApiClient, CatalogApiError
from carcatalog.data.routes import is_valid_slug, slugify
from carcatalog.data.snapshot_store import BRANDS_FILE
from carcatalog.pipeline.normalizer import parse_int, split_joined
from carcatalog.utils.logger import get_logger

logger = get_logger("scripts.generate_snapshot")


def brand_entry(raw: Dict[str, Any]) -> Dict[str, Any]:
    title = str(raw.get("title") or "").strip()
    return {
        "id": raw.get("id"),
        "merke_id": raw.get("merke_id"),
        "title": title,
        "slug": slugify(title),
        "brandimage": raw.get("brandimage"),
        "bannerimage": raw.get("bannerimage"),
        "country_code": raw.get("country_code"),
        "country": raw.get("country"),
        "flags": raw.get("flags"),
    }


def model_entry(raw: Dict[str, Any]) -> Dict[str, Any]:
    min_seats = parse_int(raw.get("minSeats"))
    max_seats = parse_int(raw.get("maxSeats"))
    return {
        "id": raw.get("ID"),
        "c_merke": raw.get("C_merke"),
        "c_modell": raw.get("C_modell"),
        "minYear": parse_int(raw.get("MINI_AR")),
        "maxYear": parse_int(raw.get("MAX_YEAR")),
        "registeredCars": parse_int(raw.get("t_count")),
        "imageUrl": raw.get("Car Image"),
        "fuelTypes": list(split_joined(raw.get("BRANSLE_SAMLAD"))),
        "bodyTypes": list(split_joined(raw.get("kaross_samlad"))),
        "engineTypes": list(split_joined(raw.get("HJUL_DRIFT_SAMLAD"))),
        "seats": f"{min_seats}-{max_seats}",
        "originalData": {"high_res": raw.get("high_res")},
    }


def write_json(path: Path, document: Any) -> None:
    tmp = path.with_suffix(".json.tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(document, f, ensure_ascii=False, indent=2)
    tmp.replace(path)


async def generate(
    client: CatalogApiClient,
    out_dir: Path,
    only_brand: Optional[str] = None,
    dry_run: bool = False,
) -> Dict[str, int]:
    """Fetch brands and models and write the snapshot files. Returns per-file record counts."""
    counts: Dict[str, int] = {}
    brands: List[Dict[str, Any]] = [brand_entry(raw) for raw in await client.get_brands() if isinstance(raw, dict)]
    brands = [brand for brand in brands if brand["slug"]]
    counts[BRANDS_FILE] = len(brands)

    if not dry_run:
        out_dir.mkdir(parents=True, exist_ok=True)
        write_json(out_dir / BRANDS_FILE, brands)

    for brand in brands:
        if only_brand and brand["slug"] != slugify(only_brand):
            continue
        if not is_valid_slug(brand["slug"]):
            logger.warning(f"[SKIP] {brand['title']}: slug {brand['slug']!r} is not a valid route")
            continue
        filename = f"brand-{brand['slug']}.json"
        try:
            raw_models = await client.get_models(brand["title"])
        except CatalogApiError as e:
            logger.error(f"[FAIL] {brand['title']}: {e}")
            continue
        models = [model_entry(raw) for raw in raw_models if isinstance(raw, dict)]
        counts[filename] = len(models)
        if not dry_run:
            write_json(out_dir / filename, {"brand": brand, "models": models})
        logger.info(f"[OK] {filename}: {len(models)} models")

    return counts


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate the static catalog snapshot")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--out", type=Path, default=None, help="Output directory (default: config snapshot dir)")
    parser.add_argument("--brand", default=None, help="Only write this brand's model file")
    parser.add_argument("--dry-run", action="store_true", help="Fetch and report without writing")
    args = parser.parse_args(argv)

    config = CatalogConfig.from_yaml(args.config)
    out_dir = args.out or Path(config.snapshot_dir)

    async def run() -> Dict[str, int]:
        client = CatalogApiClient.from_config(config)
        try:
            return await generate(client, out_dir, args.brand, args.dry_run)
        finally:
            await client.aclose()

    start = time.time()
    try:
        counts = asyncio.run(run())
    except CatalogApiError as e:
        logger.error(f"Snapshot generation failed: {e}")
        return 1

    logger.info(f"Snapshot complete: {len(counts)} files, {sum(counts.values())} records ({time.time() - start:.2f}s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())

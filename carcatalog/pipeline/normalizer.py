"""
Record normalizer.

Converts raw brand/model records (API or snapshot shape) into total, typed
view models. All malformed-input handling lives here; downstream stages
assume well-formed view models.

Input is processed in fixed-size chunks to bound the work done per event
loop turn. Chunking never changes the output.
"""
from __future__ import annotations

import asyncio
import math
import re
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from carcatalog.pipeline.view_models import (
    UNKNOWN_COUNTRY,
    BrandView,
    CategoricalSets,
    ImageRefs,
    ModelView,
    RawRecord,
    RecordKind,
    SeatRange,
    ViewModel,
    YearRange,
)
from carcatalog.utils.images import resolve_image_url
from carcatalog.utils.logger import get_logger

logger = get_logger("pipeline.normalizer")

DEFAULT_CHUNK_SIZE = 20

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def iter_chunks(items: Sequence[Any], chunk_size: int) -> Iterator[Tuple[int, Sequence[Any]]]:
    """Yield (start_index, chunk) pairs over `items`."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    for start in range(0, len(items), chunk_size):
        yield start, items[start:start + chunk_size]


def parse_int(value: Any) -> int:
    """
    Parse an integer defensively.

    Accepts ints, finite floats (truncated) and strings with a leading
    integer ("2012", " 7 ", "2012-06"). Everything else yields 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return 0


def split_joined(value: Any) -> Tuple[str, ...]:
    """Split a comma-joined categorical string into trimmed, non-empty entries."""
    if isinstance(value, (list, tuple)):
        parts = [str(part) for part in value if part is not None]
    elif isinstance(value, str):
        parts = value.split(",")
    else:
        return ()
    return tuple(part.strip() for part in parts if part.strip())


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _record_id(raw: RawRecord, keys: Sequence[str], kind: RecordKind, position: int) -> str:
    for key in keys:
        value = _text(raw.get(key))
        if value:
            return value
    return f"{kind.value}-{position}"


def normalize_brand(raw: RawRecord, position: int, image_base_url: Optional[str] = None) -> BrandView:
    """Normalize one raw brand record."""
    return BrandView(
        id=_record_id(raw, ("id", "ID"), RecordKind.BRAND, position),
        title=_text(raw.get("title")),
        image_refs=ImageRefs(
            primary=resolve_image_url(raw.get("brandimage"), image_base_url),
        ),
        country=_text(raw.get("country")) or UNKNOWN_COUNTRY,
        brand_id=_text(raw.get("merke_id")),
        slug=_text(raw.get("slug")),
        country_code=_text(raw.get("country_code")),
        country_flag=resolve_image_url(raw.get("flags"), image_base_url),
    )


def normalize_model(
    raw: RawRecord,
    position: int,
    prefer_high_res: bool = True,
    image_base_url: Optional[str] = None,
) -> ModelView:
    """Normalize one raw model record."""
    brand_name = _text(raw.get("C_merke"))
    model_name = _text(raw.get("C_modell"))
    low_res = resolve_image_url(raw.get("Car Image"), image_base_url)
    primary = resolve_image_url(raw.get("high_res"), image_base_url) if prefer_high_res else low_res

    return ModelView(
        id=_record_id(raw, ("ID", "id"), RecordKind.MODEL, position),
        title=f"{brand_name} {model_name}".strip(),
        categorical_sets=CategoricalSets(
            fuel_types=split_joined(raw.get("BRANSLE_SAMLAD")),
            body_types=split_joined(raw.get("kaross_samlad")),
            drive_types=split_joined(raw.get("HJUL_DRIFT_SAMLAD")),
        ),
        year_range=YearRange(min=parse_int(raw.get("MINI_AR")), max=parse_int(raw.get("MAX_YEAR"))),
        seat_range=SeatRange(min=parse_int(raw.get("minSeats")), max=parse_int(raw.get("maxSeats"))),
        image_refs=ImageRefs(primary=primary, low_res=low_res),
        country=_text(raw.get("country")) or UNKNOWN_COUNTRY,
        brand_name=brand_name,
        model_name=model_name,
        registered_count=parse_int(raw.get("t_count")),
    )


def normalize_record(
    raw: Any,
    kind: RecordKind,
    position: int,
    prefer_high_res: bool = True,
    image_base_url: Optional[str] = None,
) -> Optional[ViewModel]:
    """Normalize a single record; returns None for entries that are not mappings."""
    if not isinstance(raw, dict):
        return None
    if kind == RecordKind.BRAND:
        return normalize_brand(raw, position, image_base_url)
    return normalize_model(raw, position, prefer_high_res, image_base_url)


def _normalize_chunk(
    chunk: Sequence[Any],
    start: int,
    kind: RecordKind,
    prefer_high_res: bool,
    image_base_url: Optional[str],
    out: List[ViewModel],
) -> None:
    for offset, raw in enumerate(chunk):
        view = normalize_record(raw, kind, start + offset, prefer_high_res, image_base_url)
        if view is not None:
            out.append(view)


def normalize(
    raw: Optional[Sequence[Any]],
    kind: RecordKind,
    *,
    prefer_high_res: bool = True,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    image_base_url: Optional[str] = None,
) -> List[ViewModel]:
    """
    Normalize a raw record list into view models.

    Args:
        raw: Raw records; None and non-mapping entries are skipped.
        kind: Brand or model record shape.
        prefer_high_res: Use the high resolution model image as primary (desktop web).
        chunk_size: Records processed per chunk.
        image_base_url: Base for relative image paths.

    Returns:
        View models in input order.
    """
    if not raw or not isinstance(raw, (list, tuple)):
        return []
    out: List[ViewModel] = []
    for start, chunk in iter_chunks(raw, chunk_size):
        _normalize_chunk(chunk, start, kind, prefer_high_res, image_base_url, out)
    skipped = len(raw) - len(out)
    if skipped:
        logger.debug("Skipped %d non-record entries during normalization", skipped)
    return out


async def normalize_async(
    raw: Optional[Sequence[Any]],
    kind: RecordKind,
    *,
    prefer_high_res: bool = True,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    image_base_url: Optional[str] = None,
) -> List[ViewModel]:
    """Same as `normalize`, yielding to the event loop between chunks."""
    if not raw or not isinstance(raw, (list, tuple)):
        return []
    out: List[ViewModel] = []
    for start, chunk in iter_chunks(raw, chunk_size):
        if start:
            await asyncio.sleep(0)
        _normalize_chunk(chunk, start, kind, prefer_high_res, image_base_url, out)
    return out

"""
Filter engine.

Applies free-text and categorical predicates to normalized view models.
All predicates are case-insensitive and ANDed. With no active predicate the
input list is returned as-is (same object, no scan).
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from carcatalog.pipeline.grouping import collation_key
from carcatalog.pipeline.normalizer import DEFAULT_CHUNK_SIZE, iter_chunks, parse_int
from carcatalog.pipeline.view_models import UNKNOWN_COUNTRY, ViewModel
from carcatalog.utils.logger import get_logger

logger = get_logger("pipeline.filters")

ALL = "all"
FIRST_MODEL_YEAR = 1920


def default_year_range() -> Tuple[int, int]:
    """Full year span offered by the year slider; selecting it means "no year filter"."""
    return (FIRST_MODEL_YEAR, date.today().year)


def _category_value(value: Optional[str]) -> Optional[str]:
    """Return the upper-cased predicate value, or None when inactive."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == ALL:
        return None
    return text.upper()


@dataclass(frozen=True)
class FilterQuery:
    """Filter parameters; every field is optional."""
    text: Optional[str] = None
    fuel_type: Optional[str] = None
    body_type: Optional[str] = None
    drive_type: Optional[str] = None
    country: Optional[str] = None
    seat_count: Optional[int] = None
    year_range: Optional[Tuple[int, int]] = None

    @property
    def search_text(self) -> str:
        return (self.text or "").strip().lower()

    @property
    def has_year_filter(self) -> bool:
        if self.year_range is None:
            return False
        return tuple(self.year_range) != default_year_range()

    @property
    def has_seat_filter(self) -> bool:
        return self.seat_count is not None and self.seat_count > 0

    @property
    def is_active(self) -> bool:
        """True when at least one predicate would exclude records."""
        return bool(
            self.search_text
            or _category_value(self.fuel_type)
            or _category_value(self.body_type)
            or _category_value(self.drive_type)
            or _category_value(self.country)
            or self.has_seat_filter
            or self.has_year_filter
        )

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "FilterQuery":
        """
        Build a query from loosely typed input (form values, query params).

        Accepts "seats"/"chassis"/"search" aliases, string seat counts and
        two-element year lists. Unparsable values leave the predicate off.
        """
        if not data:
            return cls()

        seats = data.get("seat_count", data.get("seats"))
        seat_count = parse_int(seats) if seats not in (None, "") else None

        year_range = data.get("year_range")
        parsed_years: Optional[Tuple[int, int]] = None
        if isinstance(year_range, (list, tuple)) and len(year_range) == 2:
            low, high = parse_int(year_range[0]), parse_int(year_range[1])
            parsed_years = (min(low, high), max(low, high))

        return cls(
            text=data.get("text", data.get("search")),
            fuel_type=data.get("fuel_type"),
            body_type=data.get("body_type", data.get("chassis")),
            drive_type=data.get("drive_type"),
            country=data.get("country"),
            seat_count=seat_count or None,
            year_range=parsed_years,
        )


@dataclass(frozen=True)
class _CompiledQuery:
    text: str
    fuel_type: Optional[str]
    body_type: Optional[str]
    drive_type: Optional[str]
    country: Optional[str]
    seat_count: Optional[int]
    year_range: Optional[Tuple[int, int]]


def _compile(query: FilterQuery) -> _CompiledQuery:
    return _CompiledQuery(
        text=query.search_text,
        fuel_type=_category_value(query.fuel_type),
        body_type=_category_value(query.body_type),
        drive_type=_category_value(query.drive_type),
        country=_category_value(query.country),
        seat_count=query.seat_count if query.has_seat_filter else None,
        year_range=tuple(query.year_range) if query.has_year_filter else None,
    )


def _contains(values: Sequence[str], wanted: str) -> bool:
    for value in values:
        if value.upper() == wanted:
            return True
    return False


def matches(record: ViewModel, compiled: _CompiledQuery) -> bool:
    """Apply every active predicate to one record."""
    if compiled.text and compiled.text not in record.title.lower():
        return False

    if compiled.year_range is not None:
        year_min, year_max = compiled.year_range
        # Overlap, not containment
        if record.year_range.max < year_min or record.year_range.min > year_max:
            return False

    sets = record.categorical_sets
    if compiled.fuel_type and not _contains(sets.fuel_types, compiled.fuel_type):
        return False
    if compiled.body_type and not _contains(sets.body_types, compiled.body_type):
        return False
    if compiled.drive_type and not _contains(sets.drive_types, compiled.drive_type):
        return False

    if compiled.country and record.country.upper() != compiled.country:
        return False

    if compiled.seat_count is not None:
        if compiled.seat_count < record.seat_range.min or compiled.seat_count > record.seat_range.max:
            return False

    return True


def filter_records(
    records: List[ViewModel],
    query: Optional[FilterQuery],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> List[ViewModel]:
    """
    Filter view models by `query`.

    Returns the `records` object itself when no predicate is active.
    """
    if query is None or not query.is_active:
        return records

    compiled = _compile(query)
    filtered: List[ViewModel] = []
    for _, chunk in iter_chunks(records, chunk_size):
        filtered.extend(record for record in chunk if matches(record, compiled))

    logger.debug("Filter kept %d of %d records", len(filtered), len(records))
    return filtered


async def filter_records_async(
    records: List[ViewModel],
    query: Optional[FilterQuery],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> List[ViewModel]:
    """Same as `filter_records`, yielding to the event loop between chunks."""
    if query is None or not query.is_active:
        return records

    compiled = _compile(query)
    filtered: List[ViewModel] = []
    for start, chunk in iter_chunks(records, chunk_size):
        if start:
            await asyncio.sleep(0)
        filtered.extend(record for record in chunk if matches(record, compiled))
    return filtered


def describe_empty_result(query: Optional[FilterQuery]) -> str:
    """Return "no_results" when a filter is active, "no_data" otherwise."""
    if query is not None and query.is_active:
        return "no_results"
    return "no_data"


def filter_options(records: Sequence[ViewModel]) -> Dict[str, List[str]]:
    """Distinct values for the filter dropdowns, sorted for display."""
    countries = set()
    fuel_types = set()
    body_types = set()
    drive_types = set()
    for record in records:
        if record.country and record.country != UNKNOWN_COUNTRY:
            countries.add(record.country)
        fuel_types.update(record.categorical_sets.fuel_types)
        body_types.update(record.categorical_sets.body_types)
        drive_types.update(record.categorical_sets.drive_types)

    return {
        "countries": sorted(countries, key=collation_key),
        "fuel_types": sorted(fuel_types, key=collation_key),
        "body_types": sorted(body_types, key=collation_key),
        "drive_types": sorted(drive_types, key=collation_key),
    }

"""
Sort/group engine.

Orders the filtered set and optionally partitions it into labeled sections
(first letter of the title, or country of origin).
"""
from collections import defaultdict
from enum import Enum
from typing import Dict, List, Sequence, Tuple, Union
import unicodedata

from carcatalog.pipeline.view_models import UNKNOWN_COUNTRY, Group, ViewModel
from carcatalog.utils.logger import get_logger

logger = get_logger("pipeline.grouping")

NO_LETTER_LABEL = "#"


class OrderBy(str, Enum):
    NAME = "name"
    COUNTRY = "country"


def collation_key(text: str) -> Tuple[str, str, str]:
    """
    Locale-aware sort key.

    Primary level ignores accents and case ("Škoda" sorts with "Skoda"),
    secondary level keeps accents, the raw string breaks remaining ties so
    the order is total and reproducible.
    """
    text = text or ""
    decomposed = unicodedata.normalize("NFD", text)
    primary = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn").casefold()
    return (primary, text.casefold(), text)


def group_label(record: ViewModel, order_by: OrderBy) -> str:
    """Section label a record belongs to."""
    if order_by == OrderBy.COUNTRY:
        return record.country or UNKNOWN_COUNTRY
    title = record.title.strip()
    if not title:
        return NO_LETTER_LABEL
    return title[0].upper()


def _sort_key(order_by: OrderBy):
    if order_by == OrderBy.COUNTRY:
        return lambda record: (collation_key(record.country or UNKNOWN_COUNTRY), collation_key(record.title))
    return lambda record: collation_key(record.title)


def sort_records(records: Sequence[ViewModel], order_by: OrderBy) -> List[ViewModel]:
    """Return a new list sorted by the requested key (stable)."""
    return sorted(records, key=_sort_key(order_by))


def sort_and_group(
    records: Sequence[ViewModel],
    order_by: Union[OrderBy, str] = OrderBy.NAME,
    *,
    grouped: bool = True,
) -> List[Group]:
    """
    Sort records and partition them into labeled groups.

    Args:
        records: Filtered view models.
        order_by: "name" (first letter sections) or "country".
        grouped: When False, a single group with an empty label holds the
            whole sorted set.

    Returns:
        Groups ordered by label, items ordered by title within each group.
    """
    order_by = OrderBy(order_by)
    ordered = sort_records(records, order_by)

    if not grouped:
        return [Group(label="", items=ordered)]

    sections: Dict[str, List[ViewModel]] = defaultdict(list)
    for record in ordered:
        sections[group_label(record, order_by)].append(record)

    groups = [
        Group(label=label, items=sections[label])
        for label in sorted(sections, key=collation_key)
    ]
    logger.debug("Grouped %d records into %d sections by %s", len(ordered), len(groups), order_by.value)
    return groups


def flatten(groups: Sequence[Group]) -> List[ViewModel]:
    """Concatenate group items in display order."""
    items: List[ViewModel] = []
    for group in groups:
        items.extend(group.items)
    return items

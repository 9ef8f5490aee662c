"""
Typed view models produced by the normalizer.

Every field is total: a missing source value becomes "", 0, () or the
"Unknown" sentinel, so the filter and sort stages never handle None.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

RawRecord = Dict[str, Any]

UNKNOWN_COUNTRY = "Unknown"


class RecordKind(str, Enum):
    """Which record shape a route serves."""
    BRAND = "brand"
    MODEL = "model"


@dataclass(frozen=True)
class CategoricalSets:
    fuel_types: Tuple[str, ...] = ()
    body_types: Tuple[str, ...] = ()
    drive_types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class YearRange:
    min: int = 0
    max: int = 0


@dataclass(frozen=True)
class SeatRange:
    min: int = 0
    max: int = 0


@dataclass(frozen=True)
class ImageRefs:
    primary: str = ""
    low_res: str = ""


@dataclass(frozen=True)
class ViewModel:
    """Fields shared by brand and model records."""
    id: str
    title: str
    categorical_sets: CategoricalSets = field(default_factory=CategoricalSets)
    year_range: YearRange = field(default_factory=YearRange)
    seat_range: SeatRange = field(default_factory=SeatRange)
    image_refs: ImageRefs = field(default_factory=ImageRefs)
    country: str = UNKNOWN_COUNTRY

    @property
    def kind(self) -> RecordKind:
        raise NotImplementedError


@dataclass(frozen=True)
class BrandView(ViewModel):
    brand_id: str = ""          # merke_id
    slug: str = ""
    country_code: str = ""
    country_flag: str = ""

    @property
    def kind(self) -> RecordKind:
        return RecordKind.BRAND


@dataclass(frozen=True)
class ModelView(ViewModel):
    brand_name: str = ""        # C_merke
    model_name: str = ""        # C_modell
    registered_count: int = 0

    @property
    def kind(self) -> RecordKind:
        return RecordKind.MODEL


@dataclass(frozen=True)
class Group:
    """A labeled, ordered section of the sorted result."""
    label: str
    items: List[ViewModel] = field(default_factory=list)


AnyView = Union[BrandView, ModelView]


def view_to_dict(view: ViewModel) -> Dict[str, Any]:
    """Flatten a view model into JSON-friendly primitives."""
    data: Dict[str, Any] = {
        "id": view.id,
        "kind": view.kind.value,
        "title": view.title,
        "fuel_types": list(view.categorical_sets.fuel_types),
        "body_types": list(view.categorical_sets.body_types),
        "drive_types": list(view.categorical_sets.drive_types),
        "year_range": [view.year_range.min, view.year_range.max],
        "seat_range": [view.seat_range.min, view.seat_range.max],
        "image": view.image_refs.primary,
        "image_low_res": view.image_refs.low_res,
        "country": view.country,
    }
    if isinstance(view, BrandView):
        data.update({
            "brand_id": view.brand_id,
            "slug": view.slug,
            "country_code": view.country_code,
            "country_flag": view.country_flag,
        })
    elif isinstance(view, ModelView):
        data.update({
            "brand_name": view.brand_name,
            "model_name": view.model_name,
            "registered_count": view.registered_count,
        })
    return data

"""
Transform pipeline for catalog records.

normalize -> filter -> sort/group -> paginate
"""
from carcatalog.pipeline.normalizer import normalize, normalize_async
from carcatalog.pipeline.filters import FilterQuery, filter_records, filter_records_async
from carcatalog.pipeline.grouping import OrderBy, sort_and_group
from carcatalog.pipeline.pagination import PaginationController

__all__ = [
    "normalize",
    "normalize_async",
    "FilterQuery",
    "filter_records",
    "filter_records_async",
    "OrderBy",
    "sort_and_group",
    "PaginationController",
]

# app/domain/services/paging.py
import math
from typing import Callable, List, Sequence, Tuple, TypeVar

from app.domain.models import ProductRecord

T = TypeVar("T")


def sort_records(
    records: Sequence[ProductRecord],
    sort_by: str,
    direction: str,
    manufacturer_of: Callable[[ProductRecord], str],
) -> List[ProductRecord]:
    """Case-insensitive sort on name | manufacturer | classification_code, id as tie-break."""
    if sort_by == "manufacturer":
        field = lambda r: manufacturer_of(r)
    elif sort_by == "classification_code":
        field = lambda r: r.classification_code
    else:
        field = lambda r: r.name
    return sorted(
        records,
        key=lambda r: ((field(r) or "").casefold(), r.id),
        reverse=(direction == "DESC"),
    )


def paginate(items: Sequence[T], page: int, size: int) -> List[T]:
    start = page * size
    if start >= len(items):
        return []
    return list(items[start:start + size])


def page_meta(total: int, page: int, size: int) -> Tuple[int, bool, bool]:
    """(total_pages, has_next, has_previous)"""
    total_pages = math.ceil(total / size) if size else 0
    return total_pages, page < total_pages - 1, page > 0

# app/domain/services/dedup.py
import datetime as dt
from typing import Dict, Iterable, List, Tuple

from app.domain.models import ProductRecord

# absent valid_from sorts below every real date
_OLDEST = dt.date.min


def dedup_key(rec: ProductRecord) -> str:
    return f"{rec.name or ''}|{rec.strength_text or ''}"


def _recency(rec: ProductRecord) -> Tuple[int, dt.date]:
    if rec.valid_from is None:
        return (0, _OLDEST)
    return (1, rec.valid_from)


def deduplicate(records: Iterable[ProductRecord]) -> List[ProductRecord]:
    """
    One representative per (name, strength_text): the revision with the latest
    valid_from. Ties keep the first one seen. Group order follows first appearance.
    """
    best: Dict[str, ProductRecord] = {}
    for rec in records:
        key = dedup_key(rec)
        cur = best.get(key)
        if cur is None or _recency(rec) > _recency(cur):
            best[key] = rec
    return list(best.values())

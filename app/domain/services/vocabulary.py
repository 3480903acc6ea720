# app/domain/services/vocabulary.py
import datetime as dt
import os
from collections import Counter
from typing import Iterable, List, Sequence

from app.domain.models import AtcOption, FilterOptions, ProductRecord, ReferenceTables, StrengthRange
from app.domain.rules import CatalogRules, parse_strength

MAX_MANUFACTURERS = int(os.getenv("FILTER_MAX_MANUFACTURERS", "200"))
MAX_ATC_CODES = int(os.getenv("FILTER_MAX_ATC_CODES", "500"))
MAX_BRANDS = int(os.getenv("FILTER_MAX_BRANDS", "200"))
COMMON_STRENGTHS = 10

# ATC code length -> hierarchy level (A, A10, A10B, A10BA, A10BA02)
_ATC_LEVELS = {1: 1, 3: 2, 4: 3, 5: 4, 7: 5}


def atc_level(code: str) -> int:
    n = len(code.strip())
    if n in _ATC_LEVELS:
        return _ATC_LEVELS[n]
    return min(5, max(1, (n + 1) // 2))


def _distinct_sorted(values: Iterable[str], cap: int | None = None) -> List[str]:
    out = sorted({v.strip() for v in values if v and v.strip()}, key=str.casefold)
    return out[:cap] if cap is not None else out


def _strength_range(records: Sequence[ProductRecord]) -> StrengthRange:
    values = [v for v in (parse_strength(r.strength_text) for r in records) if v is not None]
    if not values:
        return StrengthRange()
    units = Counter(r.dose_unit.strip() for r in records if r.dose_unit.strip())
    common = Counter(values).most_common()
    common.sort(key=lambda kv: (-kv[1], kv[0]))
    return StrengthRange(
        min=min(values),
        max=max(values),
        unit=units.most_common(1)[0][0] if units else "",
        common_values=[v for v, _ in common[:COMMON_STRENGTHS]],
    )


def extract_filter_options(
    records: Sequence[ProductRecord],
    refs: ReferenceTables,
    rules: CatalogRules,
) -> FilterOptions:
    """Distinct values for the query builder, read straight from the loaded tables."""
    atc = sorted(
        ((code.strip(), desc) for code, desc in refs.atc_descriptions.items() if code and code.strip()),
        key=lambda kv: kv[0],
    )[:MAX_ATC_CODES]

    return FilterOptions(
        manufacturers=_distinct_sorted(refs.companies.values(), MAX_MANUFACTURERS),
        atc_codes=[AtcOption(code=c, description=d, level=atc_level(c)) for c, d in atc],
        product_forms=_distinct_sorted(r.form for r in records),
        administration_methods=_distinct_sorted(r.administration_method for r in records),
        brands=_distinct_sorted(refs.brands.values(), MAX_BRANDS),
        prescription_types=rules.prescription_type_options(),
        regulatory_codes=rules.regulatory_code_options(),
        strength_range=_strength_range(records),
        total_products=len(records),
        in_stock_count=sum(1 for r in records if r.in_stock),
        generated_at=dt.datetime.now(dt.timezone.utc).isoformat(),
    )

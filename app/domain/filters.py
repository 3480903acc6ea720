# app/domain/filters.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from app.domain.models import FilterCriteria, ProductRecord
from app.domain.ports import ReferenceResolverPort
from app.domain.rules import CatalogRules, parse_strength

log = logging.getLogger("puphax.filter")

Predicate = Callable[[ProductRecord], bool]


@dataclass
class FilterOutcome:
    records: List[ProductRecord]
    ignored_filters: List[str] = field(default_factory=list)


def parse_bound_date(value: Optional[str]) -> Optional[dt.date]:
    """ISO-8601 date or datetime, or the dataset's own yyyy.MM.dd. Raises ValueError."""
    s = (value or "").strip()
    if not s:
        return None
    try:
        return dt.date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    return dt.datetime.strptime(s, "%Y.%m.%d").date()


def _codes(values: Optional[List[str]]) -> frozenset:
    return frozenset(v.strip() for v in values or [] if v and v.strip())


def _names(values: Optional[List[str]]) -> frozenset:
    return frozenset(v.strip().casefold() for v in values or [] if v and v.strip())


class FilterEvaluator:
    """
    AND across criteria, any-of inside a list criterion. Each stage only runs
    when its criterion is set; a stage sees just the survivors of the previous one.
    """

    def __init__(self, resolver: ReferenceResolverPort, rules: CatalogRules, today: Optional[dt.date] = None):
        self.resolver = resolver
        self.rules = rules
        self._today = today

    @property
    def today(self) -> dt.date:
        return self._today or dt.date.today()

    def apply(self, records: Iterable[ProductRecord], criteria: FilterCriteria) -> FilterOutcome:
        ignored: List[str] = []
        stages = self._stages(criteria, ignored)
        out = list(records)
        for name, pred in stages:
            if not out:
                break
            out = [r for r in out if pred(r)]
            log.debug("stage %s -> %d", name, len(out))
        return FilterOutcome(records=out, ignored_filters=ignored)

    def _stages(self, c: FilterCriteria, ignored: List[str]) -> List[Tuple[str, Predicate]]:
        stages: List[Tuple[str, Predicate]] = []

        # 1. classification code
        atc = _codes(c.atc_codes)
        if atc:
            stages.append(("atc_codes", lambda r: r.classification_code.strip() in atc))

        # 2. manufacturer, resolved through the company table
        manus = _names(c.manufacturers)
        if manus:
            stages.append(("manufacturers", lambda r: self.resolver.manufacturer_of(r).casefold() in manus))

        # 3. form + administration method
        forms = _names(c.product_forms)
        if forms:
            stages.append(("product_forms", lambda r: r.form.strip().casefold() in forms))
        methods = _names(c.administration_methods)
        if methods:
            stages.append(("administration_methods", lambda r: r.administration_method.strip().casefold() in methods))

        # 4. regulatory (TTT) code
        ttt = _codes(c.ttt_codes)
        if ttt:
            stages.append(("ttt_codes", lambda r: r.regulatory_code.strip() in ttt))

        # 5-7. derived / direct booleans
        if c.prescription_required is not None:
            want_rx = c.prescription_required
            stages.append(("prescription_required", lambda r: self.rules.is_prescription_required(r) == want_rx))
        if c.reimbursable is not None:
            want_reimb = c.reimbursable
            stages.append(("reimbursable", lambda r: self.rules.is_reimbursable(r) == want_reimb))
        if c.in_stock is not None:
            want_stock = c.in_stock
            stages.append(("in_stock", lambda r: r.in_stock == want_stock))

        # 8. exact prescription code
        rx_types = frozenset(v.upper() for v in _codes(c.prescription_types))
        if rx_types:
            stages.append(("prescription_types", lambda r: r.prescription_code.strip().upper() in rx_types))

        # 9. strength range; unparseable strength never matches
        if c.min_strength is not None or c.max_strength is not None:
            lo, hi = c.min_strength, c.max_strength
            if lo is not None and hi is not None and lo > hi:
                log.info("minStrength %s > maxStrength %s; range matches nothing", lo, hi)

            def _in_range(r: ProductRecord) -> bool:
                value = parse_strength(r.strength_text)
                if value is None:
                    return False
                if lo is not None and value < lo:
                    return False
                if hi is not None and value > hi:
                    return False
                return True

            stages.append(("strength_range", _in_range))

        # 10. strength unit
        units = _names(c.strength_units)
        if units:
            stages.append(("strength_units", lambda r: r.dose_unit.strip().casefold() in units))

        # 11. brand, resolved through the brand table
        brands = _names(c.brands)
        if brands:
            stages.append(("brands", lambda r: (self.resolver.brand_of(r) or "").casefold() in brands))

        # 12. special marker
        if c.special_marker is not None:
            want_special = c.special_marker
            stages.append(("special_marker", lambda r: self.rules.is_special(r) == want_special))

        # 13. laterality
        sides = _codes(c.laterality)
        if sides:
            stages.append(("laterality", lambda r: r.laterality.strip() in sides))

        # 14. validity window
        stages.extend(self._validity_stages(c, ignored))
        return stages

    def _validity_stages(self, c: FilterCriteria, ignored: List[str]) -> List[Tuple[str, Predicate]]:
        if c.currently_valid:
            today = self.today
            return [("currently_valid", lambda r: (r.valid_from is None or r.valid_from <= today)
                     and (r.valid_to is None or r.valid_to >= today))]

        stages: List[Tuple[str, Predicate]] = []
        lower = self._bound(c.valid_from_date, "valid_from_date", ignored)
        if lower is not None:
            # absent valid_from means "since forever", which is before any bound
            stages.append(("valid_from_date", lambda r: r.valid_from is not None and r.valid_from >= lower))
        upper = self._bound(c.valid_to_date, "valid_to_date", ignored)
        if upper is not None:
            # absent valid_to means open-ended, which is after any bound
            stages.append(("valid_to_date", lambda r: r.valid_to is not None and r.valid_to <= upper))
        return stages

    @staticmethod
    def _bound(raw: Optional[str], name: str, ignored: List[str]) -> Optional[dt.date]:
        try:
            return parse_bound_date(raw)
        except ValueError:
            log.warning("ignoring %s=%r: not a date", name, raw)
            ignored.append(name)
            return None

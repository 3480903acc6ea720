# app/application/search_use_case.py
from __future__ import annotations

import datetime as dt
import logging
import time
from typing import List, Optional

from app.application.snapshot import SEARCH_RESULT_LIMIT, SnapshotHolder
from app.domain.filters import FilterEvaluator
from app.domain.models import FilterCriteria, FilterOptions, ProductView, SearchPage
from app.domain.services.dedup import deduplicate
from app.domain.services.paging import page_meta, paginate, sort_records

logger = logging.getLogger("puphax.search")


class SearchCatalogUseCase:
    """
    Query side of the catalog. Every call grabs the current snapshot once and
    works on it only, so a concurrent reload never shows up half-way through.
    Raises CatalogNotInitialized when no snapshot has been published.
    """

    def __init__(self, holder: SnapshotHolder, today: Optional[dt.date] = None):
        self.holder = holder
        self.today = today

    def search_products(self, criteria: FilterCriteria) -> SearchPage:
        t0 = time.perf_counter()
        snap = self.holder.require()
        term = (criteria.search_term or "").strip()

        candidates = snap.candidates(term)
        outcome = FilterEvaluator(snap, snap.rules, today=self.today).apply(candidates, criteria)
        unique = deduplicate(outcome.records)
        ordered = sort_records(unique, criteria.sort_by, criteria.sort_direction, snap.manufacturer_of)
        page_items = paginate(ordered, criteria.page, criteria.size)
        total_pages, has_next, has_prev = page_meta(len(ordered), criteria.page, criteria.size)

        logger.info(
            "search term=%r filters=%d candidates=%d filtered=%d unique=%d page=%d/%d in %.1fms",
            term, criteria.active_filter_count(), len(candidates), len(outcome.records),
            len(ordered), criteria.page, total_pages, (time.perf_counter() - t0) * 1000,
        )
        return SearchPage(
            items=[snap.view(r) for r in page_items],
            total_elements=len(ordered),
            page=criteria.page,
            size=criteria.size,
            total_pages=total_pages,
            has_next=has_next,
            has_previous=has_prev,
            sort_by=criteria.sort_by,
            sort_direction=criteria.sort_direction,
            search_term=term or None,
            ignored_filters=outcome.ignored_filters,
        )

    def quick_search(self, term: str, limit: int = SEARCH_RESULT_LIMIT) -> List[ProductView]:
        snap = self.holder.require()
        hits = snap.search(term, limit=limit)
        logger.info("quick search %r -> %d", term, len(hits))
        return [snap.view(r) for r in hits]

    def get_product(self, product_id: str) -> Optional[ProductView]:
        snap = self.holder.require()
        rec = snap.get(product_id)
        return snap.view(rec) if rec else None

    def filter_options(self) -> FilterOptions:
        return self.holder.require().filter_options

# app/presentation/routers.py
from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError

from app.application.search_use_case import SearchCatalogUseCase
from app.application.snapshot import SnapshotHolder
from app.container import get_search_use_case, get_snapshot_holder, load_catalog
from app.domain.errors import CatalogLoadError, CatalogNotInitialized
from app.domain.models import FilterCriteria
from app.infra.api.security import require_api_key
from app.presentation.schemas import (
    DrugItem, DrugSearchResponse, FilterOptionsResponse, QuickSearchResponse, ReloadResponse,
)

# ──────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────
logger = logging.getLogger("puphax.api")

def _not_ready(e: CatalogNotInitialized) -> HTTPException:
    logger.warning("request refused: %s", e)
    return HTTPException(status_code=503, detail=str(e))


# Semua endpoint di bawah /v1 dan terlindungi API key
router = APIRouter(prefix="/v1", dependencies=[Depends(require_api_key)])

# ── SEARCH: simple (query string) ─────────────────────────────────
@router.get("/drugs/search", response_model=DrugSearchResponse)
def search_drugs(
    term: Optional[str] = Query(None, min_length=2, max_length=100),
    manufacturer: Optional[str] = Query(None, max_length=100),
    atc_code: Optional[str] = Query(None, alias="atcCode", max_length=10),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("name", alias="sortBy"),
    sort_direction: str = Query("ASC", alias="sortDirection"),
    uc: SearchCatalogUseCase = Depends(get_search_use_case),
):
    t0 = time.perf_counter()
    try:
        criteria = FilterCriteria(
            search_term=term,
            manufacturers=[manufacturer] if manufacturer else None,
            atc_codes=[atc_code] if atc_code else None,
            page=page,
            size=size,
            sort_by=sort_by,
            sort_direction=sort_direction,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    try:
        result = uc.search_products(criteria)
    except CatalogNotInitialized as e:
        raise _not_ready(e)
    return DrugSearchResponse.from_page(result, int((time.perf_counter() - t0) * 1000))

# ── SEARCH: advanced (JSON filter body) ───────────────────────────
@router.post("/drugs/search", response_model=DrugSearchResponse)
def search_drugs_advanced(
    criteria: FilterCriteria = Body(...),
    uc: SearchCatalogUseCase = Depends(get_search_use_case),
):
    t0 = time.perf_counter()
    logger.info("advanced search term=%r active_filters=%d", criteria.search_term, criteria.active_filter_count())
    try:
        result = uc.search_products(criteria)
    except CatalogNotInitialized as e:
        raise _not_ready(e)
    return DrugSearchResponse.from_page(result, int((time.perf_counter() - t0) * 1000))

# ── SEARCH: quick free-text (capped) ──────────────────────────────
@router.get("/drugs/quick-search", response_model=QuickSearchResponse)
def quick_search(
    term: str = Query(..., min_length=1, max_length=100),
    uc: SearchCatalogUseCase = Depends(get_search_use_case),
):
    try:
        views = uc.quick_search(term)
    except CatalogNotInitialized as e:
        raise _not_ready(e)
    return QuickSearchResponse(term=term, total_count=len(views), drugs=[DrugItem.from_view(v) for v in views])

# ── FILTER OPTIONS ────────────────────────────────────────────────
@router.get("/drugs/filters", response_model=FilterOptionsResponse)
def filter_options(uc: SearchCatalogUseCase = Depends(get_search_use_case)):
    try:
        opts = uc.filter_options()
    except CatalogNotInitialized as e:
        raise _not_ready(e)
    logger.info(
        "filter options: %d manufacturers, %d ATC codes, %d forms, %d brands",
        len(opts.manufacturers), len(opts.atc_codes), len(opts.product_forms), len(opts.brands),
    )
    return opts

# ── SINGLE PRODUCT ────────────────────────────────────────────────
@router.get("/drugs/{product_id}", response_model=DrugItem)
def get_drug(product_id: str, uc: SearchCatalogUseCase = Depends(get_search_use_case)):
    try:
        view = uc.get_product(product_id)
    except CatalogNotInitialized as e:
        raise _not_ready(e)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return DrugItem.from_view(view)

# ── ADMIN: rebuild snapshot ───────────────────────────────────────
@router.post("/admin/reload", response_model=ReloadResponse)
def reload_catalog(holder: SnapshotHolder = Depends(get_snapshot_holder)):
    # always the configured CATALOG_DATA_DIR, never a client-supplied path
    try:
        snap = load_catalog(holder=holder)
    except CatalogLoadError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return ReloadResponse(
        ok=True,
        stats=snap.stats(),
        skipped_sample=[asdict(s) for s in snap.report.skipped[:20]],
    )

# app/presentation/schemas.py
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from app.domain.models import FilterOptions, ProductView, SearchPage

# ── DRUG ITEM ─────────────────────────────────────────────────────
class DrugItem(BaseModel):
    id: str
    parent_id: Optional[str] = None
    name: str
    short_name: Optional[str] = None
    product_code: Optional[str] = None
    ean_code: Optional[str] = None
    manufacturer: str
    brand: Optional[str] = None
    atc_code: Optional[str] = None
    atc_description: Optional[str] = None
    iso_code: Optional[str] = None
    active_ingredient: Optional[str] = None
    pharmaceutical_form: Optional[str] = None
    administration_method: Optional[str] = None
    strength: Optional[str] = None
    active_substance_amount: Optional[str] = None
    package_size: Optional[str] = None
    ddd: Optional[str] = None
    days_of_therapy: Optional[str] = None
    ttt_code: Optional[str] = None
    tk_code: Optional[str] = None
    prescription_code: Optional[str] = None
    prescription_required: bool
    reimbursable: bool
    special_marker: bool
    substitutable: Optional[str] = None
    laterality: Optional[str] = None
    valid_from: Optional[str] = None
    valid_to: Optional[str] = None
    in_stock: bool
    status: str
    registration_refs: Dict[str, str] = {}

    @classmethod
    def from_view(cls, v: ProductView) -> "DrugItem":
        r = v.record

        def opt(s: str) -> Optional[str]:
            return s or None

        def amount(value: str, unit: str) -> Optional[str]:
            return f"{value} {unit}".strip() if value else None

        ddd = amount(r.daily_dose_amount, r.daily_dose_unit)
        if ddd and r.daily_dose_factor:
            ddd = f"{ddd} (factor: {r.daily_dose_factor})"

        return cls(
            id=r.id,
            parent_id=opt(r.parent_id),
            name=r.name,
            short_name=opt(r.short_name),
            product_code=opt(r.product_code),
            ean_code=opt(r.ean_code),
            manufacturer=v.manufacturer,
            brand=v.brand,
            atc_code=opt(r.classification_code),
            atc_description=v.classification_description,
            iso_code=opt(r.iso_code),
            active_ingredient=opt(r.active_ingredient_text),
            pharmaceutical_form=opt(r.form),
            administration_method=opt(r.administration_method),
            strength=opt(r.strength_text),
            active_substance_amount=amount(r.dose_amount, r.dose_unit),
            package_size=amount(r.package_amount, r.package_unit),
            ddd=ddd,
            days_of_therapy=opt(r.days_of_therapy),
            ttt_code=opt(r.regulatory_code),
            tk_code=opt(r.subsidy_category),
            prescription_code=opt(r.prescription_code),
            prescription_required=v.prescription_required,
            reimbursable=v.reimbursable,
            special_marker=v.is_special,
            substitutable=opt(r.substitutable),
            laterality=opt(r.laterality),
            valid_from=r.valid_from.isoformat() if r.valid_from else None,
            valid_to=r.valid_to.isoformat() if r.valid_to else None,
            in_stock=r.in_stock,
            status=v.status,
            registration_refs={k: val for k, val in r.registration_refs.items() if val},
        )

# ── SEARCH ────────────────────────────────────────────────────────
class PaginationInfo(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_elements: int
    has_next: bool
    has_previous: bool

class SearchInfo(BaseModel):
    search_term: Optional[str] = None
    sort_by: str
    sort_direction: str
    ignored_filters: List[str] = []
    response_time_ms: int = 0

class DrugSearchResponse(BaseModel):
    drugs: List[DrugItem]
    pagination: PaginationInfo
    search_info: SearchInfo

    @classmethod
    def from_page(cls, page: SearchPage, elapsed_ms: int = 0) -> "DrugSearchResponse":
        return cls(
            drugs=[DrugItem.from_view(v) for v in page.items],
            pagination=PaginationInfo(
                current_page=page.page,
                page_size=page.size,
                total_pages=page.total_pages,
                total_elements=page.total_elements,
                has_next=page.has_next,
                has_previous=page.has_previous,
            ),
            search_info=SearchInfo(
                search_term=page.search_term,
                sort_by=page.sort_by,
                sort_direction=page.sort_direction,
                ignored_filters=page.ignored_filters,
                response_time_ms=elapsed_ms,
            ),
        )

class QuickSearchResponse(BaseModel):
    term: str
    total_count: int
    drugs: List[DrugItem]

# ── FILTERS ───────────────────────────────────────────────────────
FilterOptionsResponse = FilterOptions

# ── ADMIN ─────────────────────────────────────────────────────────
class ReloadResponse(BaseModel):
    ok: bool
    stats: Dict[str, Any] = Field(default_factory=dict)
    skipped_sample: List[Dict[str, Any]] = []

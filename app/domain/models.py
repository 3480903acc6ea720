# app/domain/models.py
from __future__ import annotations

import datetime as dt
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductRecord(BaseModel):
    """
    One row of the TERMEK table (a product/package variant).
    Text fields keep the raw value from the file ("" when empty); only the
    validity dates and the stock flag are typed.
    """
    model_config = ConfigDict(frozen=True)

    # identity
    id: str
    parent_id: str = ""
    valid_from: Optional[dt.date] = None
    valid_to: Optional[dt.date] = None

    # classification / registration
    product_code: str = ""
    public_health_id: str = ""
    regulatory_code: str = ""            # TTT
    subsidy_category: str = ""           # TK
    subsidy_deleted: str = ""
    subsidy_deleted_at: Optional[dt.date] = None
    ean_code: str = ""
    brand_id: str = ""

    # naming
    name: str
    short_name: str = ""

    classification_code: str = ""        # ATC
    iso_code: str = ""
    active_ingredient_text: str = ""

    # form / administration
    administration_method: str = ""
    form: str = ""
    prescription_code: str = ""          # RENDELHET (VN, V5, V1, J, VK, ...)
    equivalence_id: str = ""
    substitutable: str = ""

    # strength / dosage
    strength_text: str = ""
    original_dose_amount: str = ""
    dose_amount: str = ""
    dose_unit: str = ""
    package_amount: str = ""
    package_unit: str = ""
    daily_dose_amount: str = ""
    daily_dose_unit: str = ""
    daily_dose_factor: str = ""
    days_of_therapy: str = ""
    unit_dose_amount: str = ""
    unit_dose_unit: str = ""

    # special attributes
    special_marker: str = ""
    laterality: str = ""
    multi_warranty: str = ""
    pharmacy_only: str = ""
    box_id: str = ""
    cross_reference: str = ""

    # distribution
    authorization_holder_id: str = ""
    distributor_id: str = ""
    in_stock: bool = False
    publication_ref: str = ""

    @property
    def registration_refs(self) -> Dict[str, str]:
        return {
            "public_health_id": self.public_health_id,
            "ean_code": self.ean_code,
            "equivalence_id": self.equivalence_id,
            "box_id": self.box_id,
            "cross_reference": self.cross_reference,
        }


class ReferenceTables(BaseModel):
    """The three id -> display name vocabularies (BRAND, ATCKONYV, CEGEK)."""
    model_config = ConfigDict(frozen=True)

    brands: Dict[str, str] = Field(default_factory=dict)
    atc_descriptions: Dict[str, str] = Field(default_factory=dict)
    companies: Dict[str, str] = Field(default_factory=dict)

    def brand_name(self, brand_id: str) -> Optional[str]:
        return self.brands.get((brand_id or "").strip())

    def atc_description(self, code: str) -> Optional[str]:
        return self.atc_descriptions.get((code or "").strip())

    def company_name(self, company_id: str) -> Optional[str]:
        return self.companies.get((company_id or "").strip())


SortField = Literal["name", "manufacturer", "classification_code"]
SortDirection = Literal["ASC", "DESC"]

_SORT_ALIASES = {
    "name": "name",
    "manufacturer": "manufacturer",
    "atc": "classification_code",
    "atccode": "classification_code",
    "atc_code": "classification_code",
    "classification_code": "classification_code",
    "classificationcode": "classification_code",
}


class FilterCriteria(BaseModel):
    """Query-time filter. Every criterion is optional; lists are any-of."""
    model_config = ConfigDict(populate_by_name=True)

    search_term: Optional[str] = Field(None, alias="searchTerm", max_length=100)

    atc_codes: Optional[List[str]] = Field(None, alias="atcCodes")
    manufacturers: Optional[List[str]] = None
    product_forms: Optional[List[str]] = Field(None, alias="productForms")
    administration_methods: Optional[List[str]] = Field(None, alias="administrationMethods")

    ttt_codes: Optional[List[str]] = Field(None, alias="tttCodes")
    prescription_required: Optional[bool] = Field(None, alias="prescriptionRequired")
    reimbursable: Optional[bool] = None
    in_stock: Optional[bool] = Field(None, alias="inStock")
    prescription_types: Optional[List[str]] = Field(None, alias="prescriptionTypes")

    min_strength: Optional[float] = Field(None, alias="minStrength")
    max_strength: Optional[float] = Field(None, alias="maxStrength")
    strength_units: Optional[List[str]] = Field(None, alias="strengthUnits")

    brands: Optional[List[str]] = None
    special_marker: Optional[bool] = Field(None, alias="specialMarker")
    laterality: Optional[List[str]] = None

    currently_valid: Optional[bool] = Field(None, alias="currentlyValid")
    valid_from_date: Optional[str] = Field(None, alias="validFromDate")
    valid_to_date: Optional[str] = Field(None, alias="validToDate")

    page: int = Field(0, ge=0)
    size: int = Field(20, ge=1, le=100)
    sort_by: SortField = Field("name", alias="sortBy")
    sort_direction: SortDirection = Field("ASC", alias="sortDirection")

    @field_validator("sort_by", mode="before")
    @classmethod
    def _normalize_sort_by(cls, v):
        if v is None:
            return "name"
        return _SORT_ALIASES.get(str(v).strip().lower(), v)

    @field_validator("sort_direction", mode="before")
    @classmethod
    def _normalize_direction(cls, v):
        if v is None:
            return "ASC"
        return str(v).strip().upper()

    def active_filter_count(self) -> int:
        fields = [
            self.atc_codes, self.manufacturers, self.product_forms,
            self.administration_methods, self.ttt_codes, self.prescription_required,
            self.reimbursable, self.in_stock, self.prescription_types,
            self.min_strength, self.max_strength, self.strength_units, self.brands,
            self.special_marker, self.laterality, self.currently_valid,
            self.valid_from_date, self.valid_to_date,
        ]
        return sum(1 for f in fields if f not in (None, []))


class ProductView(BaseModel):
    """A record as handed to callers: raw fields plus resolved names and derived flags."""
    record: ProductRecord
    manufacturer: str
    brand: Optional[str] = None
    classification_description: Optional[str] = None
    prescription_required: bool = False
    reimbursable: bool = False
    is_special: bool = False
    status: Literal["ACTIVE", "INACTIVE"] = "INACTIVE"


class SearchPage(BaseModel):
    items: List[ProductView] = Field(default_factory=list)
    total_elements: int = 0
    page: int = 0
    size: int = 20
    total_pages: int = 0
    has_next: bool = False
    has_previous: bool = False
    sort_by: str = "name"
    sort_direction: str = "ASC"
    search_term: Optional[str] = None
    ignored_filters: List[str] = Field(default_factory=list)


# ── Filter vocabularies ──────────────────────────────────────────

class AtcOption(BaseModel):
    code: str
    description: str
    level: int


class CodeOption(BaseModel):
    code: str
    description: str
    prescription_required: Optional[bool] = None


class StrengthRange(BaseModel):
    min: float = 0.0
    max: float = 0.0
    unit: str = ""
    common_values: List[float] = Field(default_factory=list)


class FilterOptions(BaseModel):
    manufacturers: List[str] = Field(default_factory=list)
    atc_codes: List[AtcOption] = Field(default_factory=list)
    product_forms: List[str] = Field(default_factory=list)
    administration_methods: List[str] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)
    prescription_types: List[CodeOption] = Field(default_factory=list)
    regulatory_codes: List[CodeOption] = Field(default_factory=list)
    strength_range: StrengthRange = Field(default_factory=StrengthRange)
    total_products: int = 0
    in_stock_count: int = 0
    generated_at: Optional[str] = None

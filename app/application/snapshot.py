# app/application/snapshot.py
from __future__ import annotations

import datetime as dt
import logging
import os
import threading
import time
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple

from app.domain.errors import CatalogLoadError, CatalogNotInitialized
from app.domain.models import FilterOptions, ProductRecord, ProductView, ReferenceTables
from app.domain.ports import ReferenceResolverPort, TextIndexPort
from app.domain.rules import CatalogRules
from app.domain.services.dedup import deduplicate
from app.domain.services.vocabulary import extract_filter_options
from app.infra.repo.csv_loader import (
    PRODUCT_FILE, RETENTION_YEARS, LoadReport, load_products, load_reference_tables,
)
from app.infra.search.text_index import InvertedTextIndex

log = logging.getLogger("puphax.catalog")

SEARCH_RESULT_LIMIT = int(os.getenv("CATALOG_SEARCH_LIMIT", "50"))
UNKNOWN_MANUFACTURER = "Unknown"


@dataclass(frozen=True, eq=False)
class CatalogSnapshot(ReferenceResolverPort):
    """
    Everything one load produced: records, reference tables, text index.
    Never mutated after build_snapshot returns; a refresh builds a new one.
    """
    records: Tuple[ProductRecord, ...]
    by_id: Mapping[str, ProductRecord]
    refs: ReferenceTables
    index: TextIndexPort
    rules: CatalogRules
    report: LoadReport
    loaded_at: dt.datetime
    source: str = ""

    # ── reference resolution ─────────────────────────────────────
    def manufacturer_of(self, rec: ProductRecord) -> str:
        for company_id in (rec.distributor_id, rec.authorization_holder_id):
            name = self.refs.company_name(company_id)
            if name:
                return name
        return UNKNOWN_MANUFACTURER

    def brand_of(self, rec: ProductRecord) -> Optional[str]:
        return self.refs.brand_name(rec.brand_id)

    # ── reads ────────────────────────────────────────────────────
    def get(self, product_id: str) -> Optional[ProductRecord]:
        return self.by_id.get((product_id or "").strip())

    def candidates(self, term: Optional[str]) -> List[ProductRecord]:
        """Index lookup for a term, otherwise every record (full scan)."""
        if term and term.strip():
            return self.index.lookup(term)
        return list(self.records)

    def search(self, term: Optional[str], limit: int = SEARCH_RESULT_LIMIT) -> List[ProductRecord]:
        """Free-text quick search: index match, dedup, then cap."""
        return deduplicate(self.candidates(term))[:limit]

    def view(self, rec: ProductRecord) -> ProductView:
        return ProductView(
            record=rec,
            manufacturer=self.manufacturer_of(rec),
            brand=self.brand_of(rec),
            classification_description=self.refs.atc_description(rec.classification_code),
            prescription_required=self.rules.is_prescription_required(rec),
            reimbursable=self.rules.is_reimbursable(rec),
            is_special=self.rules.is_special(rec),
            status="ACTIVE" if rec.in_stock else "INACTIVE",
        )

    @cached_property
    def filter_options(self) -> FilterOptions:
        return extract_filter_options(self.records, self.refs, self.rules)

    def stats(self) -> dict:
        return {
            "products": len(self.records),
            "brands": len(self.refs.brands),
            "atc_codes": len(self.refs.atc_descriptions),
            "companies": len(self.refs.companies),
            "index_keys": self.index.key_count(),
            "rows_skipped": self.report.rows_skipped,
            "loaded_at": self.loaded_at.isoformat(),
        }


def build_snapshot(
    data_dir: Path | str,
    rules: Optional[CatalogRules] = None,
    today: Optional[dt.date] = None,
    retention_years: int = RETENTION_YEARS,
) -> CatalogSnapshot:
    """Load products, then reference tables, then build the index. Raises CatalogLoadError."""
    data_dir = Path(data_dir)
    t0 = time.perf_counter()
    log.info("building catalog snapshot from %s", data_dir)

    loaded = load_products(data_dir / PRODUCT_FILE, today=today, retention_years=retention_years)
    refs = load_reference_tables(data_dir)
    records = tuple(loaded.records.values())
    index = InvertedTextIndex.build(records)

    snap = CatalogSnapshot(
        records=records,
        by_id=MappingProxyType(dict(loaded.records)),
        refs=refs,
        index=index,
        rules=rules or CatalogRules.from_yaml(),
        report=loaded.report,
        loaded_at=dt.datetime.now(dt.timezone.utc),
        source=str(data_dir),
    )
    log.info(
        "catalog ready: %d products, %d brands, %d ATC codes, %d companies, %d index keys in %dms",
        len(records), len(refs.brands), len(refs.atc_descriptions), len(refs.companies),
        index.key_count(), int((time.perf_counter() - t0) * 1000),
    )
    return snap


class SnapshotHolder:
    """
    The one reference queries read from. Readers take whatever snapshot is
    current without locking; writers build a complete snapshot first and swap
    the reference in one assignment.
    """

    def __init__(self, snapshot: Optional[CatalogSnapshot] = None):
        self._snapshot = snapshot
        self._write_lock = threading.Lock()
        self.last_error: Optional[str] = None

    @property
    def current(self) -> Optional[CatalogSnapshot]:
        return self._snapshot

    @property
    def initialized(self) -> bool:
        return self._snapshot is not None

    def require(self) -> CatalogSnapshot:
        snap = self._snapshot
        if snap is None:
            raise CatalogNotInitialized(
                f"Product catalog is not initialized: {self.last_error}" if self.last_error else
                "Product catalog is not initialized"
            )
        return snap

    def publish(self, snapshot: CatalogSnapshot) -> None:
        with self._write_lock:
            self._snapshot = snapshot
            self.last_error = None

    def reload(self, builder: Callable[[], CatalogSnapshot]) -> CatalogSnapshot:
        """Build with `builder` and swap. On failure the previous snapshot stays live."""
        with self._write_lock:
            try:
                snap = builder()
            except CatalogLoadError as e:
                self.last_error = str(e)
                log.error("catalog load failed, keeping previous snapshot=%s: %s", self.initialized, e)
                raise
            self._snapshot = snap
            self.last_error = None
            return snap

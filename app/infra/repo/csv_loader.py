# app/infra/repo/csv_loader.py
from __future__ import annotations

import datetime as dt
import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from app.domain.errors import CatalogLoadError
from app.domain.models import ProductRecord, ReferenceTables

log = logging.getLogger("puphax.loader")

# NEAK bulk dump file names (TAB separated, optional double quotes, header row)
PRODUCT_FILE = "TERMEK.csv"
BRAND_FILE   = "BRAND.csv"
ATC_FILE     = "ATCKONYV.csv"
COMPANY_FILE = "CEGEK.csv"

DATE_FORMAT         = "%Y.%m.%d"
NO_END_DATE         = "99"
MIN_PRODUCT_COLUMNS = 20
PRODUCT_COLUMNS     = 44
RETENTION_YEARS     = int(os.getenv("CATALOG_RETENTION_YEARS", "2"))
MAX_DIAGNOSTICS     = int(os.getenv("CATALOG_MAX_DIAGNOSTICS", "1000"))


@dataclass
class SkippedRow:
    line_no: int
    reason: str
    detail: str = ""


@dataclass
class LoadReport:
    source: str
    rows_read: int = 0
    rows_loaded: int = 0
    duplicates_replaced: int = 0
    skipped: List[SkippedRow] = field(default_factory=list)
    skip_counts: Counter = field(default_factory=Counter)

    @property
    def rows_skipped(self) -> int:
        return sum(self.skip_counts.values())

    def skip(self, line_no: int, reason: str, detail: str = "") -> None:
        self.skip_counts[reason] += 1
        if len(self.skipped) < MAX_DIAGNOSTICS:
            self.skipped.append(SkippedRow(line_no, reason, detail))
        log.debug("skip line %d (%s) %s", line_no, reason, detail)


@dataclass
class LoadResult:
    records: Dict[str, ProductRecord]
    report: LoadReport


# ── field helpers ────────────────────────────────────────────────

def unquote(value: Optional[str]) -> str:
    if value is None:
        return ""
    value = value.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def split_row(line: str) -> List[str]:
    return [unquote(f) for f in line.rstrip("\r\n").split("\t")]


def parse_date(raw: Optional[str]) -> Optional[dt.date]:
    """yyyy.MM.dd; empty, the "99" sentinel and garbage all mean "no date"."""
    s = (raw or "").strip()
    if not s or s == NO_END_DATE:
        return None
    try:
        return dt.datetime.strptime(s, DATE_FORMAT).date()
    except ValueError:
        return None


def retention_cutoff(today: dt.date, years: int) -> dt.date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:  # 29 Feb
        return today.replace(year=today.year - years, day=28)


def _to_record(f: List[str], valid_from: Optional[dt.date], valid_to: Optional[dt.date]) -> ProductRecord:
    return ProductRecord(
        id=f[0],
        parent_id=f[1],
        valid_from=valid_from,
        valid_to=valid_to,
        product_code=f[4],
        public_health_id=f[5],
        regulatory_code=f[6],
        subsidy_category=f[7],
        subsidy_deleted=f[8],
        subsidy_deleted_at=parse_date(f[9]),
        ean_code=f[10],
        brand_id=f[11],
        name=f[12],
        short_name=f[13],
        classification_code=f[14],
        iso_code=f[15],
        active_ingredient_text=f[16],
        administration_method=f[17],
        form=f[18],
        prescription_code=f[19],
        equivalence_id=f[20],
        substitutable=f[21],
        strength_text=f[22],
        original_dose_amount=f[23],
        dose_amount=f[24],
        dose_unit=f[25],
        package_amount=f[26],
        package_unit=f[27],
        daily_dose_amount=f[28],
        daily_dose_unit=f[29],
        daily_dose_factor=f[30],
        days_of_therapy=f[31],
        unit_dose_amount=f[32],
        unit_dose_unit=f[33],
        special_marker=f[34],
        laterality=f[35],
        multi_warranty=f[36],
        pharmacy_only=f[37],
        box_id=f[38],
        cross_reference=f[39],
        authorization_holder_id=f[40],
        distributor_id=f[41],
        in_stock=f[42] == "1",
        publication_ref=f[43],
    )


# ── product table ────────────────────────────────────────────────

def load_products(
    path: Path | str,
    today: Optional[dt.date] = None,
    retention_years: int = RETENTION_YEARS,
) -> LoadResult:
    """
    Parse TERMEK into records keyed by id. Bad rows are skipped and reported;
    only a missing/unreadable file raises CatalogLoadError.
    """
    path = Path(path)
    cutoff = retention_cutoff(today or dt.date.today(), retention_years)
    report = LoadReport(source=str(path))
    records: Dict[str, ProductRecord] = {}

    try:
        with path.open("r", encoding="utf-8-sig", errors="replace", newline="") as fh:
            header = fh.readline()
            log.debug("%s header: %s", path.name, header.strip())
            for line_no, line in enumerate(fh, start=2):
                if not line.strip():
                    continue
                report.rows_read += 1
                fields = split_row(line)

                if len(fields) < MIN_PRODUCT_COLUMNS:
                    report.skip(line_no, "too_few_columns", f"{len(fields)} < {MIN_PRODUCT_COLUMNS}")
                    continue
                if len(fields) < PRODUCT_COLUMNS:
                    fields += [""] * (PRODUCT_COLUMNS - len(fields))

                valid_from = parse_date(fields[2])
                valid_to = parse_date(fields[3])
                if valid_to is not None and valid_to < cutoff:
                    report.skip_counts["expired"] += 1
                    continue
                if not fields[0]:
                    report.skip(line_no, "missing_id")
                    continue
                if not fields[12]:
                    report.skip(line_no, "missing_name", fields[0])
                    continue
                if valid_from and valid_to and valid_from > valid_to:
                    report.skip(line_no, "inverted_validity", f"{fields[0]}: {valid_from} > {valid_to}")
                    continue

                try:
                    rec = _to_record(fields, valid_from, valid_to)
                except ValidationError as e:
                    report.skip(line_no, "invalid_row", str(e.errors()[:1]))
                    continue

                if rec.id in records:
                    report.duplicates_replaced += 1
                    log.debug("duplicate id %s at line %d replaces earlier row", rec.id, line_no)
                records[rec.id] = rec

                if report.rows_read % 100000 == 0:
                    log.debug("processed %d rows, kept %d", report.rows_read, len(records))
    except OSError as e:
        raise CatalogLoadError(path, str(e)) from e

    report.rows_loaded = len(records)
    log.info(
        "loaded %d products out of %d rows from %s (skipped: %s)",
        report.rows_loaded, report.rows_read, path.name, dict(report.skip_counts) or "none",
    )
    return LoadResult(records=records, report=report)


# ── auxiliary id -> name tables ──────────────────────────────────

def load_reference_table(path: Path | str) -> Dict[str, str]:
    """Two-column id/name table. Missing or unreadable file -> empty mapping."""
    path = Path(path)
    out: Dict[str, str] = {}
    if not path.exists():
        log.warning("%s not found, its names will not be available", path.name)
        return out
    try:
        with path.open("r", encoding="utf-8-sig", errors="replace", newline="") as fh:
            fh.readline()
            for line in fh:
                fields = split_row(line)
                if len(fields) >= 2 and fields[0]:
                    out[fields[0]] = fields[1]
    except OSError as e:
        log.warning("cannot read %s (%s), its names will not be available", path.name, e)
        return {}
    log.debug("loaded %d entries from %s", len(out), path.name)
    return out


def load_reference_tables(data_dir: Path | str) -> ReferenceTables:
    data_dir = Path(data_dir)
    return ReferenceTables(
        brands=load_reference_table(data_dir / BRAND_FILE),
        atc_descriptions=load_reference_table(data_dir / ATC_FILE),
        companies=load_reference_table(data_dir / COMPANY_FILE),
    )

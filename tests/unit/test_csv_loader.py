import datetime as dt

import pytest

from app.domain.errors import CatalogLoadError
from app.infra.repo.csv_loader import (
    load_products, load_reference_table, load_reference_tables, parse_date, retention_cutoff, split_row,
)
from catalog_data import COLUMNS, TODAY, product_row, write_table


def test_loads_valid_rows_and_reports_skips(data_dir):
    res = load_products(data_dir / "TERMEK.csv", today=TODAY)
    assert sorted(res.records) == ["100", "101", "102", "200", "300", "700"]
    assert res.report.rows_read == 10
    assert res.report.rows_loaded == 6
    assert res.report.skip_counts == {
        "expired": 1, "too_few_columns": 1, "missing_name": 1, "inverted_validity": 1,
    }
    # expired rows are only counted, not listed
    assert {s.reason for s in res.report.skipped} == {"too_few_columns", "missing_name", "inverted_validity"}


def test_record_fields_are_mapped(data_dir):
    rec = load_products(data_dir / "TERMEK.csv", today=TODAY).records["200"]
    assert rec.name == "ASZPIRIN PROTECT"
    assert rec.classification_code == "B01AC06"
    assert rec.subsidy_category == "50"
    assert rec.authorization_holder_id == "C2"
    assert rec.valid_from == dt.date(2023, 5, 1)
    assert rec.valid_to == dt.date(2025, 3, 31)
    assert rec.in_stock is True


def test_sentinel_and_empty_dates_mean_open_ended(data_dir):
    records = load_products(data_dir / "TERMEK.csv", today=TODAY).records
    assert records["100"].valid_to is None
    assert records["700"].valid_from is None and records["700"].valid_to is None


def test_validity_window_never_inverted(data_dir):
    for rec in load_products(data_dir / "TERMEK.csv", today=TODAY).records.values():
        if rec.valid_from and rec.valid_to:
            assert rec.valid_from <= rec.valid_to


def test_header_only_file_gives_empty_catalog(tmp_path):
    write_table(tmp_path / "TERMEK.csv", COLUMNS, [])
    res = load_products(tmp_path / "TERMEK.csv", today=TODAY)
    assert res.records == {}
    assert res.report.rows_read == 0


def test_missing_product_file_raises(tmp_path):
    with pytest.raises(CatalogLoadError):
        load_products(tmp_path / "TERMEK.csv", today=TODAY)


def test_short_row_is_padded_when_above_minimum(tmp_path):
    full = product_row(ID="1", NEV="SHORT ROW", RENDELHET="VN").split("\t")
    write_table(tmp_path / "TERMEK.csv", COLUMNS, ["\t".join(full[:25])])
    rec = load_products(tmp_path / "TERMEK.csv", today=TODAY).records["1"]
    assert rec.prescription_code == "VN"
    assert rec.distributor_id == ""
    assert rec.in_stock is False


def test_duplicate_id_keeps_last_row(tmp_path):
    write_table(tmp_path / "TERMEK.csv", COLUMNS, [
        product_row(ID="1", NEV="FIRST"),
        product_row(ID="1", NEV="SECOND"),
    ])
    res = load_products(tmp_path / "TERMEK.csv", today=TODAY)
    assert list(res.records) == ["1"]
    assert res.records["1"].name == "SECOND"
    assert res.report.duplicates_replaced == 1


def test_retention_window_is_configurable(data_dir):
    res = load_products(data_dir / "TERMEK.csv", today=TODAY, retention_years=20)
    assert "400" in res.records


def test_quoted_fields_are_unquoted():
    assert split_row('"C1"\t"Bayer"\tplain\r\n') == ["C1", "Bayer", "plain"]


def test_parse_date_variants():
    assert parse_date("2024.02.29") == dt.date(2024, 2, 29)
    assert parse_date("99") is None
    assert parse_date("") is None
    assert parse_date("2024-02-29") is None


def test_retention_cutoff_on_leap_day():
    assert retention_cutoff(dt.date(2024, 2, 29), 2) == dt.date(2022, 2, 28)


def test_missing_reference_file_is_empty(tmp_path):
    assert load_reference_table(tmp_path / "BRAND.csv") == {}
    refs = load_reference_tables(tmp_path)
    assert refs.brands == {} and refs.companies == {} and refs.atc_descriptions == {}


def test_reference_table_unquotes(data_dir):
    assert load_reference_table(data_dir / "CEGEK.csv")["C1"] == "Bayer Hungária Kft."

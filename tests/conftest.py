# tests/conftest.py
import pytest

from app.application.search_use_case import SearchCatalogUseCase
from app.application.snapshot import SnapshotHolder, build_snapshot
from app.domain.rules import CatalogRules
from catalog_data import COLUMNS, PRODUCT_ROWS, TODAY, write_table


@pytest.fixture
def data_dir(tmp_path):
    write_table(tmp_path / "TERMEK.csv", COLUMNS, PRODUCT_ROWS)
    write_table(tmp_path / "BRAND.csv", ["ID", "NEV"], ["B1\tAspirin"])
    write_table(tmp_path / "ATCKONYV.csv", ["ATC", "MEGNEVEZES"], [
        "N02\tFájdalomcsillapítók",
        "N02BA01\tAcetilszalicilsav",
        "B01AC06\tAcetilszalicilsav",
        "N02BB02\tMetamizol-nátrium",
        "A11GA01\tAszkorbinsav",
    ])
    write_table(tmp_path / "CEGEK.csv", ["ID", "NEV"], [
        '"C1"\t"Bayer Hungária Kft."',
        "C2\tRichter Gedeon Nyrt.",
    ])
    return tmp_path


@pytest.fixture
def rules():
    return CatalogRules()


@pytest.fixture
def snapshot(data_dir, rules):
    return build_snapshot(data_dir, rules=rules, today=TODAY)


@pytest.fixture
def holder(snapshot):
    return SnapshotHolder(snapshot)


@pytest.fixture
def use_case(holder):
    return SearchCatalogUseCase(holder, today=TODAY)

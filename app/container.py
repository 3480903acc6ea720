# app/container.py
import os
from functools import lru_cache
from typing import Optional

from app.application.search_use_case import SearchCatalogUseCase
from app.application.snapshot import CatalogSnapshot, SnapshotHolder, build_snapshot
from app.domain.rules import CatalogRules

DATA_DIR = os.getenv("CATALOG_DATA_DIR", "data/puphax")

@lru_cache
def _rules() -> CatalogRules: return CatalogRules.from_yaml()

@lru_cache
def _holder() -> SnapshotHolder: return SnapshotHolder()

def load_catalog(data_dir: Optional[str] = None, holder: Optional[SnapshotHolder] = None) -> CatalogSnapshot:
    """Build a fresh snapshot and swap it in. Raises CatalogLoadError; the old one stays live."""
    path = data_dir or DATA_DIR
    return (holder or _holder()).reload(lambda: build_snapshot(path, rules=_rules()))

def get_snapshot_holder() -> SnapshotHolder: return _holder()

def get_search_use_case() -> SearchCatalogUseCase:
    return SearchCatalogUseCase(_holder())

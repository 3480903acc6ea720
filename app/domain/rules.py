# app/domain/rules.py
import logging
import os
import re
from typing import Dict, List, Optional

import yaml

from app.domain.models import CodeOption, ProductRecord

log = logging.getLogger("puphax.rules")

_LEADING_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")


def _code_list(cfg: Dict, key: str, default: List[str]) -> List[str]:
    """A list of scalar codes, or the default when the key is absent or malformed."""
    if key not in cfg:
        return list(default)
    value = cfg[key]
    if not isinstance(value, list) or any(isinstance(v, (dict, list)) or v is None for v in value):
        log.warning("rules: %s must be a list of codes, got %r; using defaults", key, value)
        return list(default)
    return [str(v).strip() for v in value if str(v).strip()]


def _option_list(cfg: Dict, key: str, default: List[Dict]) -> List[Dict]:
    """A list of {code, description} mappings, or the default when the key is absent or malformed."""
    if key not in cfg:
        return list(default)
    value = cfg[key]
    if not isinstance(value, list) or not all(isinstance(o, dict) and o.get("code") is not None for o in value):
        log.warning("rules: %s must be a list of {code, description} entries; using defaults", key)
        return list(default)
    return value


class CatalogRules:
    """
    Code sets behind the derived flags (prescription required, special marker)
    and the code lists offered as filter options. Loaded from YAML so they can
    be corrected without a release; defaults mirror config/catalog_rules.yaml.
    """
    DEFAULT_PRESCRIPTION_REQUIRED = ["VN", "V5", "V1", "J", "SZK"]
    DEFAULT_SPECIAL_MARKERS = ["I"]
    DEFAULT_PRESCRIPTION_TYPES = [
        {"code": "VN", "description": "Vényköteles (normál)"},
        {"code": "V5", "description": "Vényköteles (5x ismételhető)"},
        {"code": "V1", "description": "Vényköteles (1x ismételhető)"},
        {"code": "J", "description": "Különleges rendelvényen"},
        {"code": "VK", "description": "Vény nélkül kapható"},
        {"code": "SZK", "description": "Szakorvosi javaslat"},
    ]
    DEFAULT_REGULATORY_CODES = [
        {"code": "1", "description": "Vény nélkül kapható gyógyszer"},
        {"code": "2", "description": "Vényköteles gyógyszer"},
        {"code": "3", "description": "Korlátozott forgalmazású gyógyszer"},
        {"code": "4", "description": "Külön rendelvényen rendelhető"},
        {"code": "5", "description": "Kábítószer-rendelvényen rendelhető"},
        {"code": "6", "description": "Kórházi gyógyszer"},
        {"code": "7", "description": "Különleges rendelkezésű gyógyszer"},
    ]

    def __init__(self, cfg: Optional[Dict] = None):
        cfg = cfg or {}
        self.prescription_required_codes = frozenset(
            c.upper() for c in _code_list(cfg, "prescription_required_codes", self.DEFAULT_PRESCRIPTION_REQUIRED)
        )
        self.special_marker_values = frozenset(
            c.upper() for c in _code_list(cfg, "special_marker_values", self.DEFAULT_SPECIAL_MARKERS)
        )
        self._prescription_types = _option_list(cfg, "prescription_types", self.DEFAULT_PRESCRIPTION_TYPES)
        self._regulatory_codes = _option_list(cfg, "regulatory_codes", self.DEFAULT_REGULATORY_CODES)

    @classmethod
    def from_yaml(cls, cfg_path: Optional[str] = None) -> "CatalogRules":
        path = cfg_path or os.getenv("CATALOG_RULES_CFG", "config/catalog_rules.yaml")
        cfg = {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            log.warning("load %s failed: %s; using built-in rules", path, e)
        if not isinstance(cfg, dict):
            log.warning("%s is not a mapping; using built-in rules", path)
            cfg = {}
        return cls(cfg)

    # ── derived flags ────────────────────────────────────────────
    def is_prescription_required(self, rec: ProductRecord) -> bool:
        return rec.prescription_code.strip().upper() in self.prescription_required_codes

    def is_reimbursable(self, rec: ProductRecord) -> bool:
        return bool(rec.subsidy_category.strip())

    def is_special(self, rec: ProductRecord) -> bool:
        return rec.special_marker.strip().upper() in self.special_marker_values

    # ── option lists ─────────────────────────────────────────────
    def prescription_type_options(self) -> List[CodeOption]:
        return [
            CodeOption(
                code=str(o["code"]),
                description=str(o.get("description", "")),
                prescription_required=str(o["code"]).upper() in self.prescription_required_codes,
            )
            for o in self._prescription_types
        ]

    def regulatory_code_options(self) -> List[CodeOption]:
        return [
            CodeOption(code=str(o["code"]), description=str(o.get("description", "")))
            for o in self._regulatory_codes
        ]


def parse_strength(strength_text: str) -> Optional[float]:
    """Leading number of the strength text: '100 mg' -> 100.0, '100 mg/5 ml' -> 100.0; None when there is none."""
    m = _LEADING_NUMBER.search(strength_text or "")
    if not m:
        return None
    return float(m.group(0))

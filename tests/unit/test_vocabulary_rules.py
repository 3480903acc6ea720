from app.domain.models import ProductRecord
from app.domain.rules import CatalogRules, parse_strength
from app.domain.services.vocabulary import atc_level, extract_filter_options


def test_filter_options_from_tables(snapshot):
    opts = extract_filter_options(snapshot.records, snapshot.refs, snapshot.rules)
    assert opts.manufacturers == ["Bayer Hungária Kft.", "Richter Gedeon Nyrt."]
    assert [a.code for a in opts.atc_codes] == ["A11GA01", "B01AC06", "N02", "N02BA01", "N02BB02"]
    assert {a.code: a.level for a in opts.atc_codes}["N02"] == 2
    assert opts.product_forms == ["OLDATOS INJEKCIÓ", "PEZSGŐTABLETTA", "TABLETTA"]
    assert opts.administration_methods == ["ORÁLIS", "PARENTERÁLIS"]
    assert opts.brands == ["Aspirin"]
    assert opts.total_products == 6
    assert opts.in_stock_count == 4


def test_strength_range(snapshot):
    rng = extract_filter_options(snapshot.records, snapshot.refs, snapshot.rules).strength_range
    assert rng.min == 75.0
    assert rng.max == 1000.0
    assert rng.unit == "mg"
    assert rng.common_values[0] == 100.0


def test_code_lists_come_from_rules(snapshot):
    opts = snapshot.filter_options
    rx = {o.code: o.prescription_required for o in opts.prescription_types}
    assert rx["VN"] is True and rx["VK"] is False
    assert [o.code for o in opts.regulatory_codes] == ["1", "2", "3", "4", "5", "6", "7"]


def test_atc_level():
    assert atc_level("A") == 1
    assert atc_level("A10") == 2
    assert atc_level("A10BA02") == 5


def test_parse_strength():
    assert parse_strength("100 mg") == 100.0
    assert parse_strength("2.5mg/ml") == 2.5
    assert parse_strength("100 mg/5 ml") == 100.0
    assert parse_strength("250 mg/5 ml") == 250.0
    assert parse_strength("abc") is None
    assert parse_strength("") is None


def test_rules_from_yaml(tmp_path):
    cfg = tmp_path / "rules.yaml"
    cfg.write_text("prescription_required_codes: [VK]\nspecial_marker_values: ['X']\n", encoding="utf-8")
    rules = CatalogRules.from_yaml(str(cfg))
    assert rules.is_prescription_required(ProductRecord(id="1", name="a", prescription_code="vk"))
    assert not rules.is_prescription_required(ProductRecord(id="1", name="a", prescription_code="VN"))
    assert rules.is_special(ProductRecord(id="1", name="a", special_marker="x"))


def test_rules_fall_back_when_file_missing(tmp_path):
    rules = CatalogRules.from_yaml(str(tmp_path / "missing.yaml"))
    assert rules.prescription_required_codes == frozenset(CatalogRules.DEFAULT_PRESCRIPTION_REQUIRED)


def test_shipped_config_matches_defaults():
    rules = CatalogRules.from_yaml("config/catalog_rules.yaml")
    assert rules.prescription_required_codes == frozenset(CatalogRules.DEFAULT_PRESCRIPTION_REQUIRED)
    assert rules.special_marker_values == frozenset(CatalogRules.DEFAULT_SPECIAL_MARKERS)


def _rules_from(tmp_path, text):
    cfg = tmp_path / "rules.yaml"
    cfg.write_text(text, encoding="utf-8")
    return CatalogRules.from_yaml(str(cfg))


def test_scalar_code_set_falls_back_to_defaults(tmp_path):
    rules = _rules_from(tmp_path, "prescription_required_codes: VN\n")
    assert rules.prescription_required_codes == frozenset(CatalogRules.DEFAULT_PRESCRIPTION_REQUIRED)
    assert rules.is_prescription_required(ProductRecord(id="1", name="a", prescription_code="VN"))


def test_non_list_code_set_falls_back_to_defaults(tmp_path):
    rules = _rules_from(tmp_path, "prescription_required_codes: 5\nspecial_marker_values: {a: 1}\n")
    assert rules.prescription_required_codes == frozenset(CatalogRules.DEFAULT_PRESCRIPTION_REQUIRED)
    assert rules.special_marker_values == frozenset(CatalogRules.DEFAULT_SPECIAL_MARKERS)


def test_option_lists_without_mappings_fall_back_to_defaults(tmp_path):
    rules = _rules_from(tmp_path, "prescription_types: [VN, VK]\nregulatory_codes: 7\n")
    assert [o.code for o in rules.prescription_type_options()] == [
        o["code"] for o in CatalogRules.DEFAULT_PRESCRIPTION_TYPES
    ]
    assert len(rules.regulatory_code_options()) == 7


def test_one_bad_key_keeps_the_good_ones(tmp_path):
    rules = _rules_from(tmp_path, "prescription_required_codes: [VK]\nprescription_types: nope\n")
    assert rules.prescription_required_codes == frozenset({"VK"})
    assert {o.code: o.prescription_required for o in rules.prescription_type_options()}["VK"] is True

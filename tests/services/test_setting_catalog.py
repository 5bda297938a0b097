"""
Unit tests for the SettingCatalog loader and the bundled catalog.
"""

import pytest

from player_agent.errors import SettingCatalogError
from player_agent.schemas.setting import (
    Condition,
    ConstantRule,
    DerivedRule,
    Enforcement,
    ManualRule,
    PredicateRule,
    ValueKind,
)
from player_agent.services.setting_catalog import SettingCatalog, get_setting_catalog


# =============================================================================
# Test Data
# =============================================================================

SAMPLE_YAML = """
categories:
  windows:
    name: "Windows"
    prefix: "w_"
    settings:
      w_power:
        label: "Ultimate Performance"
        weight: 3.0
        principal: true
        rule: {type: constant, value: true}
      w_hgs:
        label: "HAGS"
        weight: 2.0
        rule:
          type: predicate
          all:
            - {field: is_nvidia, op: eq, value: true}
            - {field: vram_mb, op: ge, value: 6144}
      w_spectre:
        label: "Mitigations"
        weight: 8.0
        safety_override: true
        rule: {type: constant, value: true}
      w_broken:
        label: "Broken rule"
        rule: {type: predicate, all: [{field: warp_drive, op: eq, value: true}]}
  console:
    name: "Console Commands"
    prefix: "cf_"
    settings:
      cf_fpsmax:
        label: "fps_max"
        kind: value
        default: 400
        rule: {type: derived, function: frame_cap}
      cf_bad_weight:
        label: "negative"
        weight: -1
        rule: {type: constant, value: false}
  bios:
    name: "BIOS"
    prefix: "b_"
    settings:
      b_xmp:
        label: "XMP"
        enforcement: manual
        rule: {type: manual}
      w_power:
        label: "Duplicate id"
        rule: {type: manual}
"""


@pytest.fixture
def sample_catalog(tmp_path):
    yaml_file = tmp_path / "catalog.yaml"
    yaml_file.write_text(SAMPLE_YAML)
    return SettingCatalog(yaml_file).load()


# =============================================================================
# Test: Loading
# =============================================================================

class TestSettingCatalogLoading:

    def test_load_sample(self, sample_catalog):
        assert len(sample_catalog) == 5
        assert sample_catalog.ids() == ["w_power", "w_hgs", "w_spectre", "cf_fpsmax", "b_xmp"]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(SettingCatalogError):
            SettingCatalog(tmp_path / "missing.yaml").load()

    def test_invalid_yaml_raises(self, tmp_path):
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("categories: [unclosed")
        with pytest.raises(SettingCatalogError):
            SettingCatalog(yaml_file).load()

    def test_empty_file_raises(self, tmp_path):
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")
        with pytest.raises(SettingCatalogError):
            SettingCatalog(yaml_file).load()

    def test_lazy_load_on_first_query(self, tmp_path):
        yaml_file = tmp_path / "catalog.yaml"
        yaml_file.write_text(SAMPLE_YAML)
        catalog = SettingCatalog(yaml_file)
        assert catalog.get("w_power") is not None


# =============================================================================
# Test: Parsing
# =============================================================================

class TestSettingCatalogParsing:

    def test_constant_rule(self, sample_catalog):
        setting = sample_catalog.get("w_power")
        assert setting.rule == ConstantRule(value=True)
        assert setting.weight == 3.0
        assert setting.principal is True
        assert setting.value_kind is ValueKind.TOGGLE
        assert setting.default is False
        assert setting.enforcement is Enforcement.AUTO

    def test_predicate_rule(self, sample_catalog):
        rule = sample_catalog.get("w_hgs").rule
        assert isinstance(rule, PredicateRule)
        assert rule.all_of == (
            Condition("is_nvidia", "eq", True),
            Condition("vram_mb", "ge", 6144),
        )
        assert rule.any_of == ()

    def test_derived_value_setting(self, sample_catalog):
        setting = sample_catalog.get("cf_fpsmax")
        assert setting.value_kind is ValueKind.VALUE
        assert setting.default == "400"
        assert setting.rule == DerivedRule(function="frame_cap")

    def test_manual_rule(self, sample_catalog):
        setting = sample_catalog.get("b_xmp")
        assert isinstance(setting.rule, ManualRule)
        assert setting.recommendable is False
        assert setting.enforcement is Enforcement.MANUAL

    def test_bad_entries_are_skipped(self, sample_catalog):
        assert "w_broken" not in sample_catalog
        assert "cf_bad_weight" not in sample_catalog

    def test_duplicate_id_keeps_first_category(self, sample_catalog):
        assert sample_catalog.get("w_power").category == "windows"
        assert sample_catalog.get_category("bios").setting_ids == ["b_xmp"]


# =============================================================================
# Test: Queries
# =============================================================================

class TestSettingCatalogQueries:

    def test_by_category(self, sample_catalog):
        ids = [s.id for s in sample_catalog.get_settings_by_category("windows")]
        assert ids == ["w_power", "w_hgs", "w_spectre"]
        assert sample_catalog.get_settings_by_category("nope") == []

    def test_by_prefix(self, sample_catalog):
        assert [s.id for s in sample_catalog.get_settings_by_prefix("cf_")] == ["cf_fpsmax"]

    def test_principal_ids(self, sample_catalog):
        assert sample_catalog.get_principal_ids() == ["w_power"]

    def test_categories(self, sample_catalog):
        keys = [c.key for c in sample_catalog.get_categories()]
        assert keys == ["windows", "console", "bios"]
        assert sample_catalog.get_category("console").name == "Console Commands"


# =============================================================================
# Test: Bundled catalog
# =============================================================================

class TestBundledCatalog:

    def test_loads(self):
        catalog = get_setting_catalog()
        assert len(catalog) >= 80

    def test_singleton(self):
        assert get_setting_catalog() is get_setting_catalog()

    def test_every_setting_has_one_category_and_weight(self, catalog):
        seen = set()
        for info in catalog.get_categories():
            for setting_id in info.setting_ids:
                assert setting_id not in seen
                seen.add(setting_id)
        assert seen == set(catalog.ids())
        assert all(s.weight >= 0 for s in catalog)

    def test_ids_follow_category_prefix(self, catalog):
        for info in catalog.get_categories():
            for setting in catalog.get_settings_by_category(info.key):
                assert setting.id.startswith(info.prefix)

    def test_safety_override_settings(self, catalog):
        overrides = {s.id for s in catalog if s.safety_override}
        assert {"w_spectre", "w_vbs"} <= overrides
        assert catalog.get("w_spectre").weight > 0

    def test_bios_settings_are_manual(self, catalog):
        for setting in catalog.get_settings_by_category("bios"):
            assert setting.recommendable is False
            assert setting.weight == 0

    def test_launch_options_are_generated(self, catalog):
        assert all(
            s.enforcement is Enforcement.GENERATED
            for s in catalog.get_settings_by_category("launch")
        )

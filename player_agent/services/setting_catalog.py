"""
Setting Catalog Service.

Loads and queries settings_catalog.yaml, the static table of every tunable
setting with its category, impact weight and recommendation rule.
"""

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import yaml

from player_agent.errors import SettingCatalogError
from player_agent.schemas.hardware import HardwareProfile
from player_agent.schemas.setting import (
    CategoryInfo,
    Condition,
    ConstantRule,
    DerivedRule,
    Enforcement,
    ManualRule,
    PredicateRule,
    Rule,
    SettingDefinition,
    ValueKind,
)
from player_agent.services.recommendation.rules import DERIVED_FUNCTIONS, OPERATORS
from player_agent.utils.logger import log

# Fields a condition may reference
PROFILE_FIELDS = frozenset(f.name for f in fields(HardwareProfile)) | {"has_discrete_gpu"}


class SettingCatalog:
    """
    Loads and queries the settings catalog.

    Usage:
        catalog = SettingCatalog()
        catalog.load()

        nvidia = catalog.get_settings_by_category("nvidia")
        weight = catalog.get("w_hgs").weight
    """

    DEFAULT_PATH = Path(__file__).parent.parent / "data" / "settings_catalog.yaml"

    def __init__(self, yaml_path: Optional[Path] = None):
        self.yaml_path = yaml_path or self.DEFAULT_PATH
        self._raw_data: Dict[str, Any] = {}
        self._settings: Dict[str, SettingDefinition] = {}
        self._categories: Dict[str, CategoryInfo] = {}
        self._loaded = False

    def load(self) -> "SettingCatalog":
        """
        Load the catalog from YAML.

        Raises:
            SettingCatalogError: if the file is missing, unparseable or empty.
        """
        try:
            with open(self.yaml_path, "r", encoding="utf-8") as f:
                self._raw_data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            log.error(f"Settings catalog not found: {self.yaml_path}")
            raise SettingCatalogError(f"Settings catalog not found: {self.yaml_path}") from e
        except yaml.YAMLError as e:
            log.error(f"Failed to parse settings catalog: {e}")
            raise SettingCatalogError(f"Failed to parse settings catalog: {e}") from e

        self._parse_categories()
        if not self._settings:
            raise SettingCatalogError(f"Settings catalog has no entries: {self.yaml_path}")

        self._loaded = True
        log.info(f"Loaded {len(self._settings)} settings in {len(self._categories)} categories from {self.yaml_path}")
        return self

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    # =========================================================================
    # Parsing
    # =========================================================================

    def _parse_categories(self) -> None:
        self._settings.clear()
        self._categories.clear()

        categories = self._raw_data.get("categories")
        if not isinstance(categories, dict):
            raise SettingCatalogError("Settings catalog is missing the 'categories' section")

        for key, cat_data in categories.items():
            if not isinstance(cat_data, dict):
                log.warning(f"Skipping malformed category {key}")
                continue

            info = CategoryInfo(
                key=key,
                name=cat_data.get("name", key),
                prefix=cat_data.get("prefix", ""),
                description=cat_data.get("description"),
            )

            for setting_id, data in (cat_data.get("settings") or {}).items():
                if setting_id in self._settings:
                    # One id, one category, one weight
                    log.warning(
                        f"Duplicate setting {setting_id} in {key}; "
                        f"keeping the entry from {self._settings[setting_id].category}"
                    )
                    continue
                if not isinstance(data, dict):
                    log.warning(f"Skipping malformed setting {setting_id}")
                    continue

                try:
                    entry = self._parse_setting(setting_id, key, data)
                except (KeyError, TypeError, ValueError) as e:
                    log.warning(f"Failed to parse setting {setting_id}: {e}")
                    continue

                self._settings[setting_id] = entry
                info.setting_ids.append(setting_id)

            self._categories[key] = info

    def _parse_setting(self, setting_id: str, category: str, data: Dict[str, Any]) -> SettingDefinition:
        value_kind = ValueKind(data.get("kind", "toggle"))

        if value_kind is ValueKind.TOGGLE:
            default = data.get("default", False)
            if not isinstance(default, bool):
                raise TypeError(f"toggle default must be a boolean, got {default!r}")
        else:
            default = data.get("default", "")
            default = "" if default is None else str(default)

        weight = float(data.get("weight", 0.0))
        if weight < 0:
            raise ValueError(f"weight must be non-negative, got {weight}")

        return SettingDefinition(
            id=setting_id,
            label=data.get("label", setting_id),
            category=category,
            value_kind=value_kind,
            default=default,
            weight=weight,
            rule=self._parse_rule(data.get("rule"), value_kind),
            enforcement=Enforcement(data.get("enforcement", "auto")),
            description=data.get("description", ""),
            principal=bool(data.get("principal", False)),
            safety_override=bool(data.get("safety_override", False)),
        )

    def _parse_rule(self, data: Any, value_kind: ValueKind) -> Rule:
        if not isinstance(data, dict):
            raise TypeError("rule must be a mapping")

        rule_type = data.get("type")
        if rule_type == "constant":
            value = data["value"]
            if value_kind is ValueKind.TOGGLE:
                if not isinstance(value, bool):
                    raise TypeError(f"toggle constant must be a boolean, got {value!r}")
                return ConstantRule(value=value)
            return ConstantRule(value=str(value))

        if rule_type == "predicate":
            if value_kind is not ValueKind.TOGGLE:
                raise ValueError("predicate rules only apply to toggles")
            all_of = tuple(self._parse_condition(c) for c in data.get("all") or [])
            any_of = tuple(self._parse_condition(c) for c in data.get("any") or [])
            if not all_of and not any_of:
                raise ValueError("predicate rule has no conditions")
            return PredicateRule(all_of=all_of, any_of=any_of)

        if rule_type == "derived":
            function = data.get("function")
            if function not in DERIVED_FUNCTIONS:
                raise ValueError(f"unknown derived function {function!r}")
            return DerivedRule(function=function)

        if rule_type == "manual":
            return ManualRule()

        raise ValueError(f"unknown rule type {rule_type!r}")

    def _parse_condition(self, data: Any) -> Condition:
        if not isinstance(data, dict):
            raise TypeError("condition must be a mapping")
        field_name = data["field"]
        op = data.get("op", "eq")
        if field_name not in PROFILE_FIELDS:
            raise ValueError(f"unknown profile field {field_name!r}")
        if op not in OPERATORS:
            raise ValueError(f"unknown operator {op!r}")
        return Condition(field=field_name, op=op, value=data["value"])

    # =========================================================================
    # Queries
    # =========================================================================

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._settings)

    def __contains__(self, setting_id: str) -> bool:
        self._ensure_loaded()
        return setting_id in self._settings

    def __iter__(self) -> Iterator[SettingDefinition]:
        self._ensure_loaded()
        return iter(self._settings.values())

    def get(self, setting_id: str) -> Optional[SettingDefinition]:
        self._ensure_loaded()
        return self._settings.get(setting_id)

    def ids(self) -> List[str]:
        self._ensure_loaded()
        return list(self._settings.keys())

    def get_categories(self) -> List[CategoryInfo]:
        self._ensure_loaded()
        return list(self._categories.values())

    def get_category(self, key: str) -> Optional[CategoryInfo]:
        self._ensure_loaded()
        return self._categories.get(key)

    def get_settings_by_category(self, category: str) -> List[SettingDefinition]:
        """All settings in a category, in catalog order."""
        self._ensure_loaded()
        info = self._categories.get(category)
        if not info:
            return []
        return [self._settings[sid] for sid in info.setting_ids]

    def get_settings_by_prefix(self, prefix: str) -> List[SettingDefinition]:
        self._ensure_loaded()
        return [s for s in self._settings.values() if s.id.startswith(prefix)]

    def get_principal_ids(self) -> List[str]:
        self._ensure_loaded()
        return [s.id for s in self._settings.values() if s.principal]


# =============================================================================
# Module-level convenience
# =============================================================================

_catalog_instance: Optional[SettingCatalog] = None


def get_setting_catalog() -> SettingCatalog:
    """Get the shared catalog instance, loading it on first use."""
    global _catalog_instance
    if _catalog_instance is None:
        _catalog_instance = SettingCatalog().load()
    return _catalog_instance

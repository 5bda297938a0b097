"""
Recommendation Rule Engine.

Maps a HardwareProfile to a recommended value for every catalog setting
that can be enforced programmatically. The engine is pure: it reads the
catalog and the profile and returns a fresh dict on every call.

Policy:
- ManualRule settings (BIOS guidance, status checks) are left out entirely.
- Safety-override settings are always recommended False, whatever their
  rule says. Users may still enable them by hand.
"""

from typing import Dict, Iterable, List, Optional

from player_agent.schemas.hardware import HardwareProfile
from player_agent.schemas.setting import SettingDefinition, SettingValue
from player_agent.services.recommendation.rules import evaluate_rule
from player_agent.services.setting_catalog import SettingCatalog, get_setting_catalog
from player_agent.utils.logger import get_logger

logger = get_logger(__name__)

RecommendationSet = Dict[str, SettingValue]


class RecommendationEngine:
    def __init__(self, catalog: Optional[SettingCatalog] = None):
        self.catalog = catalog or get_setting_catalog()

    def recommend(self, profile: HardwareProfile) -> RecommendationSet:
        """Recommended value for every recommendable setting in the catalog."""
        return self._evaluate(self.catalog, profile)

    def recommend_scoped(self, profile: HardwareProfile, scope: str) -> RecommendationSet:
        """
        Recommendations restricted to one category.

        Args:
            scope: category key ("nvidia"), category display name ("NVIDIA")
                or setting id prefix ("nv_").
        """
        definitions = self.resolve_scope(scope)
        if not definitions:
            logger.warning(f"Recommendation scope matched no settings: {scope!r}")
        return self._evaluate(definitions, profile)

    def recommend_value(self, setting_id: str, profile: HardwareProfile) -> Optional[SettingValue]:
        """Recommendation for a single setting, None when it is not recommendable."""
        definition = self.catalog.get(setting_id)
        if definition is None:
            return None
        return self._evaluate_one(definition, profile)

    def resolve_scope(self, scope: str) -> List[SettingDefinition]:
        category = self.catalog.get_category(scope)
        if category is None:
            lowered = scope.lower()
            for info in self.catalog.get_categories():
                if info.name.lower() == lowered:
                    category = info
                    break
        if category is not None:
            return self.catalog.get_settings_by_category(category.key)
        return self.catalog.get_settings_by_prefix(scope)

    def _evaluate(self, definitions: Iterable[SettingDefinition], profile: HardwareProfile) -> RecommendationSet:
        result: RecommendationSet = {}
        for definition in definitions:
            value = self._evaluate_one(definition, profile)
            if value is not None:
                result[definition.id] = value
        return result

    def _evaluate_one(self, definition: SettingDefinition, profile: HardwareProfile) -> Optional[SettingValue]:
        if not definition.recommendable:
            return None
        if definition.safety_override:
            return False
        return evaluate_rule(definition.rule, profile)

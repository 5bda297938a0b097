"""
Impact Estimation Service.

Sums the impact weights of the settings a user has selected, skipping the
ones the host already reports as applied so their gain is not counted twice.
"""

import math
from typing import Mapping, Optional

from player_agent.config.constants import BASELINE_FPS
from player_agent.schemas.impact import ImpactEstimate
from player_agent.schemas.setting import SettingDefinition, SettingValue
from player_agent.schemas.system_state import SystemState
from player_agent.services.setting_catalog import SettingCatalog, get_setting_catalog


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_on(definition: SettingDefinition, value: Optional[SettingValue]) -> bool:
    """
    Whether a selected value counts as enabled.

    Toggles are on when True. Value settings are on when they hold a
    non-empty value different from the catalog default.
    """
    if definition.is_toggle:
        return value is True
    if value is None or isinstance(value, bool):
        return False
    text = str(value).strip()
    return bool(text) and text != str(definition.default)


class ImpactEstimator:
    """
    Usage:
        estimator = ImpactEstimator()
        estimate = estimator.estimate(selection, system_state)
        print(f"+{estimate.percent}% (~{estimate.fps} FPS)")
    """

    def __init__(self, catalog: Optional[SettingCatalog] = None, baseline_fps: int = BASELINE_FPS):
        self.catalog = catalog or get_setting_catalog()
        self.baseline_fps = baseline_fps

    def estimate(
        self,
        selection: Mapping[str, SettingValue],
        system_state: Optional[Mapping[str, SystemState]] = None,
    ) -> ImpactEstimate:
        system_state = system_state or {}
        percent = 0.0
        contributing = []
        already_applied = []

        for setting_id, value in selection.items():
            definition = self.catalog.get(setting_id)
            if definition is None or definition.weight <= 0:
                continue
            if not is_on(definition, value):
                continue
            if SystemState.from_raw(system_state.get(setting_id)) is SystemState.APPLIED:
                already_applied.append(setting_id)
                continue
            percent += definition.weight
            contributing.append(setting_id)

        percent = round(percent, 2)
        return ImpactEstimate(
            percent=percent,
            fps=round_half_up(self.baseline_fps * percent / 100),
            contributing_ids=contributing,
            already_applied_ids=already_applied,
        )


def estimate(
    selection: Mapping[str, SettingValue],
    system_state: Optional[Mapping[str, SystemState]] = None,
) -> ImpactEstimate:
    """Estimate against the bundled catalog."""
    return ImpactEstimator().estimate(selection, system_state)

"""
Tests for the impact estimation model.
"""

import pytest

from player_agent.schemas.system_state import SystemState
from player_agent.services.impact_service import ImpactEstimator, is_on, round_half_up
from player_agent.services.setting_catalog import SettingCatalog

IMPACT_YAML = """
categories:
  windows:
    name: "Windows"
    prefix: "w_"
    settings:
      w_a: {label: "A", weight: 3.0, rule: {type: constant, value: true}}
      w_b: {label: "B", weight: 5.0, rule: {type: constant, value: true}}
      w_c: {label: "C", weight: 10.0, rule: {type: constant, value: true}}
      w_zero: {label: "Zero", rule: {type: constant, value: true}}
      w_risky:
        label: "Risky"
        weight: 8.0
        safety_override: true
        rule: {type: constant, value: true}
  console:
    name: "Console"
    prefix: "cf_"
    settings:
      cf_cap:
        label: "fps_max"
        kind: value
        default: "400"
        weight: 2.0
        rule: {type: derived, function: frame_cap}
"""


@pytest.fixture
def estimator(tmp_path):
    yaml_file = tmp_path / "impact.yaml"
    yaml_file.write_text(IMPACT_YAML)
    return ImpactEstimator(SettingCatalog(yaml_file).load())


class TestRoundHalfUp:

    @pytest.mark.parametrize("value, expected", [
        (12.5, 13), (12.49, 12), (0.5, 1), (2.5, 3), (0.0, 0),
    ])
    def test_values(self, value, expected):
        assert round_half_up(value) == expected


class TestEstimate:

    def test_scenario_applied_excluded(self, estimator):
        selection = {"w_a": True, "w_b": True, "w_c": False}
        state = {"w_a": SystemState.APPLIED, "w_b": SystemState.NOT_APPLIED}

        result = estimator.estimate(selection, state)

        assert result.percent == 5.0
        assert result.fps == 13
        assert result.contributing_ids == ["w_b"]
        assert result.already_applied_ids == ["w_a"]

    def test_empty_selection(self, estimator):
        result = estimator.estimate({}, {})
        assert result.percent == 0
        assert result.fps == 0

    def test_zero_weight_and_unknown_ids_contribute_nothing(self, estimator):
        result = estimator.estimate({"w_zero": True, "x_unknown": True}, {})
        assert result.percent == 0
        assert result.contributing_ids == []

    def test_safety_override_counts_when_selected(self, estimator):
        assert estimator.estimate({"w_risky": True}).percent == 8.0

    def test_unknown_state_still_counts(self, estimator):
        result = estimator.estimate({"w_a": True}, {"w_a": SystemState.UNKNOWN})
        assert result.percent == 3.0

    def test_raw_checker_readings_accepted(self, estimator):
        result = estimator.estimate({"w_a": True, "w_b": True}, {"w_a": True, "w_b": None})
        assert result.percent == 5.0

    def test_monotonic_as_settings_turn_on(self, estimator):
        order = ["w_a", "w_b", "w_c", "w_risky"]
        selection = {}
        previous = 0.0
        for setting_id in order:
            selection[setting_id] = True
            current = estimator.estimate(selection).percent
            assert current >= previous
            previous = current

    def test_applied_setting_toggle_has_no_effect(self, estimator):
        state = {"w_c": SystemState.APPLIED}
        off = estimator.estimate({"w_a": True, "w_c": False}, state)
        on = estimator.estimate({"w_a": True, "w_c": True}, state)
        assert off.percent == on.percent == 3.0

    def test_inputs_not_mutated(self, estimator):
        selection = {"w_a": True, "w_b": True}
        state = {"w_a": SystemState.APPLIED}
        estimator.estimate(selection, state)
        assert selection == {"w_a": True, "w_b": True}
        assert state == {"w_a": SystemState.APPLIED}

    def test_value_setting_counts_only_when_changed(self, estimator):
        assert estimator.estimate({"cf_cap": "400"}).percent == 0
        assert estimator.estimate({"cf_cap": ""}).percent == 0
        assert estimator.estimate({"cf_cap": "288"}).percent == 2.0

    def test_custom_baseline(self, tmp_path):
        yaml_file = tmp_path / "impact.yaml"
        yaml_file.write_text(IMPACT_YAML)
        estimator = ImpactEstimator(SettingCatalog(yaml_file).load(), baseline_fps=100)
        assert estimator.estimate({"w_c": True}).fps == 10


class TestIsOn:

    def test_toggle(self, estimator):
        definition = estimator.catalog.get("w_a")
        assert is_on(definition, True) is True
        assert is_on(definition, False) is False
        assert is_on(definition, "true") is False
        assert is_on(definition, None) is False

    def test_value(self, estimator):
        definition = estimator.catalog.get("cf_cap")
        assert is_on(definition, "0") is True
        assert is_on(definition, " 400 ") is False
        assert is_on(definition, True) is False

"""
End-to-end scenarios across classifier, rule engine, impact model and schema store.
"""

import pytest
from unittest.mock import MagicMock

from player_agent.config.constants import BASELINE_FPS
from player_agent.schemas.hardware import HardwareTier
from player_agent.schemas.system_state import SystemState
from player_agent.services.database.engine import DatabaseManager
from player_agent.services.database.kv_store import SQLKeyValueStore
from player_agent.services.hardware_service import classify
from player_agent.services.impact_service import ImpactEstimator, round_half_up
from player_agent.services.layout_session import LayoutEditor
from player_agent.services.optimizer_service import OptimizerService
from player_agent.services.recommendation.engine import RecommendationEngine
from player_agent.services.schema_store import SchemaStore
from player_agent.services.setting_catalog import SettingCatalog

SCENARIO_YAML = """
categories:
  windows:
    name: "Windows"
    prefix: "w_"
    settings:
      w_a: {label: "A", weight: 3.0, rule: {type: constant, value: true}}
      w_b: {label: "B", weight: 5.0, rule: {type: constant, value: true}}
      w_c: {label: "C", weight: 10.0, rule: {type: constant, value: true}}
"""


class TestEndToEndScenarios:

    def test_low_end_machine_gets_no_gpu_scheduling(self, catalog):
        profile = classify({"vram_mb": 2048, "cpu_cores": 2, "ram_gb": 6})

        assert profile.tier is HardwareTier.LOW_END
        assert RecommendationEngine(catalog).recommend(profile)["w_hgs"] is False

    @pytest.mark.parametrize("refresh, expected", [(144, "288"), (240, "0")])
    def test_frame_cap_from_refresh_rate(self, catalog, refresh, expected):
        profile = classify({"refresh_rate_hz": refresh})
        recs = RecommendationEngine(catalog).recommend(profile)

        assert recs["ae_fps"] == expected
        assert recs["cf_fpsmax"] == expected

    def test_estimate_skips_applied_setting(self, tmp_path):
        yaml_file = tmp_path / "scenario.yaml"
        yaml_file.write_text(SCENARIO_YAML)
        estimator = ImpactEstimator(SettingCatalog(yaml_file).load())

        result = estimator.estimate(
            {"w_a": True, "w_b": True, "w_c": False},
            {"w_a": SystemState.APPLIED, "w_b": SystemState.NOT_APPLIED},
        )

        assert result.percent == 5
        assert result.fps == round_half_up(BASELINE_FPS * 0.05) == 13

    def test_deleting_only_schema_leaves_active_default(self, store):
        schema = store.create("X")
        assert [s.name for s in store.list()] == ["X"]

        store.delete(schema.id)

        schemas = store.list()
        assert [s.name for s in schemas] == ["Default"]
        assert store.get_active().id == schemas[0].id


class TestSqlitePersistence:
    """The full flow over a real SQLite key-value store."""

    @pytest.fixture
    def sql_store(self, tmp_path, catalog, clock):
        manager = DatabaseManager(db_path=tmp_path / "player_agent.db")
        yield SchemaStore(SQLKeyValueStore(manager), catalog=catalog, clock=clock)
        manager.dispose()

    def test_session_to_disk_and_back(self, sql_store, tmp_path, catalog):
        telemetry = MagicMock()
        telemetry.probe.return_value = {
            "gpu_name": "NVIDIA GeForce RTX 4070",
            "vram_mb": 12288,
            "cpu_cores": 8,
            "cpu_threads": 16,
            "ram_gb": 32,
            "refresh_rate_hz": 165,
        }
        service = OptimizerService(sql_store, telemetry=telemetry, catalog=catalog)
        schema = service.startup()
        service.accept_recommendations()
        service.persist_selection()

        editor = LayoutEditor(sql_store)
        editor.toggle_star(schema.id, "nv_vsync")
        editor.enter(schema.id, "secondary:network")
        editor.remove("n_tcp")
        editor.save(service.selection)

        manager = DatabaseManager(db_path=tmp_path / "player_agent.db")
        try:
            stored = SchemaStore(SQLKeyValueStore(manager), catalog=catalog).get_active()
        finally:
            manager.dispose()
        assert stored.id == schema.id
        assert stored.values["cf_fpsmax"] == "330"
        assert stored.values["w_hgs"] is True
        assert stored.bucket_of("nv_vsync") == "principal"
        assert stored.bucket_of("n_tcp") is None
        visible = stored.visible_ids()
        assert len(visible) == len(set(visible))

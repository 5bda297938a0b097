"""
Optimizer Service.

Coordinates the core for a host UI: hardware profile -> recommendations ->
user selection -> impact estimate, with the selection persisted in the
active schema and applied through the host's mutation service.
"""

from typing import Dict, Iterable, Optional

from player_agent.config.constants import BASELINE_FPS, CATEGORY_BUCKETS
from player_agent.config.manager import config_manager
from player_agent.schemas.hardware import HardwareProfile
from player_agent.schemas.impact import ImpactEstimate
from player_agent.schemas.schema import Schema
from player_agent.schemas.setting import SettingValue
from player_agent.schemas.system_state import ApplyReport, ApplyStatus, SystemState
from player_agent.services.hardware_service import HardwareProfileService
from player_agent.services.impact_service import ImpactEstimator, is_on
from player_agent.services.recommendation.engine import RecommendationEngine, RecommendationSet
from player_agent.services.schema_store import SchemaStore
from player_agent.services.setting_catalog import SettingCatalog, get_setting_catalog
from player_agent.utils.logger import log


class OptimizerService:
    """
    Usage:
        service = OptimizerService(store, telemetry=provider, state_checker=checker, host=host)
        service.startup()
        service.accept_recommendations("nvidia")
        service.refresh_system_state()
        print(service.estimate())
        service.apply()
        service.persist_selection()
    """

    def __init__(
        self,
        store: SchemaStore,
        telemetry=None,
        state_checker=None,
        host=None,
        catalog: Optional[SettingCatalog] = None,
        baseline_fps: Optional[int] = None,
    ):
        self.catalog = catalog or get_setting_catalog()
        self.store = store
        self.hardware = HardwareProfileService(telemetry)
        self.state_checker = state_checker
        self.host = host
        self.engine = RecommendationEngine(self.catalog)
        self.estimator = ImpactEstimator(
            self.catalog,
            baseline_fps=baseline_fps or config_manager.get("baseline_fps", BASELINE_FPS),
        )

        self.selection: Dict[str, SettingValue] = {}
        self.system_state: Dict[str, SystemState] = {}
        self.active_schema: Optional[Schema] = None

    def startup(self) -> Schema:
        """Migrate legacy data, resolve the active schema and load its values."""
        migrated = self.store.migrate_legacy()
        if migrated:
            log.info(f"Startup migrated {migrated} legacy profile(s)")
        self.active_schema = self.store.ensure_active()
        self.selection = dict(self.active_schema.values)
        log.info(f"Active schema: '{self.active_schema.name}' ({len(self.selection)} saved values)")
        return self.active_schema

    def switch_schema(self, schema_id: str) -> Optional[Schema]:
        if not self.store.set_active(schema_id):
            return None
        return self.startup()

    # =========================================================================
    # Profile and recommendations
    # =========================================================================

    def get_profile(self, force_rescan: bool = False) -> HardwareProfile:
        if force_rescan:
            self.hardware.invalidate()
        return self.hardware.get_profile()

    def recommendations(self, scope: Optional[str] = None) -> RecommendationSet:
        profile = self.get_profile()
        if scope:
            return self.engine.recommend_scoped(profile, scope)
        return self.engine.recommend(profile)

    def accept_recommendations(self, scope: Optional[str] = None) -> RecommendationSet:
        """Copy recommended values into the current selection."""
        recommended = self.recommendations(scope)
        self.selection.update(recommended)
        log.info(f"Accepted {len(recommended)} recommendation(s){f' for {scope}' if scope else ''}")
        return recommended

    def set_value(self, setting_id: str, value: SettingValue) -> None:
        self.selection[setting_id] = value

    # =========================================================================
    # System state and estimate
    # =========================================================================

    def refresh_system_state(self, ids: Optional[Iterable[str]] = None) -> Dict[str, SystemState]:
        ids = list(ids) if ids is not None else self.catalog.ids()
        if self.state_checker is None:
            readings = {}
        else:
            try:
                readings = self.state_checker.check(ids)
            except Exception as e:
                log.warning(f"System state check failed: {e}")
                readings = {}

        for setting_id in ids:
            self.system_state[setting_id] = SystemState.from_raw(readings.get(setting_id))
        return self.system_state

    def estimate(self) -> ImpactEstimate:
        return self.estimator.estimate(self.selection, self.system_state)

    def enabled_count(self, group: str = "console") -> int:
        """Number of enabled settings whose category maps to a bucket group."""
        count = 0
        for setting_id, value in self.selection.items():
            definition = self.catalog.get(setting_id)
            if definition is None or CATEGORY_BUCKETS.get(definition.category) != group:
                continue
            if is_on(definition, value):
                count += 1
        return count

    # =========================================================================
    # Apply and persist
    # =========================================================================

    def apply(self, scope: Optional[str] = None) -> ApplyReport:
        """Send the selection (or one category of it) to the host mutation service."""
        if self.host is None:
            log.error("No host mutation service configured; nothing applied")
            return ApplyReport(status=ApplyStatus.FAILURE, errors=["No host mutation service configured"])

        selection = dict(self.selection)
        if scope:
            scoped_ids = {d.id for d in self.engine.resolve_scope(scope)}
            selection = {k: v for k, v in selection.items() if k in scoped_ids}

        report = self.host.apply(selection, scope)
        if report.status is ApplyStatus.SUCCESS:
            log.info(f"Applied {len(selection)} setting(s): {report.counts}")
        elif report.status is ApplyStatus.PARTIAL:
            log.warning(f"Applied with {len(report.errors)} error(s): {report.errors}")
        else:
            log.error(f"Apply failed: {report.errors}")

        self.refresh_system_state(selection.keys())
        return report

    def persist_selection(self) -> bool:
        if self.active_schema is None:
            self.active_schema = self.store.ensure_active()
        if not self.store.save_values(self.active_schema.id, self.selection):
            return False
        self.active_schema = self.store.get(self.active_schema.id)
        return True

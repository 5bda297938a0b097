"""
Layout Edit Session.

A two-state machine (VIEWING / EDITING) for rearranging one bucket of a
schema's layout. Changes stay in a working list until save(); cancel()
leaves the stored bucket exactly as it was when the session started.

Starring is independent of the session: it moves an id between the
principal bucket and its secondary bucket immediately.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from player_agent.config.constants import CUSTOM_BUCKET_GROUP, PRINCIPAL_BUCKET, SECONDARY_PREFIX
from player_agent.schemas.schema import CustomSetting
from player_agent.schemas.setting import SettingValue
from player_agent.services.schema_store import SchemaStore, is_valid_bucket, secondary_bucket
from player_agent.utils.logger import get_logger

logger = get_logger(__name__)

NAVIGATION_NOTICE = "Save or cancel your layout changes first."


class SessionState(Enum):
    VIEWING = "viewing"
    EDITING = "editing"


@dataclass
class LayoutEditSession:
    schema_id: str
    bucket_key: str
    snapshot: List[str]
    working: List[str]
    pending_custom: Dict[str, CustomSetting] = field(default_factory=dict)


class LayoutEditor:
    """
    Usage:
        editor = LayoutEditor(store)
        editor.enter(schema.id, "principal")
        editor.move("w_hpet", 0)
        editor.remove("w_dvr")
        editor.save(values)
    """

    def __init__(self, store: SchemaStore):
        self.store = store
        self.session: Optional[LayoutEditSession] = None
        self.notice: Optional[str] = None

    @property
    def state(self) -> SessionState:
        return SessionState.EDITING if self.session else SessionState.VIEWING

    @property
    def is_editing(self) -> bool:
        return self.session is not None

    def working_ids(self) -> List[str]:
        return list(self.session.working) if self.session else []

    # =========================================================================
    # Transitions
    # =========================================================================

    def enter(self, schema_id: Optional[str], bucket_key: str) -> bool:
        if self.session is not None:
            logger.debug(f"enter() ignored: already editing {self.session.bucket_key}")
            return False
        if not is_valid_bucket(bucket_key):
            logger.warning(f"enter() ignored: invalid bucket {bucket_key!r}")
            return False

        schema = self.store.get(schema_id) if schema_id else None
        if schema is None:
            schema = self.store.ensure_active()

        ids = list(schema.layout.get(bucket_key, []))
        self.session = LayoutEditSession(
            schema_id=schema.id,
            bucket_key=bucket_key,
            snapshot=list(ids),
            working=ids,
        )
        self.notice = None
        logger.debug(f"Editing {bucket_key} of schema {schema.id}")
        return True

    def save(self, values: Optional[Mapping[str, SettingValue]] = None) -> bool:
        """Persist the working list, pending custom settings and values."""
        session = self.session
        if session is None:
            logger.debug("save() ignored: not editing")
            return False

        if not self.store.set_layout_bucket(session.schema_id, session.bucket_key, session.working):
            logger.warning(f"Layout of {session.bucket_key} was not saved; session stays open")
            return False
        if session.pending_custom:
            self.store.save_custom_settings(session.schema_id, session.pending_custom.values())
        if values is not None:
            self.store.save_values(session.schema_id, values)

        self._close()
        return True

    def cancel(self, values: Optional[Mapping[str, SettingValue]] = None) -> bool:
        """Drop layout changes. Values are still persisted."""
        session = self.session
        if session is None:
            logger.debug("cancel() ignored: not editing")
            return False
        if values is not None:
            self.store.save_values(session.schema_id, values)
        self._close()
        return True

    def request_navigation(self, target: str) -> bool:
        """False while editing; the caller must stay on the current view."""
        if self.session is None:
            self.notice = None
            return True
        self.notice = NAVIGATION_NOTICE
        logger.info(f"Navigation to {target!r} blocked while editing {self.session.bucket_key}")
        return False

    def _close(self) -> None:
        self.session = None
        self.notice = None

    # =========================================================================
    # Edits (EDITING only)
    # =========================================================================

    def _require_session(self, action: str) -> Optional[LayoutEditSession]:
        if self.session is None:
            logger.debug(f"{action}() ignored: not editing")
        return self.session

    def move(self, setting_id: str, index: int) -> bool:
        session = self._require_session("move")
        if session is None:
            return False
        if setting_id not in session.working:
            logger.warning(f"move() ignored: {setting_id} is not in {session.bucket_key}")
            return False
        session.working.remove(setting_id)
        index = max(0, min(index, len(session.working)))
        session.working.insert(index, setting_id)
        return True

    def reorder(self, ordered_ids: List[str]) -> bool:
        session = self._require_session("reorder")
        if session is None:
            return False
        if len(ordered_ids) != len(session.working) or set(ordered_ids) != set(session.working):
            logger.warning("reorder() ignored: not a permutation of the current bucket")
            return False
        session.working = list(ordered_ids)
        return True

    def remove(self, setting_id: str) -> bool:
        """Hide an id. The setting itself stays in the catalog."""
        session = self._require_session("remove")
        if session is None:
            return False
        if setting_id not in session.working:
            logger.warning(f"remove() ignored: {setting_id} is not in {session.bucket_key}")
            return False
        session.working.remove(setting_id)
        session.pending_custom.pop(setting_id, None)
        return True

    def available_ids(self) -> List[str]:
        """Ids belonging to this bucket that are hidden everywhere."""
        session = self.session
        if session is None:
            return []
        schema = self.store.get(session.schema_id)
        if schema is None:
            return []

        visible = set(session.working)
        for key, ids in schema.layout.items():
            if key != session.bucket_key:
                visible.update(ids)

        candidates = self.store.bucket_settings(session.bucket_key)
        for custom in schema.custom_settings.values():
            if session.bucket_key == PRINCIPAL_BUCKET or custom.bucket == session.bucket_key:
                candidates.append(custom.id)
        return [sid for sid in candidates if sid not in visible]

    def add(self, setting_id: str) -> bool:
        session = self._require_session("add")
        if session is None:
            return False
        if setting_id not in self.available_ids():
            logger.warning(f"add() ignored: {setting_id} is not available for {session.bucket_key}")
            return False
        session.working.append(setting_id)
        return True

    def add_custom(self, label: str, value: SettingValue = "") -> Optional[str]:
        """Define an ad-hoc setting and place it in the bucket. Registered on save()."""
        session = self._require_session("add_custom")
        if session is None:
            return None
        label = label.strip()
        if not label:
            logger.warning("add_custom() ignored: empty label")
            return None

        if session.bucket_key.startswith(SECONDARY_PREFIX):
            bucket = session.bucket_key
        else:
            bucket = secondary_bucket(CUSTOM_BUCKET_GROUP)
        custom = CustomSetting(id=f"custom_{uuid.uuid4().hex[:8]}", label=label, value=value, bucket=bucket)
        session.pending_custom[custom.id] = custom
        session.working.append(custom.id)
        return custom.id

    # =========================================================================
    # Star (always available)
    # =========================================================================

    def toggle_star(self, schema_id: str, setting_id: str) -> bool:
        """
        Move an id into the principal bucket, or back to its secondary bucket.
        Persisted immediately; cancel() does not undo it.
        """
        session = self.session
        if session and setting_id in session.pending_custom:
            logger.warning(f"toggle_star() ignored: {setting_id} is not saved yet")
            return False

        schema = self.store.get(schema_id)
        if schema is None:
            logger.warning(f"toggle_star() ignored: unknown schema {schema_id}")
            return False

        if setting_id not in self.store.catalog and setting_id not in schema.custom_settings:
            logger.warning(f"toggle_star() ignored: unknown setting {setting_id}")
            return False

        source = schema.bucket_of(setting_id)
        if source == PRINCIPAL_BUCKET:
            target = self.store.home_bucket(schema, setting_id)
        else:
            target = PRINCIPAL_BUCKET

        if source is not None:
            remaining = [sid for sid in schema.layout[source] if sid != setting_id]
            if not self.store.set_layout_bucket(schema.id, source, remaining):
                return False
        target_ids = [sid for sid in schema.layout.get(target, []) if sid != setting_id]
        if not self.store.set_layout_bucket(schema.id, target, target_ids + [setting_id]):
            return False

        if session and session.schema_id == schema.id:
            self._sync_star(session, setting_id, target)
        logger.debug(f"Starred {setting_id}: {source} -> {target}")
        return True

    @staticmethod
    def _sync_star(session: LayoutEditSession, setting_id: str, target: str) -> None:
        """Keep the open session consistent with a star that touched its bucket."""
        for ids in (session.snapshot, session.working):
            if setting_id in ids:
                ids.remove(setting_id)
            if session.bucket_key == target:
                ids.append(setting_id)

"""
Schema Store.

Persists the user's schemas (named bundles of setting values plus a view
layout) and the active-schema pointer in a key-value store:

    schemas           JSON array of Schema.to_dict() records
    active_schema_id  id of the active schema

Every mutation re-reads and re-writes the whole collection. The store is
never left empty: a read on an empty store creates the "Default" schema.

Layout invariant: a visible setting id sits in exactly one bucket.
set_layout_bucket() rejects writes that would break it.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from player_agent.config.constants import (
    CATEGORY_BUCKETS,
    CUSTOM_BUCKET_GROUP,
    DEFAULT_SCHEMA_NAME,
    KV_ACTIVE_KEY,
    KV_LEGACY_PROFILES_KEY,
    KV_SCHEMAS_KEY,
    LEGACY_VALUE_SUFFIX,
    PRINCIPAL_BUCKET,
    SCHEMA_FORMAT_VERSION,
    SECONDARY_PREFIX,
)
from player_agent.errors import SchemaImportError
from player_agent.schemas.schema import CustomSetting, Schema
from player_agent.schemas.setting import SettingValue, ValueKind
from player_agent.services.setting_catalog import SettingCatalog, get_setting_catalog
from player_agent.utils.logger import log


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def secondary_bucket(group: str) -> str:
    return f"{SECONDARY_PREFIX}{group}"


def is_valid_bucket(bucket_key: str) -> bool:
    return bucket_key == PRINCIPAL_BUCKET or (
        bucket_key.startswith(SECONDARY_PREFIX) and len(bucket_key) > len(SECONDARY_PREFIX)
    )


def _clean_values(values: Mapping[str, Any]) -> Dict[str, SettingValue]:
    return {str(k): v for k, v in values.items() if isinstance(v, (bool, str))}


class SchemaStore:
    """
    Usage:
        store = SchemaStore(get_kv_store())
        store.migrate_legacy()
        active = store.ensure_active()
        store.save_values(active.id, {"w_power": True})
    """

    def __init__(
        self,
        kv=None,
        catalog: Optional[SettingCatalog] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if kv is None:
            from player_agent.services.database.kv_store import get_kv_store
            kv = get_kv_store()
        self.kv = kv
        self.catalog = catalog or get_setting_catalog()
        self.clock = clock or _utcnow

    # =========================================================================
    # Persistence
    # =========================================================================

    def _timestamp(self) -> str:
        return self.clock().isoformat()

    def _load(self) -> List[Schema]:
        raw = self.kv.get(KV_SCHEMAS_KEY)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
            return [Schema.from_dict(item) for item in data]
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            log.error(f"Stored schemas are corrupt, resetting to an empty collection: {e}")
            return []

    def _save(self, schemas: List[Schema]) -> None:
        self.kv.set(KV_SCHEMAS_KEY, json.dumps([s.to_dict() for s in schemas]))

    @staticmethod
    def _find(schemas: List[Schema], schema_id: str) -> Optional[Schema]:
        for schema in schemas:
            if schema.id == schema_id:
                return schema
        return None

    # =========================================================================
    # Layout helpers
    # =========================================================================

    def bucket_for_category(self, category: str) -> str:
        return secondary_bucket(CATEGORY_BUCKETS.get(category, CUSTOM_BUCKET_GROUP))

    def home_bucket(self, schema: Schema, setting_id: str) -> str:
        """Secondary bucket a setting belongs to when it is not starred."""
        definition = self.catalog.get(setting_id)
        if definition is not None:
            return self.bucket_for_category(definition.category)
        custom = schema.custom_settings.get(setting_id)
        if custom is not None and custom.bucket.startswith(SECONDARY_PREFIX):
            return custom.bucket
        return secondary_bucket(CUSTOM_BUCKET_GROUP)

    def default_layout(self) -> Dict[str, List[str]]:
        """Principal ids first, then every other catalog id in its category's bucket."""
        layout: Dict[str, List[str]] = {PRINCIPAL_BUCKET: []}
        for definition in self.catalog:
            if definition.principal:
                layout[PRINCIPAL_BUCKET].append(definition.id)
            else:
                layout.setdefault(self.bucket_for_category(definition.category), []).append(definition.id)
        return layout

    def bucket_settings(self, bucket_key: str) -> List[str]:
        """Catalog ids whose category maps to a secondary bucket (all ids for principal)."""
        if bucket_key == PRINCIPAL_BUCKET:
            return self.catalog.ids()
        return [
            d.id for d in self.catalog
            if self.bucket_for_category(d.category) == bucket_key
        ]

    def _new_schema(self, name: str, values: Optional[Mapping[str, Any]] = None) -> Schema:
        now = self._timestamp()
        return Schema(
            id=uuid.uuid4().hex,
            name=name,
            created_at=now,
            updated_at=now,
            layout=self.default_layout(),
            values=_clean_values(values or {}),
        )

    # =========================================================================
    # CRUD
    # =========================================================================

    def list(self) -> List[Schema]:
        schemas = self._load()
        if not schemas:
            return [self.create_default()]
        return schemas

    def get(self, schema_id: str) -> Optional[Schema]:
        return self._find(self.list(), schema_id)

    def create(self, name: str) -> Schema:
        schema = self._new_schema(name.strip() or DEFAULT_SCHEMA_NAME)
        schemas = self._load()
        schemas.append(schema)
        self._save(schemas)
        log.info(f"Created schema '{schema.name}' ({schema.id})")
        return schema

    def create_default(self) -> Schema:
        return self.create(DEFAULT_SCHEMA_NAME)

    def rename(self, schema_id: str, name: str) -> bool:
        name = name.strip()
        if not name:
            log.warning("Refusing to rename schema to an empty name")
            return False
        schemas = self._load()
        schema = self._find(schemas, schema_id)
        if schema is None:
            log.warning(f"Cannot rename unknown schema {schema_id}")
            return False
        schema.name = name
        schema.updated_at = self._timestamp()
        self._save(schemas)
        return True

    def delete(self, schema_id: str) -> bool:
        schemas = self._load()
        schema = self._find(schemas, schema_id)
        if schema is None:
            log.warning(f"Cannot delete unknown schema {schema_id}")
            return False

        schemas.remove(schema)
        self._save(schemas)
        if self.kv.get(KV_ACTIVE_KEY) == schema_id:
            self.kv.delete(KV_ACTIVE_KEY)
        log.info(f"Deleted schema '{schema.name}' ({schema_id})")

        if not schemas:
            default = self.create_default()
            self.set_active(default.id)
        return True

    def save_values(self, schema_id: str, values: Mapping[str, Any]) -> bool:
        schemas = self._load()
        schema = self._find(schemas, schema_id)
        if schema is None:
            log.warning(f"Cannot save values for unknown schema {schema_id}")
            return False
        schema.values = _clean_values(values)
        schema.updated_at = self._timestamp()
        self._save(schemas)
        return True

    def set_layout_bucket(self, schema_id: str, bucket_key: str, ordered_ids: Iterable[str]) -> bool:
        """
        Replace one bucket's ordered id list.

        Rejected (returns False, nothing written) when the list holds an id
        twice or an id that is already in another bucket. Callers move an
        id by removing it from its old bucket first.
        """
        ordered_ids = list(ordered_ids)
        if not is_valid_bucket(bucket_key):
            log.warning(f"Rejected layout write: invalid bucket key {bucket_key!r}")
            return False
        if len(set(ordered_ids)) != len(ordered_ids):
            log.warning(f"Rejected layout write to {bucket_key}: duplicate ids")
            return False

        schemas = self._load()
        schema = self._find(schemas, schema_id)
        if schema is None:
            log.warning(f"Cannot update layout of unknown schema {schema_id}")
            return False

        for other_key, ids in schema.layout.items():
            if other_key == bucket_key:
                continue
            clash = set(ordered_ids).intersection(ids)
            if clash:
                log.warning(
                    f"Rejected layout write to {bucket_key}: {sorted(clash)} already in {other_key}"
                )
                return False

        schema.layout[bucket_key] = ordered_ids
        schema.updated_at = self._timestamp()
        self._save(schemas)
        return True

    def save_custom_settings(self, schema_id: str, custom_settings: Iterable[CustomSetting]) -> bool:
        """Add or replace user-defined entries by id."""
        schemas = self._load()
        schema = self._find(schemas, schema_id)
        if schema is None:
            log.warning(f"Cannot save custom settings for unknown schema {schema_id}")
            return False
        for custom in custom_settings:
            schema.custom_settings[custom.id] = custom
        schema.updated_at = self._timestamp()
        self._save(schemas)
        return True

    # =========================================================================
    # Active pointer
    # =========================================================================

    def get_active(self) -> Optional[Schema]:
        active_id = self.kv.get(KV_ACTIVE_KEY)
        if not active_id:
            return None
        return self._find(self._load(), active_id)

    def set_active(self, schema_id: str) -> bool:
        if self._find(self._load(), schema_id) is None:
            log.warning(f"Cannot activate unknown schema {schema_id}")
            return False
        self.kv.set(KV_ACTIVE_KEY, schema_id)
        return True

    def ensure_active(self) -> Schema:
        """The active schema, else the first stored one, else a new Default. Activates it."""
        active = self.get_active()
        if active is not None:
            return active
        schema = self.list()[0]
        self.kv.set(KV_ACTIVE_KEY, schema.id)
        log.info(f"Activated schema '{schema.name}' ({schema.id})")
        return schema

    # =========================================================================
    # Import / export
    # =========================================================================

    def export_to_json(self, schema: Union[Schema, str]) -> str:
        if isinstance(schema, str):
            found = self.get(schema)
            if found is None:
                raise KeyError(schema)
            schema = found
        return json.dumps(
            {"format_version": SCHEMA_FORMAT_VERSION, "schema": schema.to_dict()},
            indent=2,
        )

    def import_from_json(self, text: str) -> Schema:
        """
        Import one exported schema. A schema with the same id is overwritten
        (name, layout, values, custom settings), otherwise it is appended.

        Raises:
            SchemaImportError: text is not a valid schema document.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise SchemaImportError(f"Invalid JSON: {e}") from e

        if isinstance(data, dict) and "schema" in data:
            version = data.get("format_version", SCHEMA_FORMAT_VERSION)
            if not isinstance(version, int) or version > SCHEMA_FORMAT_VERSION:
                raise SchemaImportError(f"Unsupported format_version: {version!r}")
            data = data["schema"]
        if not isinstance(data, dict):
            raise SchemaImportError("Schema document must be a JSON object")

        data = dict(data)
        data.setdefault("id", uuid.uuid4().hex)
        data.setdefault("created_at", self._timestamp())
        try:
            incoming = Schema.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SchemaImportError(f"Invalid schema document: {e}") from e
        incoming.layout = self._dedupe_layout(incoming.layout)

        schemas = self._load()
        existing = self._find(schemas, incoming.id)
        if existing is not None:
            existing.name = incoming.name
            existing.layout = incoming.layout
            existing.values = incoming.values
            existing.custom_settings = incoming.custom_settings
            existing.updated_at = self._timestamp()
            result = existing
            log.info(f"Imported schema '{incoming.name}' over existing {incoming.id}")
        else:
            schemas.append(incoming)
            result = incoming
            log.info(f"Imported new schema '{incoming.name}' ({incoming.id})")
        self._save(schemas)
        return result

    @staticmethod
    def _dedupe_layout(layout: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """Keep each id in the first bucket it appears in."""
        seen = set()
        result = {}
        for key, ids in layout.items():
            if not is_valid_bucket(key):
                log.warning(f"Dropping invalid bucket {key!r} from imported layout")
                continue
            kept = []
            for setting_id in ids:
                if setting_id in seen:
                    log.warning(f"Dropping duplicate {setting_id} from imported bucket {key}")
                    continue
                seen.add(setting_id)
                kept.append(setting_id)
            result[key] = kept
        return result

    # =========================================================================
    # Legacy migration
    # =========================================================================

    def migrate_legacy(self) -> int:
        """
        Convert legacy flat profiles ({name: {setting_id: value}}) into
        schemas with a default layout, then drop the legacy key.

        Returns the number of schemas created.
        """
        raw = self.kv.get(KV_LEGACY_PROFILES_KEY)
        if raw is None:
            return 0

        try:
            profiles = json.loads(raw)
            if not isinstance(profiles, dict):
                raise TypeError(f"expected an object, got {type(profiles).__name__}")
        except (TypeError, ValueError) as e:
            log.error(f"Legacy profiles are unreadable, discarding them: {e}")
            self.kv.delete(KV_LEGACY_PROFILES_KEY)
            return 0

        schemas = self._load()
        migrated = 0
        for name, values in profiles.items():
            if not isinstance(values, dict):
                log.warning(f"Skipping legacy profile {name!r}: not a value map")
                continue
            values = self._convert_legacy_values(values)
            schemas.append(self._new_schema(str(name).strip() or DEFAULT_SCHEMA_NAME, values))
            migrated += 1

        if migrated:
            self._save(schemas)
        self.kv.delete(KV_LEGACY_PROFILES_KEY)
        log.info(f"Migrated {migrated} legacy profile(s)")
        return migrated

    def _convert_legacy_values(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Legacy profiles keep a value setting as a checkbox under <id> and its
        text under <id>_v. Fold the pair into one string, or drop it when unchecked.
        """
        converted = {}
        for key, value in values.items():
            if key.endswith(LEGACY_VALUE_SUFFIX):
                base = key[: -len(LEGACY_VALUE_SUFFIX)]
                if base in values or base in self.catalog:
                    continue
            definition = self.catalog.get(key)
            if definition is not None and definition.value_kind is ValueKind.VALUE and isinstance(value, bool):
                text = values.get(key + LEGACY_VALUE_SUFFIX)
                if value and isinstance(text, str) and text.strip():
                    converted[key] = text.strip()
                continue
            converted[key] = value
        return converted

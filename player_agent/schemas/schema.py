"""
Schema records: a named, persisted bundle of setting values plus a view layout.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from player_agent.schemas.setting import SettingValue


@dataclass
class CustomSetting:
    """A user-defined entry that does not exist in the catalog."""
    id: str
    label: str
    value: SettingValue = ""
    bucket: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "value": self.value, "bucket": self.bucket}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomSetting":
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", data["id"])),
            value=data.get("value", ""),
            bucket=str(data.get("bucket", "")),
        )


@dataclass
class Schema:
    id: str
    name: str
    created_at: str
    updated_at: str
    layout: Dict[str, List[str]] = field(default_factory=dict)
    values: Dict[str, SettingValue] = field(default_factory=dict)
    custom_settings: Dict[str, CustomSetting] = field(default_factory=dict)

    def bucket_of(self, setting_id: str) -> Optional[str]:
        """Bucket key currently holding setting_id, or None when hidden."""
        for key, ids in self.layout.items():
            if setting_id in ids:
                return key
        return None

    def visible_ids(self) -> List[str]:
        return [sid for ids in self.layout.values() for sid in ids]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "layout": {k: list(v) for k, v in self.layout.items()},
            "values": dict(self.values),
            "custom_settings": [c.to_dict() for c in self.custom_settings.values()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schema":
        """Build a Schema from persisted data. Raises KeyError/TypeError/ValueError on bad input."""
        layout_data = data.get("layout")
        if layout_data is None:
            layout_data = {}
        if not isinstance(layout_data, dict):
            raise TypeError("layout must be an object")
        layout = {}
        for key, ids in layout_data.items():
            if not isinstance(ids, list):
                raise TypeError(f"layout bucket {key!r} must be a list")
            layout[str(key)] = [str(i) for i in ids]

        values_data = data.get("values")
        if values_data is None:
            values_data = {}
        if not isinstance(values_data, dict):
            raise TypeError("values must be an object")
        values = {
            str(k): v for k, v in values_data.items()
            if isinstance(v, (bool, str))
        }

        custom = {}
        for item in data.get("custom_settings") or []:
            entry = CustomSetting.from_dict(item)
            custom[entry.id] = entry

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=str(data.get("created_at", "")),
            updated_at=str(data.get("updated_at", data.get("created_at", ""))),
            layout=layout,
            values=values,
            custom_settings=custom,
        )

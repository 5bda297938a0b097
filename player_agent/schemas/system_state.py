from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class SystemState(Enum):
    """Whether a setting is already in effect on the host."""
    APPLIED = "applied"
    NOT_APPLIED = "not_applied"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value: Any) -> "SystemState":
        """
        Normalize a checker reading. The host checker reports True / False / None;
        enum members and their string values are accepted as well.
        """
        if isinstance(value, SystemState):
            return value
        if value is True:
            return cls.APPLIED
        if value is False:
            return cls.NOT_APPLIED
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


class ApplyStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass
class ApplyReport:
    """Outcome of a HostMutationService.apply() call."""
    status: ApplyStatus
    errors: List[str] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is ApplyStatus.SUCCESS

"""
Setting catalog schemas.

A SettingDefinition pairs the static metadata of one tunable setting with a
recommendation rule. Rules are tagged records rather than closures so the
catalog stays serializable and can be inspected and tested on its own.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

SettingValue = Union[bool, str]


class ValueKind(Enum):
    TOGGLE = "toggle"
    VALUE = "value"


class Enforcement(Enum):
    AUTO = "auto"             # Applied programmatically by the host service
    GENERATED = "generated"   # Host generates text the user pastes (launch options)
    MANUAL = "manual"         # User must change it by hand (BIOS)
    INFO = "info"             # Status display only


# --- Rule records ---

@dataclass(frozen=True)
class Condition:
    """A single comparison against a HardwareProfile field."""
    field: str
    op: str           # eq, ne, ge, gt, le, lt
    value: Any


@dataclass(frozen=True)
class ConstantRule:
    value: SettingValue
    kind: str = "constant"


@dataclass(frozen=True)
class PredicateRule:
    """True when every all_of condition holds and, if any_of is set, at least one of those."""
    all_of: Tuple[Condition, ...] = ()
    any_of: Tuple[Condition, ...] = ()
    kind: str = "predicate"


@dataclass(frozen=True)
class DerivedRule:
    """Value produced by a registered profile -> string function."""
    function: str
    kind: str = "derived"


@dataclass(frozen=True)
class ManualRule:
    """No programmatic enforcement; never part of a RecommendationSet."""
    kind: str = "manual"


Rule = Union[ConstantRule, PredicateRule, DerivedRule, ManualRule]


@dataclass(frozen=True)
class SettingDefinition:
    id: str
    label: str
    category: str
    value_kind: ValueKind
    default: SettingValue
    weight: float
    rule: Rule
    enforcement: Enforcement = Enforcement.AUTO
    description: str = ""
    principal: bool = False
    safety_override: bool = False

    @property
    def is_toggle(self) -> bool:
        return self.value_kind is ValueKind.TOGGLE

    @property
    def recommendable(self) -> bool:
        return not isinstance(self.rule, ManualRule)


@dataclass
class CategoryInfo:
    """Display metadata for one catalog category."""
    key: str
    name: str
    prefix: str
    setting_ids: List[str] = field(default_factory=list)
    description: Optional[str] = None

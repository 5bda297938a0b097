"""
Rule evaluation for the recommendation engine.

Each catalog entry carries one tagged rule record. This module turns a rule
plus a HardwareProfile into a concrete setting value.
"""

import operator
from typing import Callable, Dict, Optional

from player_agent.config.constants import FRAME_CAP_MAX, FRAME_CAP_UNCAPPED_HZ
from player_agent.schemas.hardware import HardwareProfile
from player_agent.schemas.setting import (
    Condition,
    ConstantRule,
    DerivedRule,
    ManualRule,
    PredicateRule,
    Rule,
    SettingValue,
)
from player_agent.utils.logger import get_logger

logger = get_logger(__name__)

OPERATORS: Dict[str, Callable] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "ge": operator.ge,
    "gt": operator.gt,
    "le": operator.le,
    "lt": operator.lt,
}


# =============================================================================
# Derived functions
# =============================================================================

def frame_cap(profile: HardwareProfile) -> str:
    """
    fps_max for the display: uncapped ("0") on 240 Hz and faster panels,
    otherwise twice the refresh rate, never above 999.
    """
    if profile.refresh_rate_hz >= FRAME_CAP_UNCAPPED_HZ:
        return "0"
    return str(min(FRAME_CAP_MAX, 2 * profile.refresh_rate_hz))


def logical_cores(profile: HardwareProfile) -> str:
    return str(profile.cpu_threads)


DERIVED_FUNCTIONS: Dict[str, Callable[[HardwareProfile], str]] = {
    "frame_cap": frame_cap,
    "logical_cores": logical_cores,
}


# =============================================================================
# Evaluation
# =============================================================================

def evaluate_condition(condition: Condition, profile: HardwareProfile) -> bool:
    actual = getattr(profile, condition.field, None)
    compare = OPERATORS.get(condition.op)
    if actual is None or compare is None:
        logger.warning(f"Cannot evaluate {condition.field} {condition.op} {condition.value!r}")
        return False
    try:
        return bool(compare(actual, condition.value))
    except TypeError:
        logger.warning(
            f"Type mismatch evaluating {condition.field}={actual!r} {condition.op} {condition.value!r}"
        )
        return False


def evaluate_predicate(rule: PredicateRule, profile: HardwareProfile) -> bool:
    if not all(evaluate_condition(c, profile) for c in rule.all_of):
        return False
    if rule.any_of:
        return any(evaluate_condition(c, profile) for c in rule.any_of)
    return True


def evaluate_rule(rule: Rule, profile: HardwareProfile) -> Optional[SettingValue]:
    """
    Concrete value for a rule, or None when the rule cannot be enforced
    programmatically (ManualRule).
    """
    if isinstance(rule, ManualRule):
        return None
    if isinstance(rule, ConstantRule):
        return rule.value
    if isinstance(rule, PredicateRule):
        return evaluate_predicate(rule, profile)
    if isinstance(rule, DerivedRule):
        func = DERIVED_FUNCTIONS.get(rule.function)
        if func is None:
            logger.warning(f"Unknown derived function: {rule.function}")
            return None
        return func(profile)

    logger.warning(f"Unknown rule type: {type(rule).__name__}")
    return None

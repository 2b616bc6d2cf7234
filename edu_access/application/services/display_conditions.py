"""
Display condition evaluation.

One evaluator per ConditionType. Only `role` is evaluated today; the
reserved types pass until they are implemented, and so does any type the
enumeration does not know about.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from edu_access.domain.entities import DisplayConditionRecord
from edu_access.domain.enums import ConditionOperator, ConditionType
from edu_access.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConditionContext:
    """Facts about the viewer that conditions may inspect."""

    user_id: str
    role: str


Evaluator = Callable[[str, Any, ConditionContext], bool]


def _role_list(value: Any) -> list[str] | None:
    if isinstance(value, str):
        return [value.lower()]
    if isinstance(value, list) and value and all(isinstance(item, str) for item in value):
        return [item.lower() for item in value]
    return None


def evaluate_role(operator: str, value: Any, context: ConditionContext) -> bool:
    roles = _role_list(value)
    if roles is None:
        logger.warning(f"Malformed role condition value {value!r}; condition fails")
        return False

    role = context.role.lower()
    if operator in (ConditionOperator.IN.value, ConditionOperator.EQUALS.value):
        return role in roles
    if operator in (ConditionOperator.NOT_IN.value, ConditionOperator.NOT_EQUALS.value):
        return role not in roles

    logger.warning(f"Operator '{operator}' is not supported for role conditions; condition fails")
    return False


def evaluate_reserved(operator: str, value: Any, context: ConditionContext) -> bool:
    return True


EVALUATORS: dict[ConditionType, Evaluator] = {
    ConditionType.ROLE: evaluate_role,
    ConditionType.USER_COUNT: evaluate_reserved,
    ConditionType.FEATURE_FLAG: evaluate_reserved,
    ConditionType.TIME_BASED: evaluate_reserved,
}


def evaluate_condition(condition: DisplayConditionRecord, context: ConditionContext) -> bool:
    try:
        condition_type = ConditionType(condition.condition_type)
    except ValueError:
        logger.debug(f"Unknown display condition type '{condition.condition_type}' passes")
        return True
    evaluator = EVALUATORS[condition_type]
    return evaluator(condition.condition_operator, condition.condition_value, context)


def conditions_pass(
    conditions: Iterable[DisplayConditionRecord], context: ConditionContext
) -> bool:
    """All conditions must pass (AND). No conditions means pass."""
    return all(evaluate_condition(condition, context) for condition in conditions)

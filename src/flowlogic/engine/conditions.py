"""
Condition evaluation shared by the form renderer and the builder preview.

Evaluation never raises: a missing field is just an empty value, a
non-numeric operand makes a numeric comparison false, and an unknown operator
resolves to `EngineSettings.unknown_operator_result`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Collection, Iterable, Literal, Mapping, Optional

from flowlogic.config import EngineSettings, resolve_settings
from flowlogic.logs import get_logger, log_event
from flowlogic.schemas.flow import ConditionLike, LogicCondition, coerce_model

logger = get_logger("engine")

SUPPORTED_OPERATORS = (
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "greater_than",
    "less_than",
    "not_empty",
    "is_empty",
)

OR = "OR"
AND = "AND"


def normalize_operator(operator: Any) -> str:
    return str(operator or "").strip().lower()


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def to_number(value: Any) -> Optional[float]:
    """Numeric coercion for comparisons. Returns None when the value is not a number."""
    if value is None:
        return None
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        t = value.strip()
        if not t:
            return 0.0
        try:
            n = float(t)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(n):
        return None
    return n


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(v) for v in value)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def strict_equals(left: Any, right: Any) -> bool:
    # Kinds must match: "1" != 1 and True != 1.
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if _is_number(left) and _is_number(right):
        return left == right
    if _is_number(left) or _is_number(right):
        return False
    if type(left) is not type(right) and not (isinstance(left, str) and isinstance(right, str)):
        return False
    return left == right


def _contains(field_value: Any, needle: Any) -> bool:
    if is_blank(field_value) or field_value == []:
        return False
    return to_text(needle) in to_text(field_value)


def _compare(field_value: Any, target: Any, op: str) -> bool:
    if not field_value:
        return False
    left = to_number(field_value)
    right = to_number(target)
    if left is None or right is None:
        return False
    return left > right if op == "greater_than" else left < right


def _evaluate(op: str, field_value: Any, target: Any) -> Optional[bool]:
    if op == "equals":
        return strict_equals(field_value, target)
    if op == "not_equals":
        return not strict_equals(field_value, target)
    if op == "contains":
        return _contains(field_value, target)
    if op == "not_contains":
        return not _contains(field_value, target)
    if op in ("greater_than", "less_than"):
        return _compare(field_value, target, op)
    if op == "not_empty":
        return not is_blank(field_value)
    if op == "is_empty":
        return is_blank(field_value)
    return None


def evaluate_condition(
    condition: ConditionLike,
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> bool:
    cond = coerce_model(LogicCondition, condition)
    op = normalize_operator(cond.operator)
    result = _evaluate(op, (values or {}).get(cond.field_id), cond.value)
    if result is None:
        cfg = resolve_settings(settings)
        log_event(
            logger,
            "unknown_operator",
            level=logging.WARNING,
            settings=cfg,
            operator=cond.operator,
            field_id=cond.field_id,
            result=cfg.unknown_operator_result,
        )
        return cfg.unknown_operator_result
    return result


def evaluate_conditions(
    conditions: Optional[Iterable[ConditionLike]],
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> bool:
    """
    Left-to-right fold. Each condition after the first combines with the running
    result using its own `logicOperator` (AND unless it says OR). No conditions: True.
    """
    result: Optional[bool] = None
    for raw in conditions or []:
        cond = coerce_model(LogicCondition, raw)
        current = evaluate_condition(cond, values, settings=settings)
        if result is None:
            result = current
        elif cond.logic_operator == OR:
            result = result or current
        else:
            result = result and current
    return True if result is None else result


ConditionCheckKind = Literal["ok", "unknown_field", "unknown_operator"]


@dataclass(frozen=True)
class ConditionCheck:
    """Outcome of `check_condition`. `value` is always the form-fill result."""

    kind: ConditionCheckKind
    value: bool
    field_id: str
    operator: str

    @property
    def ok(self) -> bool:
        return self.kind == "ok"


def check_condition(
    condition: ConditionLike,
    values: Mapping[str, Any],
    known_fields: Optional[Collection[str]] = None,
    *,
    settings: Optional[EngineSettings] = None,
) -> ConditionCheck:
    """
    Same evaluation as `evaluate_condition`, plus a tag telling authoring tools
    whether the condition references something that does not exist.
    """
    cond = coerce_model(LogicCondition, condition)
    value = evaluate_condition(cond, values, settings=settings)
    op = normalize_operator(cond.operator)
    kind: ConditionCheckKind = "ok"
    if op not in SUPPORTED_OPERATORS:
        kind = "unknown_operator"
    elif known_fields is not None and cond.field_id not in known_fields:
        kind = "unknown_field"
    return ConditionCheck(kind=kind, value=value, field_id=cond.field_id, operator=cond.operator)


__all__ = [
    "SUPPORTED_OPERATORS",
    "ConditionCheck",
    "check_condition",
    "evaluate_condition",
    "evaluate_conditions",
    "is_blank",
    "normalize_operator",
    "strict_equals",
    "to_number",
    "to_text",
]

"""
Conditional Logic Evaluator.

Pure function over (template, current values) producing the visible
fields, required fields and hidden sections.

IMPORTANT: This layer does NOT modify the template or the values.
It is safe to call on every keystroke.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Mapping

from .conditions import Condition, Operator, is_empty, to_number
from .form_data import ConditionalLogicResult
from .model import FormTemplate

logger = logging.getLogger(__name__)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def strict_equals(left: Any, right: Any) -> bool:
    """
    Type-sensitive equality, no implicit coercion.

    Booleans only equal booleans, numbers compare numerically,
    strings only equal strings, and lists compare element-wise.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if _is_sequence(left) and _is_sequence(right):
        return len(left) == len(right) and all(
            strict_equals(a, b) for a, b in zip(left, right)
        )
    numeric = (int, float)
    if isinstance(left, numeric) and isinstance(right, numeric):
        return left == right
    if left is None or right is None:
        return left is None and right is None
    return type(left) is type(right) and left == right


def _contains(field_value: Any, operand: Any) -> bool:
    if isinstance(field_value, str) and isinstance(operand, str):
        return operand.lower() in field_value.lower()
    if _is_sequence(field_value):
        return any(strict_equals(item, operand) for item in field_value)
    return False


def _compare(field_value: Any, operand: Any, greater: bool) -> bool:
    left = to_number(field_value)
    right = to_number(operand)
    if left is None or right is None:
        return False
    return left > right if greater else left < right


_OPERATORS: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQUALS: strict_equals,
    Operator.NOT_EQUALS: lambda v, o: not strict_equals(v, o),
    Operator.CONTAINS: _contains,
    Operator.GREATER_THAN: lambda v, o: _compare(v, o, greater=True),
    Operator.LESS_THAN: lambda v, o: _compare(v, o, greater=False),
    Operator.IS_EMPTY: lambda v, o: is_empty(v),
    Operator.IS_NOT_EMPTY: lambda v, o: not is_empty(v),
}


class ConditionalLogicEngine:
    """
    Stateless evaluator service.

    Construct one per configuration and pass it by reference; there is
    no module-level singleton.
    """

    def evaluate_condition(self, condition: Condition, values: Mapping[str, Any]) -> bool:
        """
        Evaluate one condition. Total: never raises.

        Unknown operators are flagged and treated as satisfied so an
        unrecognized gate never locks a user out of a field.
        """
        check = _OPERATORS.get(condition.operator) if condition.is_known_operator else None
        if check is None:
            logger.warning(
                "Unknown condition operator %r on field '%s'; treating as satisfied",
                condition.operator,
                condition.field,
            )
            return True
        return check(values.get(condition.field), condition.value)

    def evaluate_conditions(self, conditions: Iterable[Condition], values: Mapping[str, Any]) -> bool:
        """AND-combine a condition list. An empty list is vacuously true."""
        return all(self.evaluate_condition(c, values) for c in conditions)

    def evaluate(self, template: FormTemplate, values: Mapping[str, Any]) -> ConditionalLogicResult:
        """
        Compute visible fields, required fields and hidden sections.

        A hidden section excludes all of its fields from every output.
        A visible field is required when its rules say so or when a
        non-empty required_if list evaluates true.
        """
        result = ConditionalLogicResult()

        for section in template.sections:
            if not self.evaluate_conditions(section.show_if, values):
                result.hidden_sections.append(section.id)
                continue

            for f in section.fields:
                if not self.evaluate_conditions(f.show_if, values):
                    continue
                result.visible_fields.append(f.id)

                conditionally_required = bool(f.required_if) and self.evaluate_conditions(
                    f.required_if, values
                )
                if f.validation.required or conditionally_required:
                    result.required_fields.append(f.id)

        return result

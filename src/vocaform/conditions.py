"""
Condition System for form templates.

Visibility (show_if) and requirement (required_if) gates are lists of
Condition objects combined with implicit AND. They are value objects,
never strings or code fragments.

This ensures:
    - Language independence
    - Serialization capability
    - Total, side-effect-free evaluation

ARCHITECTURAL RULE:
    Conditions carry structure only.
    Evaluation belongs in the evaluator layer.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union


# A condition operand: string, number, boolean or an array of strings.
Value = Union[str, int, float, bool, Tuple[str, ...]]


class Operator(Enum):
    """
    Condition operators supported in templates.

    Keep this minimal. This is a fixed operator set, not a rule language.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    @classmethod
    def parse(cls, raw: Any) -> Union["Operator", str]:
        """
        Resolve a raw operator name.

        Unknown names are returned unchanged so that the evaluator can
        flag them and fail open instead of rejecting the whole template.
        """
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return str(raw)


@dataclass(frozen=True)
class Condition:
    """
    A single boolean predicate over one field's current value.

    Example:
        employment_status == "employed"

    Becomes:
        Condition(field="employment_status", operator=Operator.EQUALS, value="employed")

    Properties:
        field: Id of the field whose value is tested
        operator: Operator enum (or the raw name of an unrecognized operator)
        value: Operand; ignored by is_empty / is_not_empty

    IMPORTANT:
        This object does NOT validate that the field exists.
        Reference checks belong in the analyzer.
    """

    field: str
    operator: Union[Operator, str]
    value: Value | None = None

    @property
    def is_known_operator(self) -> bool:
        return isinstance(self.operator, Operator)


def freeze_value(value: Any) -> Any:
    """Convert list operands to tuples so conditions stay immutable."""
    if isinstance(value, list):
        return tuple(freeze_value(v) for v in value)
    return value


def thaw_value(value: Any) -> Any:
    """Inverse of freeze_value, used when values leave the template model."""
    if isinstance(value, tuple):
        return [thaw_value(v) for v in value]
    return value


def is_empty(value: Any) -> bool:
    """
    The single empty-check used everywhere empties matter.

    Empty means None, "", an empty sequence or an empty mapping.
    0 and False are values, not empties.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def to_number(value: Any) -> float | None:
    """
    Total numeric parse.

    Returns None for anything that is not a finite number or a string
    holding one. Booleans are not numbers.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and _NUMBER_RE.match(value.strip()):
        number = float(value.strip())
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number

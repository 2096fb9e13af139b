"""
Deterministic visibility evaluator for form fields.

Decides, for the values a user has entered so far, which fields are
shown. Called on every value change, so it keeps no state and caches
nothing. The condition graph is assumed acyclic (checked once by the
metadata validator).
"""

from collections.abc import Iterable, Mapping
from typing import Any

from formcompiler.core.schema import (
    CombinatorOp,
    ConditionGroup,
    ConditionLeaf,
    ConditionOperator,
    FormField,
)
from formcompiler.core.utils import strict_equals, to_number


def compute_visibility(fields: Iterable[FormField], values: Mapping[str, Any]) -> dict[str, bool]:
    """Map every field ID to whether the field is currently visible.

    Args:
        fields: The form fields, in any order.
        values: Current values keyed by field ID.

    Returns:
        A dict of field ID to visibility.
    """
    return {field.id: is_field_visible(field, values) for field in fields}


def is_field_visible(field: FormField, values: Mapping[str, Any]) -> bool:
    """Determine if a field should be visible given the current values.

    A field without a condition is always visible.
    """
    if field.condition is None:
        return True
    return evaluate_condition(field.condition, values)


def evaluate_condition(condition: ConditionLeaf | ConditionGroup, values: Mapping[str, Any]) -> bool:
    """Evaluate a condition tree left to right with short-circuiting."""
    if isinstance(condition, ConditionGroup):
        results = (evaluate_condition(child, values) for child in condition.children)
        match condition.op:
            case CombinatorOp.AND:
                return all(results)
            case CombinatorOp.OR:
                return any(results)

    return _evaluate_leaf(condition, values)


def _evaluate_leaf(condition: ConditionLeaf, values: Mapping[str, Any]) -> bool:
    # A missing value behaves like None
    field_value = values.get(condition.field_id)

    match condition.operator:
        case ConditionOperator.EQUALS:
            return strict_equals(field_value, condition.value)

        case ConditionOperator.NOT_EQUALS:
            return not strict_equals(field_value, condition.value)

        case ConditionOperator.CONTAINS:
            return _contains(field_value, condition.value)

        case ConditionOperator.GREATER_THAN:
            return _compare_numbers(field_value, condition.value, lambda a, b: a > b)

        case ConditionOperator.LESS_THAN:
            return _compare_numbers(field_value, condition.value, lambda a, b: a < b)

        case ConditionOperator.IS_EMPTY:
            return _is_empty(field_value)

        case ConditionOperator.IS_NOT_EMPTY:
            return not _is_empty(field_value)

    # Unreachable: operators are validated by the enum
    return False


def _contains(field_value: Any, needle: Any) -> bool:
    """Substring test for strings, membership test for lists and tuples."""
    if isinstance(field_value, str):
        return isinstance(needle, str) and needle in field_value
    if isinstance(field_value, (list, tuple)):
        return any(strict_equals(item, needle) for item in field_value)
    return False


def _compare_numbers(field_value: Any, compare_value: Any, comparator) -> bool:
    """Compare two numeric operands; any non-numeric operand gives False."""
    left = to_number(field_value)
    right = to_number(compare_value)
    if left is None or right is None:
        return False
    return comparator(left, right)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False

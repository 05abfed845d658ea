"""Pure semantics of the condition operators.

Every comparison is kind-strict: a payload value of the wrong type makes the
comparison false instead of raising.
"""

from typing import Any, Callable, Dict, Mapping

from catalog_rules.domain.value_objects import Value, ValueKind, is_number
from .value_objects import ConditionOperator


class _Missing:
    """Marker for a payload path that does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def resolve_path(payload: Mapping[str, Any], path: str) -> Any:
    """Read a field from the payload.

    An exact key match wins; otherwise the dotted path is walked through
    nested mappings. Returns MISSING when any segment is absent.
    """
    if path in payload:
        return payload[path]

    current: Any = payload
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return MISSING
        current = current[segment]
    return current


def values_equal(actual: Any, expected: Value) -> bool:
    """Equality that also compares kinds, so True never equals 1."""
    if actual is MISSING or actual is None:
        return False
    try:
        classified = Value.of(actual)
    except ValueError:
        return False
    if classified.kind != expected.kind:
        return False
    return classified.raw == expected.raw


def _equals(actual: Any, expected: Value) -> bool:
    return values_equal(actual, expected)


def _not_equals(actual: Any, expected: Value) -> bool:
    return not values_equal(actual, expected)


def _contains(actual: Any, expected: Value) -> bool:
    return (
        isinstance(actual, str)
        and expected.kind == ValueKind.STRING
        and expected.raw in actual
    )


def _greater_than(actual: Any, expected: Value) -> bool:
    return is_number(actual) and expected.is_number and actual > expected.raw


def _less_than(actual: Any, expected: Value) -> bool:
    return is_number(actual) and expected.is_number and actual < expected.raw


def _in(actual: Any, expected: Value) -> bool:
    return (
        isinstance(actual, str)
        and expected.kind == ValueKind.STRING_ARRAY
        and actual in expected.raw
    )


COMPARATORS: Dict[ConditionOperator, Callable[[Any, Value], bool]] = {
    ConditionOperator.EQUALS: _equals,
    ConditionOperator.NOT_EQUALS: _not_equals,
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.GREATER_THAN: _greater_than,
    ConditionOperator.LESS_THAN: _less_than,
    ConditionOperator.IN: _in,
}


def compare(operator: ConditionOperator, actual: Any, expected: Value) -> bool:
    """Apply a known operator to a resolved payload value."""
    return COMPARATORS[operator](actual, expected)

"""
Comparison operators for conditional logic.

Operators compare the current value of a field with the value stated in a
condition. They are kept in an OperatorRegistry so that applications can add
their own operators next to the built-in ones.

Example:
    @operators.operator("is_weekend")
    def is_weekend(field_value, expected):
        ...
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional


OperatorFunc = Callable[[Any, Any], bool]


class OperatorAlreadyRegisteredError(Exception):
    """Raised when trying to register an operator that already exists."""

    def __init__(self, operator_name: str):
        self.operator_name = operator_name
        super().__init__(f"Operator '{operator_name}' already registered")


@dataclass
class OperatorMetadata:
    """
    Metadata for a registered operator.

    Attributes:
        name: Operator name used in condition expressions
        func: Comparison function (field_value, expected) -> bool
        description: Human-readable description
    """
    name: str
    func: OperatorFunc
    description: str = ""


class OperatorRegistry:
    """Registry of comparison operators, keyed by name."""

    def __init__(self, allow_overwrite: bool = False):
        self.allow_overwrite = allow_overwrite
        self._operators: Dict[str, OperatorMetadata] = {}

    def operator(
        self,
        name: str,
        description: str = ""
    ) -> Callable[[OperatorFunc], OperatorFunc]:
        """Decorator for registering an operator."""
        def decorator(func: OperatorFunc) -> OperatorFunc:
            if name in self._operators and not self.allow_overwrite:
                raise OperatorAlreadyRegisteredError(name)
            self._operators[name] = OperatorMetadata(
                name=name,
                func=func,
                description=description or func.__doc__ or "",
            )
            return func
        return decorator

    def register(self, name: str, func: OperatorFunc, description: str = "") -> None:
        self.operator(name, description)(func)

    def get(self, name: str) -> Optional[OperatorMetadata]:
        return self._operators.get(name)

    def list_all(self) -> List[str]:
        return list(self._operators.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._operators

    def __len__(self) -> int:
        return len(self._operators)

    def __repr__(self) -> str:
        return f"OperatorRegistry(operators={len(self._operators)})"


operators = OperatorRegistry()


def _text(value: Any) -> str:
    return "" if value is None else str(value).lower()


def _number(value: Any) -> float:
    """Numeric view of a value; non-numeric values become NaN."""
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return str(value).strip() == ""


@operators.operator("equals")
def equals(field_value: Any, expected: Any) -> bool:
    return field_value == expected


@operators.operator("not_equals")
def not_equals(field_value: Any, expected: Any) -> bool:
    return field_value != expected


@operators.operator("contains")
def contains(field_value: Any, expected: Any) -> bool:
    """List membership for multi-value fields, case-insensitive substring otherwise."""
    if isinstance(field_value, (list, tuple, set)):
        return expected in field_value
    return _text(expected) in _text(field_value)


@operators.operator("not_contains")
def not_contains(field_value: Any, expected: Any) -> bool:
    return not contains(field_value, expected)


@operators.operator("is_empty")
def is_empty(field_value: Any, expected: Any = None) -> bool:
    return is_blank(field_value)


@operators.operator("is_not_empty")
def is_not_empty(field_value: Any, expected: Any = None) -> bool:
    return not is_blank(field_value)


# NaN compares false, so non-numeric input never satisfies these
@operators.operator("greater_than")
def greater_than(field_value: Any, expected: Any) -> bool:
    return _number(field_value) > _number(expected)


@operators.operator("less_than")
def less_than(field_value: Any, expected: Any) -> bool:
    return _number(field_value) < _number(expected)


@operators.operator("greater_than_or_equal")
def greater_than_or_equal(field_value: Any, expected: Any) -> bool:
    return _number(field_value) >= _number(expected)


@operators.operator("less_than_or_equal")
def less_than_or_equal(field_value: Any, expected: Any) -> bool:
    return _number(field_value) <= _number(expected)


@operators.operator("starts_with")
def starts_with(field_value: Any, expected: Any) -> bool:
    return _text(field_value).startswith(_text(expected))


@operators.operator("ends_with")
def ends_with(field_value: Any, expected: Any) -> bool:
    return _text(field_value).endswith(_text(expected))


@operators.operator("in_list")
def in_list(field_value: Any, expected: Any) -> bool:
    return isinstance(expected, (list, tuple, set)) and field_value in expected


@operators.operator("not_in_list")
def not_in_list(field_value: Any, expected: Any) -> bool:
    return isinstance(expected, (list, tuple, set)) and field_value not in expected


@operators.operator("matches_pattern")
def matches_pattern(field_value: Any, expected: Any) -> bool:
    """Regex search; an invalid pattern never matches."""
    try:
        return re.search(str(expected), "" if field_value is None else str(field_value)) is not None
    except re.error:
        return False

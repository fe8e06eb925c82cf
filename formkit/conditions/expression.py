"""
Condition expressions for conditional logic.

A condition decides, from the current form data, whether a field is shown,
required or modified. Expressions are plain data so they can be stored with
the form:

- Leaf:  {"field": "field_a", "operator": "equals", "value": "yes"}
- Group: {"conditions": [...], "logicalOperator": "AND" | "OR"}
- Short forms: {"and": [...]}, {"or": [...]}, {"not": {...}}

A plain callable taking the data mapping is accepted as well. It may expose a
`depends_on` attribute listing the fields it reads.

Example:
    parser = ConditionParser()
    expr = parser.parse({
        "conditions": [
            {"field": "country", "operator": "equals", "value": "US"},
            {"field": "age", "operator": "greater_than_or_equal", "value": 18},
        ],
        "logicalOperator": "AND",
    })
    expr.evaluate({"country": "US", "age": 21})  # True
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Set, Union

from formkit.conditions.operators import OperatorRegistry, operators
from formkit.settings import settings

logger = logging.getLogger(__name__)

ConditionExpression = Union[Dict[str, Any], Callable[[Mapping[str, Any]], bool]]
Evaluator = Callable[[Mapping[str, Any]], bool]


class ExpressionParseError(Exception):
    """Raised when a condition expression has an invalid shape."""

    def __init__(self, expression: Any, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid condition {expression!r}: {reason}")


@dataclass
class ParsedCondition:
    """
    A parsed condition expression.

    Attributes:
        evaluator: Callable evaluating the expression against form data
        source: Original expression (for debugging)
        is_composite: Whether this is a group (AND/OR/NOT)
        referenced_fields: Field ids the expression reads
    """
    evaluator: Evaluator
    source: Any
    is_composite: bool = False
    referenced_fields: Set[str] = field(default_factory=set)

    def evaluate(self, data: Mapping[str, Any]) -> bool:
        return self.evaluator(data)


class ConditionParser:
    """
    Parses condition expressions into evaluators.

    Parsed dict expressions are cached by their normalized form. The cache
    keeps the `cache_size` most recently used entries (0 = unbounded).
    """

    def __init__(self, registry: Optional[OperatorRegistry] = None, cache_size: Optional[int] = None):
        self.registry = registry or operators
        if cache_size is None:
            cache_size = int(settings.get_nested("conditional_logic.parser_cache_size", 512) or 0)
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, ParsedCondition]" = OrderedDict()

    def parse(self, expression: ConditionExpression) -> ParsedCondition:
        """
        Parse a condition expression.

        Raises:
            ExpressionParseError: If the expression format is invalid
        """
        if callable(expression):
            return self._parse_callable(expression)

        cache_key = repr(_normalize(expression))
        if cache_key in self._cache:
            self._cache.move_to_end(cache_key)
            return self._cache[cache_key]

        parsed = self._parse_internal(expression)
        self._cache[cache_key] = parsed
        if self.cache_size and len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return parsed

    def clear_cache(self) -> None:
        self._cache.clear()

    def _parse_callable(self, func: Callable[[Mapping[str, Any]], bool]) -> ParsedCondition:
        depends_on = set(getattr(func, "depends_on", ()) or ())

        def evaluate(data: Mapping[str, Any]) -> bool:
            return bool(func(data))

        return ParsedCondition(
            evaluator=evaluate,
            source=func,
            referenced_fields=depends_on,
        )

    def _parse_internal(self, expression: Any) -> ParsedCondition:
        if not isinstance(expression, dict):
            raise ExpressionParseError(expression, "expected a dict or a callable")

        if "conditions" in expression:
            operator = str(expression.get("logicalOperator", "AND")).upper()
            if operator not in ("AND", "OR"):
                raise ExpressionParseError(expression, f"unknown logicalOperator '{operator}'")
            return self._parse_group(expression, expression["conditions"], operator)

        if len(expression) == 1:
            key = next(iter(expression))
            if key in ("and", "or"):
                return self._parse_group(expression, expression[key], key.upper())
            if key == "not":
                return self._parse_not(expression)

        if "field" in expression:
            return self._parse_leaf(expression)

        raise ExpressionParseError(expression, "missing 'field' or 'conditions'")

    def _parse_group(self, source: Any, items: Any, operator: str) -> ParsedCondition:
        if not isinstance(items, list):
            raise ExpressionParseError(source, "group conditions must be a list")

        children = [self._parse_internal(item) if not callable(item) else self._parse_callable(item)
                    for item in items]
        referenced: Set[str] = set()
        for child in children:
            referenced |= child.referenced_fields

        if operator == "OR":
            def evaluate(data: Mapping[str, Any]) -> bool:
                return any(child.evaluate(data) for child in children)
        else:
            def evaluate(data: Mapping[str, Any]) -> bool:
                return all(child.evaluate(data) for child in children)

        return ParsedCondition(
            evaluator=evaluate,
            source=source,
            is_composite=True,
            referenced_fields=referenced,
        )

    def _parse_not(self, source: Dict[str, Any]) -> ParsedCondition:
        inner_source = source["not"]
        inner = self._parse_callable(inner_source) if callable(inner_source) \
            else self._parse_internal(inner_source)

        def evaluate(data: Mapping[str, Any]) -> bool:
            return not inner.evaluate(data)

        return ParsedCondition(
            evaluator=evaluate,
            source=source,
            is_composite=True,
            referenced_fields=set(inner.referenced_fields),
        )

    def _parse_leaf(self, source: Dict[str, Any]) -> ParsedCondition:
        field_name = source.get("field")
        if not field_name:
            raise ExpressionParseError(source, "'field' must not be empty")
        field_name = str(field_name)

        operator_name = source.get("operator", "equals")
        expected = source.get("value")
        metadata = self.registry.get(operator_name)
        if metadata is None:
            logger.warning(f"Unknown operator '{operator_name}' in condition on '{field_name}'")

            def evaluate(data: Mapping[str, Any]) -> bool:
                return False
        else:
            func = metadata.func

            def evaluate(data: Mapping[str, Any]) -> bool:
                return bool(func(data.get(field_name), expected))

        return ParsedCondition(
            evaluator=evaluate,
            source=source,
            referenced_fields={field_name},
        )


def _normalize(expression: Any) -> Any:
    """Normalize expression for consistent caching."""
    if isinstance(expression, dict):
        return {k: _normalize(v) for k, v in sorted(expression.items())}
    if isinstance(expression, list):
        return [_normalize(item) for item in expression]
    return expression


default_parser = ConditionParser()


def referenced_fields(expression: Optional[ConditionExpression]) -> Set[str]:
    """
    Field ids an expression reads. Malformed expressions yield what could be
    extracted; this never raises.
    """
    if expression is None:
        return set()
    if callable(expression):
        return set(getattr(expression, "depends_on", ()) or ())
    if isinstance(expression, list):
        names: Set[str] = set()
        for item in expression:
            names |= referenced_fields(item)
        return names
    if not isinstance(expression, dict):
        return set()

    names = set()
    if expression.get("field"):
        names.add(str(expression["field"]))
    for key in ("conditions", "and", "or", "not"):
        if key in expression:
            names |= referenced_fields(expression[key])
    return names


def evaluate_condition(
    expression: Optional[ConditionExpression],
    data: Mapping[str, Any],
    parser: Optional[ConditionParser] = None,
) -> bool:
    """
    Evaluate an expression, treating malformed or failing expressions as false.
    """
    if expression is None:
        return False
    parser = parser or default_parser
    try:
        return parser.parse(expression).evaluate(data)
    except ExpressionParseError as e:
        logger.warning(str(e))
        return False
    except Exception as e:
        logger.warning(f"Condition evaluation failed: {e}")
        return False

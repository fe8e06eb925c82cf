"""
Conditional logic: visibility, required-ness and overrides of fields driven
by the values of other fields.

Main components:
- OperatorRegistry / operators: comparison operators used by conditions
- ConditionParser: turns condition expressions into evaluators
- ConditionalLogicResolver: per-snapshot visibility/required/modification state
- build_dependency_map: dependency map derived from field definitions
"""

from formkit.conditions.operators import (
    OperatorRegistry,
    OperatorMetadata,
    OperatorAlreadyRegisteredError,
    operators,
    is_blank,
)
from formkit.conditions.expression import (
    ConditionExpression,
    ConditionParser,
    ParsedCondition,
    ExpressionParseError,
    default_parser,
    evaluate_condition,
    referenced_fields,
)
from formkit.conditions.resolver import (
    ConditionalLogicResolver,
    FieldDependency,
    Resolution,
    build_dependency_map,
)

__all__ = [
    "OperatorRegistry",
    "OperatorMetadata",
    "OperatorAlreadyRegisteredError",
    "operators",
    "is_blank",
    "ConditionExpression",
    "ConditionParser",
    "ParsedCondition",
    "ExpressionParseError",
    "default_parser",
    "evaluate_condition",
    "referenced_fields",
    "ConditionalLogicResolver",
    "FieldDependency",
    "Resolution",
    "build_dependency_map",
]

"""
Validation of field values and submissions.

Main components:
- RuleRegistry / rules: rule validators, default messages, custom validators
- validate_value / validate_form: error lists and ValidationResult
- validate_visible_form: validation with conditional logic applied
"""

from formkit.validation.rules import (
    RuleAlreadyRegisteredError,
    RuleDefinition,
    RuleRegistry,
    CustomValidatorDefinition,
    UnknownCustomValidatorError,
    file_type_allowed,
    rules,
    to_date,
    to_number,
)
from formkit.validation.engine import (
    ValidationResult,
    format_message,
    is_empty_value,
    required_message,
    validate_form,
    validate_value,
    validate_visible_form,
)

__all__ = [
    "RuleAlreadyRegisteredError",
    "RuleDefinition",
    "RuleRegistry",
    "CustomValidatorDefinition",
    "UnknownCustomValidatorError",
    "file_type_allowed",
    "rules",
    "to_date",
    "to_number",
    "ValidationResult",
    "format_message",
    "is_empty_value",
    "required_message",
    "validate_form",
    "validate_value",
    "validate_visible_form",
]

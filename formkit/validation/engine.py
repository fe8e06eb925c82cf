"""
Validation engine.

Validates single values against a field's definition and whole submissions
against a form's fields. Errors are returned, never raised:

    errors = validate_value("3", number_field)        # ["Minimum value is 5"]
    result = validate_form(data, form.fields)
    if not result.valid:
        show(result.errors_by_field_id)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from formkit.conditions.resolver import ConditionalLogicResolver
from formkit.logger import logger as structured_logger
from formkit.model.entities import Field, FieldKind, RuleKind, ValidationRule
from formkit.settings import settings
from formkit.validation.patterns import PLACEHOLDER_PATTERN
from formkit.validation.rules import RuleRegistry, rules, to_date, to_number

logger = logging.getLogger(__name__)

FieldLike = Union[Field, Mapping[str, Any]]


@dataclass
class ValidationResult:
    """
    Outcome of validating a submission.

    Attributes:
        valid: True when no field has errors
        errors_by_field_id: Field id -> non-empty list of messages
    """
    valid: bool = True
    errors_by_field_id: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return sum(len(errors) for errors in self.errors_by_field_id.values())

    def errors_for(self, field_id: str) -> List[str]:
        return list(self.errors_by_field_id.get(field_id, []))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": {k: list(v) for k, v in self.errors_by_field_id.items()},
        }


def is_empty_value(value: Any) -> bool:
    """None, "" and empty collections are empty. Whitespace is a value."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value) == 0
    return False


def _render_param(value: Any) -> str:
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_render_param(item) for item in value)
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def format_message(template: str, params: Mapping[str, Any]) -> str:
    """
    Substitute {param} placeholders from `params`. Lists are joined with ", ";
    unknown placeholders are left as they are.
    """
    def substitute(match) -> str:
        name = match.group(1)
        if name in params:
            return _render_param(params[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, template)


def required_message(label: str) -> str:
    label = (label or "").strip()
    if not label:
        return settings.get_nested("validation.unlabeled_required_message", "This field is required")
    template = settings.get_nested("validation.required_message", "{label} is required")
    return template.replace("{label}", label)


def _as_field(source: FieldLike) -> Field:
    if isinstance(source, Field):
        return source
    # Ad-hoc definitions ({"type": "number", "validationRules": [...]}) need no id
    return Field.from_dict({"id": "", **source})


def _is_required(source: Field) -> bool:
    return source.required or RuleKind.REQUIRED in source.rule_kinds()


def _type_error(value: Any, source: Field) -> Optional[str]:
    """Message for a value that cannot be read as the field's kind."""
    if source.type == FieldKind.NUMBER:
        try:
            number = to_number(value)
        except (TypeError, ValueError):
            return "Please enter a valid number"
        if math.isnan(number):
            return "Please enter a valid number"
    elif source.type == FieldKind.DATE:
        try:
            to_date(value)
        except (TypeError, ValueError):
            return "Please enter a valid date"
    return None


def _check_rule(
    rule: ValidationRule,
    value: Any,
    source: Field,
    form_data: Mapping[str, Any],
    registry: RuleRegistry,
) -> Optional[str]:
    """Formatted message when `rule` fails, else None."""
    # The empty check already covered required
    if rule.kind == RuleKind.REQUIRED:
        return None

    template = rule.message or registry.default_message(rule.kind, rule.params)
    definition = registry.get(rule.kind)
    if definition is None:
        logger.warning(f"No validator registered for rule '{rule.kind.value}' on '{source.id}'")
        return None

    try:
        if rule.kind == RuleKind.CUSTOM:
            passed = registry.run_custom(value, rule.params, form_data)
        else:
            passed = definition.validator(value, rule.params)
    except Exception as e:
        logger.warning(
            f"Rule '{rule.kind.value}' on field '{source.id}' raised {type(e).__name__}: {e}"
        )
        passed = False

    if passed:
        return None
    return format_message(template, registry.effective_params(rule.kind, rule.params))


def validate_value(
    value: Any,
    source: FieldLike,
    form_data: Optional[Mapping[str, Any]] = None,
    registry: Optional[RuleRegistry] = None,
    required: Optional[bool] = None,
) -> List[str]:
    """
    Validate one value against a field definition.

    An empty required value yields exactly one "required" error. An empty
    optional value yields none. Otherwise every attached rule is checked in
    order and each failure contributes its formatted message.

    Args:
        value: The value to check
        source: Field (or its wire dict)
        form_data: Whole submission, for custom validators that compare fields
        registry: Rule registry (module default if omitted)
        required: Override of the field's required flag (conditional logic)
    """
    source = _as_field(source)
    registry = registry or rules
    is_required = _is_required(source) if required is None else required

    if is_empty_value(value):
        return [required_message(source.label)] if is_required else []

    type_error = _type_error(value, source)
    if type_error:
        return [type_error]

    errors = []
    for rule in source.validation_rules:
        message = _check_rule(rule, value, source, form_data or {}, registry)
        if message is not None:
            errors.append(message)
    return errors


def validate_form(
    data: Mapping[str, Any],
    fields: Iterable[FieldLike],
    registry: Optional[RuleRegistry] = None,
) -> ValidationResult:
    """Validate every field of a submission; absent values count as empty."""
    result = ValidationResult()
    for source in fields:
        source = _as_field(source)
        errors = validate_value(data.get(source.id), source, data, registry)
        if errors:
            result.errors_by_field_id[source.id] = errors
    result.valid = not result.errors_by_field_id
    _log_result(result)
    return result


def validate_visible_form(
    data: Mapping[str, Any],
    fields: Iterable[FieldLike],
    resolver: Optional[ConditionalLogicResolver] = None,
    registry: Optional[RuleRegistry] = None,
) -> ValidationResult:
    """
    Validate the fields visible for `data`, with conditional required-ness and
    modifications applied. Hidden fields are skipped.
    """
    fields = [_as_field(f) for f in fields]
    resolver = resolver or ConditionalLogicResolver.from_fields(fields, data)

    result = ValidationResult()
    for source in resolver.get_visible_fields(fields):
        changes = resolver.get_field_modifications(source.id)
        effective = source.merged(changes) if changes else source
        errors = validate_value(
            data.get(source.id),
            effective,
            data,
            registry,
            required=_effective_required(resolver, source, effective, changes),
        )
        if errors:
            result.errors_by_field_id[source.id] = errors
    result.valid = not result.errors_by_field_id
    _log_result(result)
    return result


def _effective_required(
    resolver: ConditionalLogicResolver,
    source: Field,
    effective: Field,
    changes: Mapping[str, Any],
) -> bool:
    # An active modification setting "required" wins over required_when
    if "required" in changes:
        return _is_required(effective)
    if RuleKind.REQUIRED in source.rule_kinds():
        return True
    return resolver.is_field_required(source.id)


def _log_result(result: ValidationResult) -> None:
    if result.valid or not settings.get_nested("logging.log_validation_failures", False):
        return
    structured_logger.metric(
        "validation_errors",
        result.error_count,
        fields=sorted(result.errors_by_field_id),
    )

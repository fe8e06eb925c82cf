"""
Built-in field type catalog.

Registers the ten built-in kinds into the default registry and exposes
module-level shortcuts over it:

    from formkit.field_types import create_field, applicable_rules

    field = create_field("select", {"label": "Country"})
"""

from typing import Any, Callable, FrozenSet, Mapping, Optional

from formkit.field_types.registry import (
    FieldCapabilities,
    FieldType,
    FieldTypeRegistry,
    KindLike,
)
from formkit.model.entities import Field, FieldKind, Option, RuleKind, ValidationRule
from formkit.settings import settings


# Rule kinds that apply to every field type
COMMON_RULES = frozenset({RuleKind.REQUIRED, RuleKind.CUSTOM})

TEXT_RULES = COMMON_RULES | {RuleKind.MIN_LENGTH, RuleKind.MAX_LENGTH, RuleKind.PATTERN}

DEFAULT_CHOICES = (
    Option(value="option1", label="Option 1"),
    Option(value="option2", label="Option 2"),
    Option(value="option3", label="Option 3"),
)

_upload_types = list(settings.get_nested("uploads.accepted_types", ["image/*", "application/pdf"]))
_upload_max_mb = settings.get_nested("uploads.max_size_mb", 10)


BUILTIN_FIELD_TYPES = (
    FieldType(
        kind=FieldKind.TEXT,
        label="Text",
        description="Single line text input",
        default_properties={"placeholder": "Enter text here", "helpText": ""},
        applicable_rule_kinds=TEXT_RULES,
        capabilities=FieldCapabilities(has_placeholder=True),
        empty_value="",
    ),
    FieldType(
        kind=FieldKind.TEXTAREA,
        label="Text Area",
        description="Multi-line text input",
        default_properties={"placeholder": "Enter text here", "helpText": "", "rows": 4},
        applicable_rule_kinds=TEXT_RULES,
        capabilities=FieldCapabilities(has_placeholder=True),
        empty_value="",
    ),
    FieldType(
        kind=FieldKind.NUMBER,
        label="Number",
        description="Numeric input",
        default_properties={"placeholder": "Enter a number", "helpText": "", "step": 1},
        applicable_rule_kinds=COMMON_RULES | {RuleKind.MIN, RuleKind.MAX, RuleKind.INTEGER},
        capabilities=FieldCapabilities(has_placeholder=True),
    ),
    FieldType(
        kind=FieldKind.EMAIL,
        label="Email",
        description="Email input with validation",
        default_properties={"placeholder": "your.email@example.com", "helpText": ""},
        applicable_rule_kinds=COMMON_RULES | {RuleKind.EMAIL, RuleKind.MAX_LENGTH},
        default_rules=(ValidationRule(kind=RuleKind.EMAIL),),
        capabilities=FieldCapabilities(has_placeholder=True),
        empty_value="",
    ),
    FieldType(
        kind=FieldKind.SELECT,
        label="Dropdown",
        description="Dropdown selection",
        category="choice",
        default_properties={"placeholder": "Select an option", "helpText": ""},
        default_options=DEFAULT_CHOICES,
        applicable_rule_kinds=COMMON_RULES,
        capabilities=FieldCapabilities(has_options=True, has_placeholder=True),
    ),
    FieldType(
        kind=FieldKind.RADIO,
        label="Radio",
        description="Single selection radio buttons",
        category="choice",
        default_properties={"helpText": "", "layout": "vertical"},
        default_options=DEFAULT_CHOICES,
        applicable_rule_kinds=COMMON_RULES,
        capabilities=FieldCapabilities(has_options=True),
    ),
    FieldType(
        kind=FieldKind.CHECKBOX,
        label="Checkbox",
        description="Multiple selection checkboxes",
        category="choice",
        default_properties={"helpText": "", "layout": "vertical"},
        default_options=DEFAULT_CHOICES,
        applicable_rule_kinds=COMMON_RULES | {RuleKind.MIN_SELECT, RuleKind.MAX_SELECT},
        capabilities=FieldCapabilities(has_options=True),
        empty_value=[],
    ),
    FieldType(
        kind=FieldKind.DATE,
        label="Date",
        description="Date picker",
        default_properties={"helpText": "", "format": "YYYY-MM-DD", "includeTime": False},
        applicable_rule_kinds=COMMON_RULES | {RuleKind.MIN_DATE, RuleKind.MAX_DATE},
    ),
    FieldType(
        kind=FieldKind.FILE,
        label="File Upload",
        description="File uploader",
        category="advanced",
        default_properties={
            "helpText": "",
            "multiple": False,
            "acceptedTypes": _upload_types,
            "maxSize": _upload_max_mb,
        },
        applicable_rule_kinds=COMMON_RULES | {RuleKind.FILE_SIZE, RuleKind.FILE_TYPE},
        default_rules=(
            ValidationRule(kind=RuleKind.FILE_SIZE, params={"maxSize": _upload_max_mb}),
            ValidationRule(kind=RuleKind.FILE_TYPE, params={"allowedTypes": _upload_types}),
        ),
        capabilities=FieldCapabilities(has_default_value=False),
    ),
    FieldType(
        kind=FieldKind.HIDDEN,
        label="Hidden Field",
        description="Hidden input field",
        category="advanced",
        applicable_rule_kinds=COMMON_RULES,
        empty_value="",
    ),
)


field_types = FieldTypeRegistry("builtin")
for _field_type in BUILTIN_FIELD_TYPES:
    field_types.register(_field_type)


def get_field_type(kind: KindLike) -> Optional[FieldType]:
    return field_types.get_field_type(kind)


def create_field(
    kind: KindLike,
    overrides: Optional[Mapping[str, Any]] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> Field:
    return field_types.create_field(kind, overrides, id_factory)


def applicable_rules(kind: KindLike) -> FrozenSet[RuleKind]:
    return field_types.applicable_rules(kind)

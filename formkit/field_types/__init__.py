"""Field types: the registry and the built-in catalog."""

from formkit.field_types.registry import (
    FieldCapabilities,
    FieldType,
    FieldTypeAlreadyRegisteredError,
    FieldTypeRegistry,
    UnknownFieldTypeError,
)
from formkit.field_types.catalog import (
    BUILTIN_FIELD_TYPES,
    COMMON_RULES,
    applicable_rules,
    create_field,
    field_types,
    get_field_type,
)

__all__ = [
    "FieldCapabilities",
    "FieldType",
    "FieldTypeAlreadyRegisteredError",
    "FieldTypeRegistry",
    "UnknownFieldTypeError",
    "BUILTIN_FIELD_TYPES",
    "COMMON_RULES",
    "applicable_rules",
    "create_field",
    "field_types",
    "get_field_type",
]

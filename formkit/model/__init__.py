"""Form definition model: entities and pure queries over them."""

from formkit.model.entities import (
    AVAILABLE_THEMES,
    CHOICE_KINDS,
    DEFAULT_FORM_SETTINGS,
    Field,
    FieldKind,
    FileValue,
    Form,
    FormStatus,
    Modification,
    Option,
    RuleKind,
    Submission,
    ValidationRule,
    new_field_id,
    new_form_id,
    normalize_field_keys,
    parse_timestamp,
)
from formkit.model.queries import (
    STATUS_TRANSITIONS,
    can_transition,
    field_index,
    find_field,
    has_unique_ids,
    is_permutation,
    is_valid_for_publishing,
    option_problems,
    publishing_problems,
    reindex_order,
    rule_problems,
    strip_references,
)

__all__ = [
    "AVAILABLE_THEMES",
    "CHOICE_KINDS",
    "DEFAULT_FORM_SETTINGS",
    "Field",
    "FieldKind",
    "FileValue",
    "Form",
    "FormStatus",
    "Modification",
    "Option",
    "RuleKind",
    "Submission",
    "ValidationRule",
    "new_field_id",
    "new_form_id",
    "normalize_field_keys",
    "parse_timestamp",
    "STATUS_TRANSITIONS",
    "can_transition",
    "field_index",
    "find_field",
    "has_unique_ids",
    "is_permutation",
    "is_valid_for_publishing",
    "option_problems",
    "publishing_problems",
    "reindex_order",
    "rule_problems",
    "strip_references",
]

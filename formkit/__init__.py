"""
formkit: form definition and validation engine.

Typed field definitions, an undoable form builder, rule-based validation,
conditional visibility and CSV/JSON export of submissions.

    from formkit import FormBuilder, validate_form, to_csv

    builder = FormBuilder()
    email_id = builder.add_field("email", {"label": "Email", "required": True})
    result = validate_form({email_id: "not-an-email"}, builder.form.fields)
"""

from formkit.builder import BuilderSession, FormBuilder
from formkit.conditions import ConditionalLogicResolver, build_dependency_map
from formkit.export import ExportFormat, export_submissions, to_csv, to_json
from formkit.field_types import (
    UnknownFieldTypeError,
    applicable_rules,
    create_field,
    field_types,
    get_field_type,
)
from formkit.model import (
    Field,
    FieldKind,
    Form,
    FormStatus,
    Option,
    RuleKind,
    Submission,
    ValidationRule,
    find_field,
    is_valid_for_publishing,
    reindex_order,
)
from formkit.submissions import submit_form
from formkit.validation import (
    ValidationResult,
    validate_form,
    validate_value,
    validate_visible_form,
)

__version__ = "1.0.0"

__all__ = [
    "BuilderSession",
    "FormBuilder",
    "ConditionalLogicResolver",
    "build_dependency_map",
    "ExportFormat",
    "export_submissions",
    "to_csv",
    "to_json",
    "UnknownFieldTypeError",
    "applicable_rules",
    "create_field",
    "field_types",
    "get_field_type",
    "Field",
    "FieldKind",
    "Form",
    "FormStatus",
    "Option",
    "RuleKind",
    "Submission",
    "ValidationRule",
    "find_field",
    "is_valid_for_publishing",
    "reindex_order",
    "submit_form",
    "ValidationResult",
    "validate_form",
    "validate_value",
    "validate_visible_form",
]

"""
Side-effect-free queries and derivations over forms and fields.

Nothing here mutates its arguments; structural helpers return new lists.
"""

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from formkit.conditions.expression import referenced_fields
from formkit.model.entities import (
    CHOICE_KINDS,
    Field,
    Form,
    FormStatus,
    RuleKind,
)


# Allowed status transitions: draft <-> published, either -> archived
STATUS_TRANSITIONS: Dict[FormStatus, frozenset] = {
    FormStatus.DRAFT: frozenset({FormStatus.PUBLISHED, FormStatus.ARCHIVED}),
    FormStatus.PUBLISHED: frozenset({FormStatus.DRAFT, FormStatus.ARCHIVED}),
    FormStatus.ARCHIVED: frozenset(),
}


def can_transition(current: FormStatus, target: FormStatus) -> bool:
    return target in STATUS_TRANSITIONS.get(current, frozenset())


def publishing_problems(form: Form) -> List[str]:
    """
    Reasons why a form cannot be published (empty when it can).

    A publishable form has a title, at least one field, a label on every field
    and at least one option on every select/radio/checkbox field.
    """
    problems = []
    if not (form.title or "").strip():
        problems.append("Form has no title")
    if not form.fields:
        problems.append("Form has no fields")

    for position, f in enumerate(form.fields, start=1):
        name = f.label.strip() if f.label else ""
        if not name:
            problems.append(f"Field #{position} ({f.type.value}) has no label")
            name = f"#{position}"
        if f.type in CHOICE_KINDS and not f.options:
            problems.append(f"Field '{name}' needs at least one option")
    return problems


def is_valid_for_publishing(form: Form) -> bool:
    return not publishing_problems(form)


def find_field(form: Form, field_id: str) -> Optional[Field]:
    for f in form.fields:
        if f.id == field_id:
            return f
    return None


def field_index(fields: Sequence[Field], field_id: str) -> int:
    """Position of a field, or -1."""
    for index, f in enumerate(fields):
        if f.id == field_id:
            return index
    return -1


def reindex_order(fields: Iterable[Field]) -> List[Field]:
    """Renumber `order` to match array position."""
    return [
        f if f.order == index else replace(f, order=index)
        for index, f in enumerate(fields)
    ]


def has_unique_ids(fields: Iterable[Field]) -> bool:
    ids = [f.id for f in fields]
    return len(ids) == len(set(ids))


def is_permutation(fields: Sequence[Field], candidate_ids: Sequence[str]) -> bool:
    """True if `candidate_ids` lists exactly the ids of `fields`, each once."""
    if len(candidate_ids) != len(fields):
        return False
    return sorted(candidate_ids) == sorted(f.id for f in fields)


def rule_problems(source: Field, applicable: Iterable[RuleKind]) -> List[str]:
    """Rules attached to a field whose kind does not apply to the field type."""
    allowed = set(applicable)
    return [
        f"Rule '{rule.kind.value}' does not apply to {source.type.value} fields"
        for rule in source.validation_rules
        if rule.kind not in allowed
    ]


def option_problems(source: Field) -> List[str]:
    """Duplicate option values within a field."""
    seen = set()
    problems = []
    for value in source.option_values():
        if value in seen:
            problems.append(f"Option value '{value}' is used more than once")
        seen.add(value)
    return problems


def _references(expression: Any, field_id: str) -> bool:
    return field_id in referenced_fields(expression)


def strip_references(fields: Iterable[Field], removed_id: str) -> List[Field]:
    """
    Drop every condition that reads `removed_id` from the given fields.
    Fields without such conditions are returned unchanged.
    """
    result = []
    for f in fields:
        if not f.has_conditions:
            result.append(f)
            continue

        visibility = None if _references(f.visibility_condition, removed_id) \
            else f.visibility_condition
        required = None if _references(f.required_condition, removed_id) \
            else f.required_condition
        modifications = [
            m for m in f.modifications if not _references(m.condition, removed_id)
        ]

        if (visibility is f.visibility_condition and required is f.required_condition
                and len(modifications) == len(f.modifications)):
            result.append(f)
        else:
            result.append(replace(
                f,
                visibility_condition=visibility,
                required_condition=required,
                modifications=modifications,
            ))
    return result

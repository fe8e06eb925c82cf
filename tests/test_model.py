"""
Tests for form definition entities and queries.
"""

from datetime import datetime, timezone

import pytest

from formkit.model import (
    Field,
    FieldKind,
    Form,
    FormStatus,
    Option,
    RuleKind,
    Submission,
    ValidationRule,
    can_transition,
    field_index,
    has_unique_ids,
    is_permutation,
    is_valid_for_publishing,
    option_problems,
    parse_timestamp,
    publishing_problems,
    reindex_order,
    rule_problems,
    strip_references,
)


# =============================================================================
# Entities
# =============================================================================

class TestField:

    def test_from_dict_camel_case(self):
        field = Field.from_dict({
            "id": "f1",
            "type": "select",
            "label": "Country",
            "options": ["FR", {"value": "US", "label": "United States"}],
            "validationRules": [{"type": "required"}],
            "placeholder": "Pick one",
        })
        assert field.type == FieldKind.SELECT
        assert field.options == [Option("FR", "FR"), Option("US", "United States")]
        assert field.rule_kinds() == [RuleKind.REQUIRED]
        assert field.properties == {"placeholder": "Pick one"}

    def test_from_dict_requires_id_and_known_type(self):
        with pytest.raises(KeyError):
            Field.from_dict({"type": "text"})
        with pytest.raises(ValueError):
            Field.from_dict({"id": "f", "type": "signature"})

    def test_to_dict_from_dict_identity(self):
        source = Field.from_dict({
            "id": "f1",
            "type": "number",
            "label": "Age",
            "order": 3,
            "validationRules": [{"kind": "min", "params": {"min": 5}, "message": ""}],
            "visibilityCondition": {"field": "x", "operator": "is_not_empty"},
            "properties": {"step": 1},
        })
        assert Field.from_dict(source.to_dict()) == source

    def test_merged_keeps_id_and_routes_unknown_keys(self):
        field = Field.from_dict({"id": "f1", "type": "text", "label": "A"})
        merged = field.merged({"id": "other", "label": "B", "helpText": "Hi", "default_value": "x"})
        assert merged.id == "f1"
        assert merged.label == "B"
        assert merged.default_value == "x"
        assert merged.properties["helpText"] == "Hi"
        assert field.label == "A"

    def test_has_conditions(self):
        assert not Field.from_dict({"id": "a", "type": "text"}).has_conditions
        assert Field.from_dict({
            "id": "a", "type": "text", "requiredCondition": {"field": "b"},
        }).has_conditions


class TestFormAndSubmission:

    def test_form_defaults(self):
        form = Form()
        assert form.id.startswith("form_")
        assert form.status == FormStatus.DRAFT
        assert form.settings["submitText"] == "Submit"
        assert form.published_at is None

    def test_form_from_dict_merges_settings(self):
        form = Form.from_dict({
            "id": "f",
            "title": "Survey",
            "status": "published",
            "settings": {"theme": "dark"},
            "publishedAt": "2024-05-01T10:00:00Z",
        })
        assert form.settings["theme"] == "dark"
        assert form.settings["submitText"] == "Submit"
        assert form.published_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert form.to_dict()["publishedAt"] == "2024-05-01T10:00:00+00:00"

    def test_submission_round_trip(self, submissions):
        restored = Submission.from_dict(submissions[0].to_dict())
        assert restored == submissions[0]

    @pytest.mark.parametrize("value", [
        "2024-05-01T10:00:00Z",
        "2024-05-01T10:00:00",
        datetime(2024, 5, 1, 10, 0),
        1714557600000,
    ])
    def test_parse_timestamp(self, value):
        assert parse_timestamp(value) == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_parse_timestamp_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp(True)


# =============================================================================
# Queries
# =============================================================================

def text_field(field_id, **kwargs):
    return Field.from_dict({"id": field_id, "type": "text", "label": field_id.upper(), **kwargs})


class TestPublishing:

    def test_valid_form(self, contact_form):
        assert is_valid_for_publishing(contact_form)

    def test_problems_listed(self):
        form = Form(title=" ", fields=[])
        assert publishing_problems(form) == ["Form has no title", "Form has no fields"]

    def test_unlabeled_field_and_empty_choice(self):
        form = Form(title="T", fields=[
            Field.from_dict({"id": "a", "type": "text", "label": ""}),
            Field.from_dict({"id": "b", "type": "radio", "label": "Pick"}),
        ])
        assert publishing_problems(form) == [
            "Field #1 (text) has no label",
            "Field 'Pick' needs at least one option",
        ]


class TestStatus:

    @pytest.mark.parametrize("current,target,allowed", [
        (FormStatus.DRAFT, FormStatus.PUBLISHED, True),
        (FormStatus.PUBLISHED, FormStatus.DRAFT, True),
        (FormStatus.PUBLISHED, FormStatus.ARCHIVED, True),
        (FormStatus.ARCHIVED, FormStatus.DRAFT, False),
        (FormStatus.DRAFT, FormStatus.DRAFT, False),
    ])
    def test_transitions(self, current, target, allowed):
        assert can_transition(current, target) is allowed


class TestStructure:

    def test_reindex_order(self):
        fields = reindex_order([text_field("b", order=7), text_field("a", order=0)])
        assert [(f.id, f.order) for f in fields] == [("b", 0), ("a", 1)]

    def test_field_index(self):
        fields = [text_field("a"), text_field("b")]
        assert field_index(fields, "b") == 1
        assert field_index(fields, "z") == -1

    def test_unique_ids_and_permutation(self):
        fields = [text_field("a"), text_field("b")]
        assert has_unique_ids(fields)
        assert not has_unique_ids(fields + [text_field("a")])
        assert is_permutation(fields, ["b", "a"])
        assert not is_permutation(fields, ["a", "a"])
        assert not is_permutation(fields, ["a"])

    def test_rule_problems(self):
        field = Field.from_dict({
            "id": "n", "type": "number",
            "validationRules": [{"kind": "min", "params": {"min": 1}}, {"kind": "minLength"}],
        })
        assert rule_problems(field, {RuleKind.MIN}) == [
            "Rule 'minLength' does not apply to number fields",
        ]

    def test_option_problems(self):
        field = Field.from_dict({"id": "s", "type": "select", "options": ["a", "b", "a"]})
        assert option_problems(field) == ["Option value 'a' is used more than once"]

    def test_strip_references(self):
        dependent = text_field(
            "b",
            visibilityCondition={"field": "a", "operator": "is_not_empty"},
            requiredCondition={"field": "c", "operator": "is_not_empty"},
            modifications=[{"condition": {"field": "a"}, "changes": {"label": "X"}}],
        )
        untouched = text_field("c")
        stripped = strip_references([dependent, untouched], "a")
        assert stripped[0].visibility_condition is None
        assert stripped[0].required_condition == {"field": "c", "operator": "is_not_empty"}
        assert stripped[0].modifications == []
        assert stripped[1] is untouched


def test_validation_rule_accepts_type_key():
    assert ValidationRule.from_dict({"type": "email"}).kind == RuleKind.EMAIL

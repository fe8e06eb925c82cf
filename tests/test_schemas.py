"""
Tests for incoming document schemas.
"""

from datetime import datetime, timezone

import pytest

from formkit.model import FieldKind, FormStatus, Option, RuleKind
from formkit.schemas import (
    DocumentError,
    UploadResult,
    load_form_document,
    load_submission_document,
    load_submission_documents,
)


class TestFormDocument:

    def test_loads_form(self):
        form = load_form_document({
            "id": "form_1",
            "title": "Survey",
            "status": "published",
            "publishedAt": "2024-05-01T10:00:00Z",
            "fields": [
                {
                    "id": "color",
                    "type": "radio",
                    "label": "Color",
                    "options": ["red", {"value": 2, "label": "Two"}, {"value": "blue"}],
                    "validationRules": [{"type": "required"}],
                    "helpText": "Pick one",
                },
            ],
        })
        field = form.fields[0]
        assert form.status == FormStatus.PUBLISHED
        assert form.published_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert field.type == FieldKind.RADIO
        assert field.options == [Option("red", "red"), Option("2", "Two"), Option("blue", "blue")]
        assert field.rule_kinds() == [RuleKind.REQUIRED]
        assert field.properties["helpText"] == "Pick one"

    def test_round_trip_through_to_dict(self, contact_form):
        assert load_form_document(contact_form.to_dict()) == contact_form

    def test_missing_id_gets_generated(self):
        assert load_form_document({"title": "A"}).id.startswith("form_")

    @pytest.mark.parametrize("document,fragment", [
        ({"fields": [{"id": "a", "type": "signature"}]}, "fields.0.type"),
        ({"fields": [{"type": "text"}]}, "fields.0.id"),
        ({"fields": [{"id": "a", "type": "text"}, {"id": "a", "type": "text"}]}, "duplicate field id 'a'"),
        ({"status": "deleted"}, "status"),
        ({"fields": [{"id": "a", "type": "text", "validationRules": [{"kind": "nope"}]}]},
         "fields.0.validationRules.0.kind"),
    ])
    def test_invalid(self, document, fragment):
        with pytest.raises(DocumentError) as exc_info:
            load_form_document(document)
        assert exc_info.value.kind == "form"
        assert any(fragment in problem for problem in exc_info.value.problems)


class TestSubmissionDocument:

    def test_loads_submission(self):
        submission = load_submission_document({
            "id": "sub_9",
            "formId": "form_1",
            "data": {"name": "Ada"},
            "submittedAt": 1714557600000,
        })
        assert submission.id == "sub_9"
        assert submission.submitted_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_form_id_required(self):
        with pytest.raises(DocumentError) as exc_info:
            load_submission_document({"data": {}})
        assert exc_info.value.kind == "submission"

    def test_wrapper_and_list(self, submissions):
        documents = [s.to_dict() for s in submissions]
        assert load_submission_documents(documents) == submissions
        assert load_submission_documents({"submissions": documents}) == submissions
        assert load_submission_documents({}) == []


def test_upload_result():
    result = UploadResult(name="cv.pdf", size=3, type="application/pdf", url="memory://1/cv.pdf")
    assert result.to_file_value().url == "memory://1/cv.pdf"
    with pytest.raises(ValueError):
        UploadResult(name="cv.pdf", size=-1)

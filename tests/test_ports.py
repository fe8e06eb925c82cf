"""
Tests for collaborator ports: stores, uploads and builder persistence.
"""

import pytest
from pydantic import ValidationError

from formkit.builder import FormBuilder
from formkit.model import FileValue, RuleKind, Submission
from formkit.ports import (
    FormStore,
    InMemoryFormStore,
    InMemorySubmissionStore,
    InMemoryUploadService,
    StoreError,
    SubmissionStore,
    UploadRejectedError,
    UploadService,
    check_upload,
    load_into,
    save_session,
)


class FailingStore:
    def load_form(self, form_id):
        raise StoreError("disk on fire")

    def save_form(self, document):
        raise StoreError("disk on fire")

    def create_form(self, document):
        raise StoreError("disk on fire")


# =============================================================================
# Stores
# =============================================================================

class TestFormStore:

    def test_protocol(self):
        assert isinstance(InMemoryFormStore(), FormStore)
        assert isinstance(InMemorySubmissionStore(), SubmissionStore)
        assert isinstance(InMemoryUploadService(), UploadService)

    def test_save_and_load_copies(self):
        store = InMemoryFormStore()
        document = {"id": "f1", "title": "A"}
        store.save_form(document)
        document["title"] = "changed"
        loaded = store.load_form("f1")
        assert loaded["title"] == "A"
        loaded["title"] = "changed"
        assert store.load_form("f1")["title"] == "A"
        assert store.load_form("missing") is None

    def test_save_requires_id(self):
        with pytest.raises(StoreError):
            InMemoryFormStore().save_form({"title": "A"})

    def test_create(self):
        store = InMemoryFormStore()
        form_id = store.create_form({"title": "A"})
        assert form_id.startswith("form_")
        assert form_id in store
        assert store.create_form({"id": "f2"}) == "f2"
        with pytest.raises(StoreError):
            store.create_form({"id": "f2"})
        assert len(store) == 2


class TestSubmissionStore:

    def test_assigns_ids(self):
        store = InMemorySubmissionStore()
        assert store.add_submission(Submission(form_id="form_contact", data={"name": "Ada"})) == "sub_1"
        assert store.add_submission(Submission(form_id="other", data={})) == "sub_2"
        assert store.add_submission(Submission(form_id="form_contact", data={})) == "sub_3"
        assert [s.id for s in store.list_submissions("form_contact")] == ["sub_1", "sub_3"]
        assert len(store) == 3

    def test_keeps_given_id(self, submissions):
        store = InMemorySubmissionStore()
        assert store.add_submission(submissions[1]) == "sub_2"
        assert store.list_submissions("form_contact")[0].data == submissions[1].data


# =============================================================================
# Uploads
# =============================================================================

class TestUploads:

    @pytest.mark.parametrize("file,expected", [
        ({"name": "a.png", "size": 10, "type": "image/png"}, None),
        ({"name": "a.exe", "size": 10, "type": "application/x-msdownload"}, RuleKind.FILE_TYPE),
        ({"name": "a.png", "size": 11 * 1024 * 1024, "type": "image/png"}, RuleKind.FILE_SIZE),
    ])
    def test_check_upload_defaults(self, file, expected):
        assert check_upload(file) == expected

    def test_check_upload_constraints(self):
        file = FileValue(name="notes.txt", size=10, type="text/plain")
        assert check_upload(file, {"acceptedTypes": [".txt"]}) is None
        assert check_upload(file, {"acceptedTypes": ["*"], "maxSize": 0.000001}) == RuleKind.FILE_SIZE

    def test_upload(self):
        service = InMemoryUploadService()
        stored = service.upload(
            {"name": "cv.pdf", "type": "application/pdf", "content": b"%PDF"},
            {"acceptedTypes": ["application/pdf"], "maxSize": 1},
        )
        assert stored.size == 4
        assert stored.path == "1/cv.pdf"
        assert stored.url == "memory://uploads/1/cv.pdf"
        assert service.files["1/cv.pdf"] == b"%PDF"

    def test_upload_rejected(self):
        service = InMemoryUploadService()
        with pytest.raises(UploadRejectedError) as exc_info:
            service.upload({"name": "a.exe", "type": "application/x-msdownload", "content": "x"}, {})
        assert exc_info.value.rule == RuleKind.FILE_TYPE
        assert service.files == {}

    def test_upload_without_name_refused(self):
        service = InMemoryUploadService()
        with pytest.raises(ValidationError):
            service.upload({"name": "", "type": "text/plain", "content": "x"}, {"acceptedTypes": ["*"]})
        assert service.files == {}


# =============================================================================
# Builder persistence
# =============================================================================

class TestPersistence:

    def test_save_then_load(self, builder):
        builder.update_form({"title": "Survey"})
        builder.add_field("text", {"label": "Name"})
        store = InMemoryFormStore()
        assert save_session(builder, store)

        other = FormBuilder()
        assert load_into(other, store, builder.form.id)
        assert other.form == builder.form
        assert other.can_undo()

    def test_load_missing_leaves_session(self, builder):
        before = builder.session
        assert load_into(builder, InMemoryFormStore(), "missing") is False
        assert builder.session is before

    def test_load_malformed_leaves_session(self, builder):
        store = InMemoryFormStore({"bad": {"id": "bad", "fields": [{"id": "x", "type": "signature"}]}})
        before = builder.session
        assert load_into(builder, store, "bad") is False
        assert builder.session is before

    def test_store_failures_reported(self, builder):
        before = builder.session
        assert save_session(builder, FailingStore()) is False
        assert load_into(builder, FailingStore(), "x") is False
        assert builder.session is before

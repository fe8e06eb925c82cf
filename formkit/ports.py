"""
Collaborator ports.

The engine does not own persistence or uploads. It talks to them through the
protocols below and exchanges plain documents (dicts). In-memory
implementations back the tests and the CLI.

    store = InMemoryFormStore()
    builder = FormBuilder()
    save_session(builder, store)             # True, or False with the error logged
    load_into(builder, store, "form_123")    # session untouched on failure
"""

import copy
import itertools
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from formkit.logger import logger
from formkit.model.entities import FileValue, RuleKind, Submission, new_form_id
from formkit.schemas import DocumentError, UploadResult, load_form_document
from formkit.settings import settings
from formkit.validation.rules import validate_file_size, validate_file_type


class StoreError(Exception):
    """Raised by stores when a document cannot be read or written."""


@runtime_checkable
class FormStore(Protocol):
    """Key-value document store for form definitions."""

    def load_form(self, form_id: str) -> Optional[Dict[str, Any]]:
        """Form document, or None when absent."""
        ...

    def save_form(self, document: Mapping[str, Any]) -> None:
        ...

    def create_form(self, document: Mapping[str, Any]) -> str:
        """Store a new form and return its id."""
        ...


@runtime_checkable
class SubmissionStore(Protocol):
    """Append-only store of submissions."""

    def add_submission(self, submission: Submission) -> str:
        """Record a submission and return the id assigned to it."""
        ...

    def list_submissions(self, form_id: str) -> List[Submission]:
        ...


@runtime_checkable
class UploadService(Protocol):
    """Stores uploaded files and describes them."""

    def upload(self, file: Mapping[str, Any], constraints: Mapping[str, Any]) -> FileValue:
        ...


class InMemoryFormStore:
    """FormStore over a dict. Documents are deep-copied in and out."""

    def __init__(self, documents: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._documents: Dict[str, Dict[str, Any]] = {
            key: copy.deepcopy(dict(value)) for key, value in (documents or {}).items()
        }

    def load_form(self, form_id: str) -> Optional[Dict[str, Any]]:
        document = self._documents.get(form_id)
        return copy.deepcopy(document) if document is not None else None

    def save_form(self, document: Mapping[str, Any]) -> None:
        form_id = document.get("id")
        if not form_id:
            raise StoreError("Form document has no id")
        self._documents[str(form_id)] = copy.deepcopy(dict(document))

    def create_form(self, document: Mapping[str, Any]) -> str:
        form_id = str(document.get("id") or new_form_id())
        if form_id in self._documents:
            raise StoreError(f"Form '{form_id}' already exists")
        self._documents[form_id] = {**copy.deepcopy(dict(document)), "id": form_id}
        return form_id

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)


class InMemorySubmissionStore:
    """SubmissionStore over a list; ids are sub_1, sub_2, ..."""

    def __init__(self):
        self._submissions: List[Submission] = []
        self._ids = itertools.count(1)

    def add_submission(self, submission: Submission) -> str:
        submission_id = submission.id or f"sub_{next(self._ids)}"
        stored = Submission(
            id=submission_id,
            form_id=submission.form_id,
            data=copy.deepcopy(submission.data),
            submitted_at=submission.submitted_at,
            metadata=copy.deepcopy(submission.metadata),
        )
        self._submissions.append(stored)
        return submission_id

    def list_submissions(self, form_id: str) -> List[Submission]:
        return [s for s in self._submissions if s.form_id == form_id]

    def __len__(self) -> int:
        return len(self._submissions)


def default_upload_constraints() -> Dict[str, Any]:
    return {
        "maxSize": settings.get_nested("uploads.max_size_mb", 10),
        "acceptedTypes": list(settings.get_nested("uploads.accepted_types", [])),
    }


def check_upload(file: Any, constraints: Optional[Mapping[str, Any]] = None) -> Optional[RuleKind]:
    """
    First upload constraint `file` violates (FILE_TYPE or FILE_SIZE), else None.
    Uses the same checks as the fileType/fileSize validation rules.
    """
    constraints = {**default_upload_constraints(), **dict(constraints or {})}
    descriptor = file if isinstance(file, FileValue) else FileValue.from_dict(file)
    accepted = constraints.get("acceptedTypes") or constraints.get("allowedTypes")
    if accepted and not validate_file_type(descriptor, {"allowedTypes": accepted}):
        return RuleKind.FILE_TYPE
    if constraints.get("maxSize") and not validate_file_size(
        descriptor, {"maxSize": constraints["maxSize"]}
    ):
        return RuleKind.FILE_SIZE
    return None


class UploadRejectedError(ValueError):
    """Raised by upload services when a file violates the field's constraints."""

    def __init__(self, name: str, rule: RuleKind):
        self.name = name
        self.rule = rule
        super().__init__(f"Upload of '{name}' rejected: {rule.value}")


class InMemoryUploadService:
    """UploadService keeping file contents in memory under memory://uploads/."""

    def __init__(self, base_url: str = "memory://uploads"):
        self.base_url = base_url.rstrip("/")
        self.files: Dict[str, bytes] = {}

    def upload(self, file: Mapping[str, Any], constraints: Mapping[str, Any]) -> FileValue:
        """
        Raises:
            UploadRejectedError: If the file violates `constraints`
            pydantic.ValidationError: If the file has no name
        """
        content = file.get("content") or b""
        if isinstance(content, str):
            content = content.encode("utf-8")
        descriptor = FileValue(
            name=str(file.get("name", "")),
            size=int(file.get("size", len(content))),
            type=str(file.get("type", "")),
        )
        violated = check_upload(descriptor, constraints)
        if violated is not None:
            raise UploadRejectedError(descriptor.name, violated)

        path = f"{len(self.files) + 1}/{descriptor.name}"
        result = UploadResult(
            name=descriptor.name,
            size=descriptor.size,
            type=descriptor.type,
            url=f"{self.base_url}/{path}",
            path=path,
        )
        self.files[path] = bytes(content)
        return result.to_file_value()


def save_session(builder: Any, store: FormStore) -> bool:
    """
    Persist the builder's form. Store failures are logged and reported as
    False; the session is never touched.
    """
    document = builder.form.to_dict()
    try:
        store.save_form(document)
    except Exception as e:
        logger.error("Saving form failed", form_id=document["id"], error=str(e))
        return False
    logger.event("form_saved", form_id=document["id"])
    return True


def load_into(builder: Any, store: FormStore, form_id: str) -> bool:
    """
    Load a stored form into the builder (set_form, so it stays undoable).
    Missing, unreadable or malformed documents leave the session as it was.
    """
    try:
        document = store.load_form(form_id)
    except Exception as e:
        logger.error("Loading form failed", form_id=form_id, error=str(e))
        return False
    if document is None:
        logger.warning("Form not found", form_id=form_id)
        return False

    try:
        form = load_form_document(document)
    except DocumentError as e:
        logger.error("Stored form is malformed", form_id=form_id, problems=e.problems)
        return False

    return builder.set_form(form)

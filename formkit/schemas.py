"""Pydantic schemas for documents entering the engine (stored forms, submissions, uploads)."""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from formkit.model.entities import (
    FieldKind,
    FileValue,
    Form,
    FormStatus,
    RuleKind,
    Submission,
    parse_timestamp,
)


class DocumentError(ValueError):
    """Raised when an incoming document does not match its schema."""

    def __init__(self, kind: str, problems: List[str]):
        self.kind = kind
        self.problems = problems
        super().__init__(f"Invalid {kind} document: " + "; ".join(problems))

    @classmethod
    def from_validation_error(cls, kind: str, error: ValidationError) -> "DocumentError":
        problems = [
            f"{'.'.join(str(part) for part in e['loc']) or '<root>'}: {e['msg']}"
            for e in error.errors()
        ]
        return cls(kind, problems)


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class OptionDocument(_Document):
    value: str
    label: str = ""

    @model_validator(mode="before")
    @classmethod
    def from_plain_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": data, "label": data}
        if isinstance(data, Mapping) and data.get("value") is not None:
            value = str(data["value"])
            return {**data, "value": value, "label": str(data.get("label") or value)}
        return data


class RuleDocument(_Document):
    kind: RuleKind = Field(..., description="Rule kind")
    params: Dict[str, Any] = Field(default_factory=dict)
    message: str = ""

    @model_validator(mode="before")
    @classmethod
    def accept_type_key(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "kind" not in data and "type" in data:
            data = {**data, "kind": data["type"]}
            data.pop("type")
        return data


class ModificationDocument(_Document):
    condition: Any
    changes: Dict[str, Any] = Field(default_factory=dict)


class FieldDocument(_Document):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    type: FieldKind
    label: str = ""
    required: bool = False
    order: int = 0
    options: List[OptionDocument] = Field(default_factory=list)
    validation_rules: List[RuleDocument] = Field(default_factory=list, alias="validationRules")
    visibility_condition: Optional[Any] = Field(None, alias="visibilityCondition")
    required_condition: Optional[Any] = Field(None, alias="requiredCondition")
    modifications: List[ModificationDocument] = Field(default_factory=list)
    default_value: Optional[Any] = Field(None, alias="defaultValue")
    properties: Dict[str, Any] = Field(default_factory=dict)


class FormDocument(_Document):
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    status: FormStatus = FormStatus.DRAFT
    settings: Dict[str, Any] = Field(default_factory=dict)
    fields: List[FieldDocument] = Field(default_factory=list)
    published_at: Optional[str] = Field(None, alias="publishedAt")

    @field_validator("fields")
    @classmethod
    def unique_field_ids(cls, fields: List[FieldDocument]) -> List[FieldDocument]:
        seen = set()
        for f in fields:
            if f.id in seen:
                raise ValueError(f"duplicate field id '{f.id}'")
            seen.add(f.id)
        return fields

    @field_validator("published_at", mode="before")
    @classmethod
    def normalize_published_at(cls, value: Any) -> Optional[str]:
        if value in (None, ""):
            return None
        return parse_timestamp(value).isoformat()


class SubmissionDocument(_Document):
    id: Optional[str] = None
    form_id: str = Field(..., alias="formId", min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: Optional[str] = Field(None, alias="submittedAt")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("submitted_at", mode="before")
    @classmethod
    def normalize_submitted_at(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return parse_timestamp(value).isoformat()


class UploadResult(_Document):
    """File descriptor returned by an upload service."""
    name: str = Field(..., min_length=1)
    size: int = Field(..., ge=0, description="Size in bytes")
    type: str = ""
    url: str = ""
    path: str = ""

    def to_file_value(self) -> FileValue:
        return FileValue(**self.model_dump())


def load_form_document(document: Mapping[str, Any]) -> Form:
    """
    Raises:
        DocumentError: If the document does not describe a form
    """
    try:
        model = FormDocument.model_validate(document)
    except ValidationError as e:
        raise DocumentError.from_validation_error("form", e) from e
    return Form.from_dict(model.model_dump(by_alias=True))


def load_submission_document(document: Mapping[str, Any]) -> Submission:
    """
    Raises:
        DocumentError: If the document does not describe a submission
    """
    try:
        model = SubmissionDocument.model_validate(document)
    except ValidationError as e:
        raise DocumentError.from_validation_error("submission", e) from e
    return Submission.from_dict(model.model_dump(by_alias=True))


def load_submission_documents(documents: Union[List[Mapping[str, Any]], Mapping[str, Any]]) -> List[Submission]:
    """A list of submission documents, or a {"submissions": [...]} wrapper."""
    if isinstance(documents, Mapping):
        documents = documents.get("submissions") or []
    return [load_submission_document(d) for d in documents]

"""
Form definition entities.

Fields, options, validation rules, forms and submissions as value objects.
Wire format (to_dict/from_dict) uses the camelCase keys the authoring UI and
the document store exchange; attributes are snake_case.

Entities are frozen: every change produces a new instance through
dataclasses.replace() or Field.merged().
"""

import copy
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class FieldKind(str, Enum):
    """Kinds of input a field can collect."""
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    FILE = "file"
    HIDDEN = "hidden"


class RuleKind(str, Enum):
    """Validation rule kinds."""
    REQUIRED = "required"
    EMAIL = "email"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    MIN = "min"
    MAX = "max"
    PATTERN = "pattern"
    INTEGER = "integer"
    MIN_SELECT = "minSelect"
    MAX_SELECT = "maxSelect"
    MIN_DATE = "minDate"
    MAX_DATE = "maxDate"
    FILE_SIZE = "fileSize"
    FILE_TYPE = "fileType"
    CUSTOM = "custom"


class FormStatus(str, Enum):
    """Publication status of a form."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# Kinds that must carry at least one option before publishing
CHOICE_KINDS = frozenset({FieldKind.SELECT, FieldKind.RADIO, FieldKind.CHECKBOX})

DEFAULT_FORM_SETTINGS: Dict[str, Any] = {
    "theme": "default",
    "submitText": "Submit",
    "successMessage": "Thank you for your submission!",
    "redirectUrl": "",
    "allowMultipleSubmissions": True,
    "showProgressBar": True,
}

AVAILABLE_THEMES = ("default", "dark", "colorful", "minimal")


def new_field_id() -> str:
    return f"field_{uuid.uuid4().hex}"


def new_form_id() -> str:
    return f"form_{uuid.uuid4().hex}"


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a submission timestamp.

    Accepts datetime objects, ISO-8601 strings (a trailing "Z" is allowed)
    and epoch milliseconds. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Option:
    """One choice of a select/radio/checkbox field."""
    value: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "label": self.label}

    @classmethod
    def from_dict(cls, data: Any) -> "Option":
        """Build from a {value, label} dict, an Option, or a bare string."""
        if isinstance(data, Option):
            return data
        if isinstance(data, str):
            return cls(value=data, label=data)
        value = str(data.get("value", data.get("label", "")))
        return cls(value=value, label=str(data.get("label", value)))


@dataclass(frozen=True)
class ValidationRule:
    """
    A validation rule attached to a field.

    Attributes:
        kind: Rule kind
        params: Rule-specific parameters ({"min": 5}, {"pattern": "^a"}, ...)
        message: Error template with {param} placeholders; empty means the
            rule's default template
    """
    kind: RuleKind
    params: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "params": copy.deepcopy(self.params),
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ValidationRule":
        if isinstance(data, ValidationRule):
            return data
        kind = data.get("kind", data.get("type"))
        return cls(
            kind=RuleKind(kind),
            params=copy.deepcopy(dict(data.get("params") or {})),
            message=data.get("message") or "",
        )


@dataclass(frozen=True)
class Modification:
    """Field overrides applied while `condition` holds."""
    condition: Any
    changes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "condition": copy.deepcopy(self.condition),
            "changes": copy.deepcopy(self.changes),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Modification":
        if isinstance(data, Modification):
            return data
        return cls(
            condition=copy.deepcopy(data.get("condition")),
            changes=copy.deepcopy(dict(data.get("changes") or {})),
        )


@dataclass(frozen=True)
class FileValue:
    """Descriptor of an uploaded file, as returned by the upload service."""
    name: str
    size: int
    type: str = ""
    url: str = ""
    path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "url": self.url,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FileValue":
        return cls(
            name=str(data.get("name", "")),
            size=int(data.get("size", 0)),
            type=str(data.get("type", "")),
            url=str(data.get("url", "")),
            path=str(data.get("path", "")),
        )


# Wire key -> attribute name
_FIELD_WIRE_KEYS = {
    "id": "id",
    "type": "type",
    "label": "label",
    "required": "required",
    "order": "order",
    "options": "options",
    "validationRules": "validation_rules",
    "visibilityCondition": "visibility_condition",
    "requiredCondition": "required_condition",
    "modifications": "modifications",
    "defaultValue": "default_value",
    "properties": "properties",
}
_FIELD_ATTRIBUTES = {attr: key for key, attr in _FIELD_WIRE_KEYS.items()}


def normalize_field_keys(partial: Mapping[str, Any]) -> Dict[str, Any]:
    """Map snake_case attribute names in `partial` to wire keys."""
    return {_FIELD_ATTRIBUTES.get(key, key): value for key, value in partial.items()}


@dataclass(frozen=True)
class Field:
    """
    One input definition within a form.

    `properties` holds type-specific presentation settings (placeholder,
    helpText, rows, step, acceptedTypes, ...). Unknown keys of a wire dict
    end up there.
    """
    id: str
    type: FieldKind
    label: str = ""
    required: bool = False
    order: int = 0
    options: List[Option] = field(default_factory=list)
    validation_rules: List[ValidationRule] = field(default_factory=list)
    visibility_condition: Optional[Any] = None
    required_condition: Optional[Any] = None
    modifications: List[Modification] = field(default_factory=list)
    default_value: Any = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_options(self) -> bool:
        return self.type in CHOICE_KINDS

    @property
    def has_conditions(self) -> bool:
        return bool(
            self.visibility_condition is not None
            or self.required_condition is not None
            or self.modifications
        )

    def option_values(self) -> List[str]:
        return [option.value for option in self.options]

    def rule_kinds(self) -> List[RuleKind]:
        return [rule.kind for rule in self.validation_rules]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "required": self.required,
            "order": self.order,
            "options": [option.to_dict() for option in self.options],
            "validationRules": [rule.to_dict() for rule in self.validation_rules],
            "visibilityCondition": copy.deepcopy(self.visibility_condition),
            "requiredCondition": copy.deepcopy(self.required_condition),
            "modifications": [mod.to_dict() for mod in self.modifications],
            "defaultValue": copy.deepcopy(self.default_value),
            "properties": copy.deepcopy(self.properties),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Field":
        """
        Build a field from its wire dict.

        Raises:
            KeyError: if "id" or "type" is missing
            ValueError: if "type" is not a known field kind
        """
        data = normalize_field_keys(data)
        properties = copy.deepcopy(dict(data.get("properties") or {}))
        for key, value in data.items():
            if key not in _FIELD_WIRE_KEYS:
                properties[key] = copy.deepcopy(value)

        return cls(
            id=str(data["id"]),
            type=FieldKind(data["type"]),
            label=data.get("label") or "",
            required=bool(data.get("required", False)),
            order=int(data.get("order", 0)),
            options=[Option.from_dict(o) for o in data.get("options") or []],
            validation_rules=[
                ValidationRule.from_dict(r) for r in data.get("validationRules") or []
            ],
            visibility_condition=copy.deepcopy(data.get("visibilityCondition")),
            required_condition=copy.deepcopy(data.get("requiredCondition")),
            modifications=[
                Modification.from_dict(m) for m in data.get("modifications") or []
            ],
            default_value=copy.deepcopy(data.get("defaultValue")),
            properties=properties,
        )

    def merged(self, partial: Mapping[str, Any]) -> "Field":
        """
        Shallow-merge `partial` onto this field and return the result.

        Known keys (wire or attribute names) replace attributes; any other key
        is merged into `properties`. The id never changes.
        """
        data = self.to_dict()
        extra_properties = {}
        for key, value in normalize_field_keys(partial).items():
            if key == "id":
                continue
            if key == "properties":
                extra_properties.update(value or {})
            elif key in _FIELD_WIRE_KEYS:
                data[key] = value
            else:
                extra_properties[key] = value
        data["properties"] = {**data["properties"], **copy.deepcopy(extra_properties)}
        return Field.from_dict(data)


@dataclass(frozen=True)
class Form:
    """A form definition: ordered fields plus settings and status."""
    id: str = field(default_factory=new_form_id)
    title: str = "Untitled Form"
    description: str = ""
    status: FormStatus = FormStatus.DRAFT
    settings: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_FORM_SETTINGS))
    fields: List[Field] = field(default_factory=list)
    published_at: Optional[datetime] = None

    def field_ids(self) -> List[str]:
        return [f.id for f in self.fields]

    def with_fields(self, fields: List[Field]) -> "Form":
        return replace(self, fields=list(fields))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "settings": copy.deepcopy(self.settings),
            "fields": [f.to_dict() for f in self.fields],
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Form":
        settings = dict(DEFAULT_FORM_SETTINGS)
        settings.update(copy.deepcopy(dict(data.get("settings") or {})))
        fields = [
            f if isinstance(f, Field) else Field.from_dict(f)
            for f in data.get("fields") or []
        ]
        published_at = data.get("publishedAt")
        return cls(
            id=str(data.get("id") or new_form_id()),
            title=data.get("title") or "",
            description=data.get("description") or "",
            status=FormStatus(data.get("status", FormStatus.DRAFT.value)),
            settings=settings,
            fields=fields,
            published_at=parse_timestamp(published_at) if published_at else None,
        )


@dataclass(frozen=True)
class Submission:
    """One completed, immutable set of answers to a form."""
    form_id: str
    data: Dict[str, Any]
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "formId": self.form_id,
            "data": copy.deepcopy(self.data),
            "submittedAt": self.submitted_at.isoformat(),
            "metadata": copy.deepcopy(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Submission":
        submitted_at = data.get("submittedAt")
        return cls(
            id=data.get("id"),
            form_id=str(data.get("formId", "")),
            data=copy.deepcopy(dict(data.get("data") or {})),
            submitted_at=(
                parse_timestamp(submitted_at) if submitted_at is not None
                else datetime.now(timezone.utc)
            ),
            metadata=copy.deepcopy(dict(data.get("metadata") or {})),
        )

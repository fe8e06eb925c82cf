"""
Validation rule registry.

Each rule kind maps to a validator `(value, params) -> bool` ("is valid") and
a default message template. Custom validators are registered by name and
also receive the whole form data, so they can compare fields
(passwordConfirm reads the password field).

Example:
    @rules.custom("evenNumber", message="Please enter an even number")
    def even_number(value, params, form_data):
        return float(value) % 2 == 0

Validators may raise on malformed input; the engine reports that as a failed
rule.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from formkit.model.entities import FileValue, RuleKind
from formkit.validation.patterns import EMAIL_PATTERN, PERSONAL_EMAIL_DOMAINS, URL_PATTERN


Validator = Callable[[Any, Mapping[str, Any]], bool]
CustomValidator = Callable[[Any, Mapping[str, Any], Mapping[str, Any]], bool]


class RuleAlreadyRegisteredError(Exception):
    """Raised when a rule kind or custom validator name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Validation rule '{name}' already registered")


class UnknownCustomValidatorError(LookupError):
    """Raised when a custom rule names a validator that is not registered."""

    def __init__(self, name: Any):
        self.name = name
        super().__init__(f"Unknown custom validator '{name}'")


@dataclass
class RuleDefinition:
    """A built-in rule kind: validator plus default message template."""
    kind: RuleKind
    validator: Validator
    message: str


@dataclass
class CustomValidatorDefinition:
    """A named custom validator."""
    name: str
    validator: CustomValidator
    message: str
    description: str = ""
    defaults: Dict[str, Any] = field(default_factory=dict)


class RuleRegistry:
    """Registry of rule validators and named custom validators."""

    def __init__(self, allow_overwrite: bool = False):
        self.allow_overwrite = allow_overwrite
        self._rules: Dict[RuleKind, RuleDefinition] = {}
        self._custom: Dict[str, CustomValidatorDefinition] = {}

    def rule(self, kind: RuleKind, message: str) -> Callable[[Validator], Validator]:
        """Decorator registering the validator of a rule kind."""
        def decorator(func: Validator) -> Validator:
            if kind in self._rules and not self.allow_overwrite:
                raise RuleAlreadyRegisteredError(kind.value)
            self._rules[kind] = RuleDefinition(kind=kind, validator=func, message=message)
            return func
        return decorator

    def custom(
        self,
        name: str,
        message: str = "Please enter a valid value",
        description: str = "",
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> Callable[[CustomValidator], CustomValidator]:
        """
        Decorator registering a named custom validator.

        `defaults` fill params the rule leaves out, both for the check and
        for the message placeholders.
        """
        def decorator(func: CustomValidator) -> CustomValidator:
            if name in self._custom and not self.allow_overwrite:
                raise RuleAlreadyRegisteredError(name)
            self._custom[name] = CustomValidatorDefinition(
                name=name,
                validator=func,
                message=message,
                description=description or func.__doc__ or "",
                defaults=dict(defaults or {}),
            )
            return func
        return decorator

    def get(self, kind: RuleKind) -> Optional[RuleDefinition]:
        return self._rules.get(kind)

    def get_custom(self, name: str) -> Optional[CustomValidatorDefinition]:
        return self._custom.get(name)

    def run_custom(
        self,
        value: Any,
        params: Mapping[str, Any],
        form_data: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Run the custom validator named by params["validator"].

        Raises:
            UnknownCustomValidatorError: If no validator has that name
        """
        name = params.get("validator")
        custom = self._custom.get(str(name)) if name else None
        if custom is None:
            raise UnknownCustomValidatorError(name)
        return bool(custom.validator(value, {**custom.defaults, **params}, form_data or {}))

    def list_rules(self) -> List[RuleKind]:
        return list(self._rules.keys())

    def list_custom(self) -> List[str]:
        return list(self._custom.keys())

    def effective_params(self, kind: RuleKind, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Rule params with a custom validator's defaults filled in."""
        if kind == RuleKind.CUSTOM:
            custom = self._custom.get(str(params.get("validator", "")))
            if custom is not None:
                return {**custom.defaults, **params}
        return dict(params)

    def default_message(self, kind: RuleKind, params: Mapping[str, Any]) -> str:
        """Default template for a rule (a custom rule uses its validator's message)."""
        if kind == RuleKind.CUSTOM:
            custom = self._custom.get(str(params.get("validator", "")))
            if custom is not None:
                return custom.message
        definition = self._rules.get(kind)
        return definition.message if definition else "Please enter a valid value"

    def __repr__(self) -> str:
        return f"RuleRegistry(rules={len(self._rules)}, custom={len(self._custom)})"


rules = RuleRegistry()


def _param(params: Mapping[str, Any], *names: str) -> Any:
    """First present parameter among `names`."""
    for name in names:
        if name in params and params[name] is not None:
            return params[name]
    raise KeyError(f"Missing rule parameter '{names[0]}'")


def to_number(value: Any) -> float:
    """Numeric value of a field; raises ValueError for non-numeric input."""
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    return float(str(value).strip())


def to_date(value: Any) -> date:
    """Calendar date of a value (no timezone); raises ValueError when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    # Date part of ISO datetimes ("2024-05-01T10:00:00Z")
    return date.fromisoformat(text[:10])


def _files(value: Any) -> List[FileValue]:
    items = value if isinstance(value, (list, tuple)) else [value]
    return [item if isinstance(item, FileValue) else FileValue.from_dict(item) for item in items]


@rules.rule(RuleKind.REQUIRED, "This field is required")
def validate_required(value: Any, params: Mapping[str, Any]) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value) > 0
    return True


@rules.rule(RuleKind.EMAIL, "Please enter a valid email address")
def validate_email(value: Any, params: Mapping[str, Any]) -> bool:
    return EMAIL_PATTERN.match(str(value)) is not None


@rules.rule(RuleKind.MIN_LENGTH, "Minimum length is {min} characters")
def validate_min_length(value: Any, params: Mapping[str, Any]) -> bool:
    return len(str(value)) >= int(_param(params, "min", "minLength"))


@rules.rule(RuleKind.MAX_LENGTH, "Maximum length is {max} characters")
def validate_max_length(value: Any, params: Mapping[str, Any]) -> bool:
    return len(str(value)) <= int(_param(params, "max", "maxLength"))


@rules.rule(RuleKind.MIN, "Minimum value is {min}")
def validate_min(value: Any, params: Mapping[str, Any]) -> bool:
    return to_number(value) >= to_number(_param(params, "min"))


@rules.rule(RuleKind.MAX, "Maximum value is {max}")
def validate_max(value: Any, params: Mapping[str, Any]) -> bool:
    return to_number(value) <= to_number(_param(params, "max"))


@rules.rule(RuleKind.PATTERN, "Please enter a valid format")
def validate_pattern(value: Any, params: Mapping[str, Any]) -> bool:
    # re.error on a malformed pattern is reported by the engine as a failure
    return re.search(str(_param(params, "pattern")), str(value)) is not None


@rules.rule(RuleKind.INTEGER, "Please enter a whole number")
def validate_integer(value: Any, params: Mapping[str, Any]) -> bool:
    return to_number(value).is_integer()


@rules.rule(RuleKind.MIN_SELECT, "Please select at least {min} options")
def validate_min_select(value: Any, params: Mapping[str, Any]) -> bool:
    if not isinstance(value, (list, tuple, set)):
        return True
    return len(value) >= int(_param(params, "min", "minSelect"))


@rules.rule(RuleKind.MAX_SELECT, "Please select no more than {max} options")
def validate_max_select(value: Any, params: Mapping[str, Any]) -> bool:
    if not isinstance(value, (list, tuple, set)):
        return True
    return len(value) <= int(_param(params, "max", "maxSelect"))


@rules.rule(RuleKind.MIN_DATE, "Date must be on or after {minDate}")
def validate_min_date(value: Any, params: Mapping[str, Any]) -> bool:
    return to_date(value) >= to_date(_param(params, "minDate", "min"))


@rules.rule(RuleKind.MAX_DATE, "Date must be on or before {maxDate}")
def validate_max_date(value: Any, params: Mapping[str, Any]) -> bool:
    return to_date(value) <= to_date(_param(params, "maxDate", "max"))


@rules.rule(RuleKind.FILE_SIZE, "File size must not exceed {maxSize}MB")
def validate_file_size(value: Any, params: Mapping[str, Any]) -> bool:
    max_bytes = to_number(_param(params, "maxSize")) * 1024 * 1024
    return all(f.size <= max_bytes for f in _files(value))


def file_type_allowed(file: FileValue, allowed_types: List[str]) -> bool:
    """MIME type, "category/*" wildcard, "*" or file extension (".pdf") match."""
    mime = (file.type or "").lower()
    name = (file.name or "").lower()
    for allowed in allowed_types:
        allowed = str(allowed).lower()
        if allowed == "*":
            return True
        if allowed.endswith("/*"):
            if mime.startswith(allowed[:-1]):
                return True
        elif allowed.startswith("."):
            if name.endswith(allowed):
                return True
        elif mime == allowed:
            return True
    return False


@rules.rule(RuleKind.FILE_TYPE, "Invalid file type. Allowed types: {allowedTypes}")
def validate_file_type(value: Any, params: Mapping[str, Any]) -> bool:
    allowed = list(_param(params, "allowedTypes", "acceptedTypes"))
    return all(file_type_allowed(f, allowed) for f in _files(value))


@rules.rule(RuleKind.CUSTOM, "Please enter a valid value")
def validate_custom(
    value: Any,
    params: Mapping[str, Any],
    form_data: Optional[Mapping[str, Any]] = None,
) -> bool:
    return rules.run_custom(value, params, form_data)


# ---------------------------------------------------------------------------
# Built-in custom validators
# ---------------------------------------------------------------------------

@rules.custom("passwordConfirm", message="Passwords do not match")
def password_confirm(value: Any, params: Mapping[str, Any], form_data: Mapping[str, Any]) -> bool:
    """Value equals the field named by params["passwordField"] (default "password")."""
    return value == form_data.get(params.get("passwordField", "password"))


@rules.custom("businessEmail", message="Please use a business email address")
def business_email(value: Any, params: Mapping[str, Any], form_data: Mapping[str, Any]) -> bool:
    domain = str(value).rsplit("@", 1)[-1].lower()
    return domain not in PERSONAL_EMAIL_DOMAINS


@rules.custom(
    "ageVerification",
    message="You must be at least {minAge} years old",
    defaults={"minAge": 18},
)
def age_verification(value: Any, params: Mapping[str, Any], form_data: Mapping[str, Any]) -> bool:
    birth = to_date(value)
    today = to_date(params["today"]) if params.get("today") else date.today()
    age = today.year - birth.year - ((today.month, today.day) < (birth.month, birth.day))
    return age >= int(params["minAge"])


@rules.custom("futureDate", message="Date must be in the future")
def future_date(value: Any, params: Mapping[str, Any], form_data: Mapping[str, Any]) -> bool:
    return to_date(value) > date.today()


@rules.custom("pastDate", message="Date must be in the past")
def past_date(value: Any, params: Mapping[str, Any], form_data: Mapping[str, Any]) -> bool:
    return to_date(value) < date.today()


@rules.custom("url", message="Please enter a valid URL")
def valid_url(value: Any, params: Mapping[str, Any], form_data: Mapping[str, Any]) -> bool:
    return URL_PATTERN.match(str(value)) is not None

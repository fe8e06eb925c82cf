"""
Field Type Registry.

A lookup table of field types: default properties, default options and rules,
the validation rule kinds that apply to each type and what the authoring UI
may configure on it. Fields are created from here so that every new field
starts from its type's defaults.

Example:
    registry = FieldTypeRegistry()
    registry.register(FieldType(kind=FieldKind.TEXT, label="Text", ...))

    field = registry.create_field("text", {"label": "Full name"})
    registry.applicable_rules("text")  # frozenset({RuleKind.REQUIRED, ...})
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from formkit.model.entities import (
    Field,
    FieldKind,
    Option,
    RuleKind,
    ValidationRule,
    new_field_id,
    normalize_field_keys,
)


class UnknownFieldTypeError(LookupError):
    """Raised when a field kind is not registered."""

    def __init__(self, kind: Any, registry_name: str = ""):
        self.kind = kind
        self.registry_name = registry_name
        message = f"Unknown field type '{getattr(kind, 'value', kind)}'"
        if registry_name:
            message += f" in registry '{registry_name}'"
        super().__init__(message)


class FieldTypeAlreadyRegisteredError(Exception):
    """Raised when trying to register a field type that already exists."""

    def __init__(self, kind: FieldKind, registry_name: str = ""):
        self.kind = kind
        message = f"Field type '{kind.value}' already registered"
        if registry_name:
            message += f" in registry '{registry_name}'"
        super().__init__(message)


@dataclass(frozen=True)
class FieldCapabilities:
    """What the authoring UI can configure on a field type."""
    has_options: bool = False
    has_placeholder: bool = False
    has_default_value: bool = True


@dataclass(frozen=True)
class FieldType:
    """
    Registry entry for one field kind.

    Attributes:
        kind: Field kind
        label: Name shown in the field library
        description: Short description
        category: Library group ("input", "choice", "advanced")
        default_properties: Presentation defaults copied into new fields
        default_options: Options of a new field (choice kinds)
        applicable_rule_kinds: Rule kinds that may be attached
        default_rules: Rules attached to a new field
        capabilities: Configuration capabilities
        empty_value: Typed default value of a new field
    """
    kind: FieldKind
    label: str
    description: str = ""
    category: str = "input"
    default_properties: Dict[str, Any] = field(default_factory=dict)
    default_options: Tuple[Option, ...] = ()
    applicable_rule_kinds: FrozenSet[RuleKind] = frozenset()
    default_rules: Tuple[ValidationRule, ...] = ()
    capabilities: FieldCapabilities = field(default_factory=FieldCapabilities)
    empty_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "defaultProperties": copy.deepcopy(self.default_properties),
            "defaultOptions": [o.to_dict() for o in self.default_options],
            "applicableRuleKinds": sorted(k.value for k in self.applicable_rule_kinds),
            "defaultRules": [r.to_dict() for r in self.default_rules],
            "capabilities": {
                "hasOptions": self.capabilities.has_options,
                "hasPlaceholder": self.capabilities.has_placeholder,
                "hasDefaultValue": self.capabilities.has_default_value,
            },
        }


KindLike = Union[FieldKind, str]


def _coerce_kind(kind: KindLike) -> Optional[FieldKind]:
    if isinstance(kind, FieldKind):
        return kind
    try:
        return FieldKind(kind)
    except ValueError:
        return None


class FieldTypeRegistry:
    """
    Registry of field types, keyed by kind.

    Populated once (see formkit.field_types.catalog); lookups never mutate it.
    """

    def __init__(self, name: str = "field_types", allow_overwrite: bool = False):
        self.name = name
        self.allow_overwrite = allow_overwrite
        self._types: Dict[FieldKind, FieldType] = {}

    def register(self, field_type: FieldType) -> None:
        """
        Raises:
            FieldTypeAlreadyRegisteredError: If the kind is already registered
        """
        if field_type.kind in self._types and not self.allow_overwrite:
            raise FieldTypeAlreadyRegisteredError(field_type.kind, self.name)
        self._types[field_type.kind] = field_type

    def get_field_type(self, kind: KindLike) -> Optional[FieldType]:
        """Field type for `kind`, or None when it is not registered."""
        coerced = _coerce_kind(kind)
        if coerced is None:
            return None
        return self._types.get(coerced)

    def require(self, kind: KindLike) -> FieldType:
        """
        Raises:
            UnknownFieldTypeError: If `kind` is not registered
        """
        field_type = self.get_field_type(kind)
        if field_type is None:
            raise UnknownFieldTypeError(kind, self.name)
        return field_type

    def applicable_rules(self, kind: KindLike) -> FrozenSet[RuleKind]:
        return self.require(kind).applicable_rule_kinds

    def create_field(
        self,
        kind: KindLike,
        overrides: Optional[Mapping[str, Any]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> Field:
        """
        Create a field of `kind` from its type defaults.

        Defaults, a fresh id and `overrides` are merged in that order, so
        overrides win (an "id" override included). "type" cannot be
        overridden.

        Raises:
            UnknownFieldTypeError: If `kind` is not registered
        """
        field_type = self.require(kind)
        overrides = normalize_field_keys(overrides or {})
        overrides.pop("type", None)

        field_id = overrides.pop("id", None) or (id_factory or new_field_id)()
        base = {
            "id": field_id,
            "type": field_type.kind.value,
            "label": f"New {field_type.kind.value} field",
            "required": False,
            "options": [o.to_dict() for o in field_type.default_options],
            "validationRules": [r.to_dict() for r in field_type.default_rules],
            "defaultValue": copy.deepcopy(field_type.empty_value),
            "properties": copy.deepcopy(field_type.default_properties),
        }
        return Field.from_dict(base).merged(overrides)

    def list_kinds(self) -> List[FieldKind]:
        return list(self._types.keys())

    def list_by_category(self, category: str) -> List[FieldKind]:
        return [k for k, t in self._types.items() if t.category == category]

    def get_categories(self) -> List[str]:
        categories: List[str] = []
        for field_type in self._types.values():
            if field_type.category not in categories:
                categories.append(field_type.category)
        return categories

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_types": len(self._types),
            "types_by_category": {
                category: len(self.list_by_category(category))
                for category in self.get_categories()
            },
        }

    def __contains__(self, kind: object) -> bool:
        coerced = _coerce_kind(kind) if isinstance(kind, (str, FieldKind)) else None
        return coerced is not None and coerced in self._types

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"FieldTypeRegistry(name={self.name!r}, types={len(self._types)})"

"""
Conditional logic resolver.

Computes, from the current form data, which fields are visible, which are
required and which carry conditional overrides. Rules are kept in a
dependency map keyed by field id:

    {
        "field_b": FieldDependency(
            depends_on=["field_a"],
            visible_when={"field": "field_a", "operator": "equals", "value": "yes"},
        ),
    }

Every query recomputes from the data snapshot held by the resolver; callers
build a new resolver (or call with_data()) after the data changes.

A field whose dependency is hidden is hidden as well, and hidden fields'
values are masked out of the data seen by predicates. Dependency cycles are
configuration errors reported by validate_dependencies(); during evaluation a
cyclic edge is skipped, never followed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from formkit.conditions.expression import (
    ConditionExpression,
    ConditionParser,
    default_parser,
    evaluate_condition,
    referenced_fields,
)
from formkit.model.entities import Field, Modification
from formkit.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class FieldDependency:
    """
    Conditional rules of one field.

    Attributes:
        depends_on: Fields this one depends on, beyond those its predicates read
        visible_when: Visibility predicate (None = always visible)
        required_when: Required predicate (None = static `required`)
        modify: Overrides applied while their condition holds
        required: Static required flag of the field
    """
    depends_on: List[str] = field(default_factory=list)
    visible_when: Optional[ConditionExpression] = None
    required_when: Optional[ConditionExpression] = None
    modify: List[Modification] = field(default_factory=list)
    required: bool = False

    @classmethod
    def from_field(cls, source: Field) -> Optional["FieldDependency"]:
        """Dependency entry for a field, or None when it has no conditions."""
        if not source.has_conditions:
            return None
        return cls(
            visible_when=source.visibility_condition,
            required_when=source.required_condition,
            modify=list(source.modifications),
            required=source.required,
        )

    def visibility_dependencies(self) -> Set[str]:
        return set(self.depends_on) | referenced_fields(self.visible_when)

    def all_dependencies(self) -> Set[str]:
        names = self.visibility_dependencies() | referenced_fields(self.required_when)
        for modification in self.modify:
            names |= referenced_fields(modification.condition)
        return names


def build_dependency_map(fields: Iterable[Field]) -> Dict[str, FieldDependency]:
    """Dependency map for every field that carries conditions."""
    dependency_map = {}
    for source in fields:
        dependency = FieldDependency.from_field(source)
        if dependency is not None:
            dependency_map[source.id] = dependency
    return dependency_map


@dataclass(frozen=True)
class Resolution:
    """Visibility/required/modification state of every field for one data snapshot."""
    visible: frozenset
    required: frozenset
    modifications: Dict[str, Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "visible": sorted(self.visible),
            "required": sorted(self.required),
            "modifications": dict(self.modifications),
        }


class ConditionalLogicResolver:
    """
    Evaluates conditional rules against one data snapshot.

    Example:
        resolver = ConditionalLogicResolver.from_fields(form.fields, data)
        if resolver.is_field_visible("field_b"):
            ...
        problems = resolver.validate_dependencies()
    """

    def __init__(
        self,
        dependency_map: Mapping[str, FieldDependency],
        data: Optional[Mapping[str, Any]] = None,
        fields: Optional[Iterable[Field]] = None,
        parser: Optional[ConditionParser] = None,
        hide_when_dependency_hidden: Optional[bool] = None,
    ):
        """
        Args:
            dependency_map: Field id -> FieldDependency
            data: Current form data (field id -> value)
            fields: Field definitions; enables unknown-reference checks and
                static required flags for fields without rules
            parser: Condition parser (shared default if omitted)
            hide_when_dependency_hidden: Override of the
                conditional_logic.hide_when_dependency_hidden setting
        """
        self.dependency_map: Dict[str, FieldDependency] = dict(dependency_map)
        self.data: Dict[str, Any] = dict(data or {})
        self.parser = parser or default_parser
        if hide_when_dependency_hidden is None:
            hide_when_dependency_hidden = settings.get_nested(
                "conditional_logic.hide_when_dependency_hidden", True
            )
        self.hide_when_dependency_hidden = bool(hide_when_dependency_hidden)

        self._fields: Optional[Dict[str, Field]] = None
        if fields is not None:
            self._fields = {f.id: f for f in fields}

    @classmethod
    def from_fields(
        cls,
        fields: Iterable[Field],
        data: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> "ConditionalLogicResolver":
        fields = list(fields)
        return cls(build_dependency_map(fields), data=data, fields=fields, **kwargs)

    def with_data(self, data: Mapping[str, Any]) -> "ConditionalLogicResolver":
        """Resolver over the same rules and a new data snapshot."""
        return ConditionalLogicResolver(
            self.dependency_map,
            data=data,
            fields=self._fields.values() if self._fields is not None else None,
            parser=self.parser,
            hide_when_dependency_hidden=self.hide_when_dependency_hidden,
        )

    @property
    def known_fields(self) -> Set[str]:
        if self._fields is not None:
            return set(self._fields)
        return set(self.dependency_map) | set(self.data)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def is_field_visible(self, name: str) -> bool:
        return self._visibility(name, {}, set())

    def is_field_required(self, name: str) -> bool:
        dependency = self.dependency_map.get(name)
        if dependency is None or dependency.required_when is None:
            return self._static_required(name)
        data = self._masked(dependency.all_dependencies(), {})
        return self._evaluate(dependency.required_when, data)

    def get_field_modifications(self, name: str) -> Dict[str, Any]:
        dependency = self.dependency_map.get(name)
        if dependency is None or not dependency.modify:
            return {}
        data = self._masked(dependency.all_dependencies(), {})
        changes: Dict[str, Any] = {}
        for modification in dependency.modify:
            if self._evaluate(modification.condition, data):
                changes.update(modification.changes)
        return changes

    def get_modified_field(self, source: Field) -> Dict[str, Any]:
        """Wire dict of `source` with resolved visible/required flags and overrides."""
        resolved = source.to_dict()
        resolved["required"] = self.is_field_required(source.id)
        resolved["visible"] = self.is_field_visible(source.id)
        resolved.update(self.get_field_modifications(source.id))
        return resolved

    def get_visible_fields(self, fields: Iterable[Field]) -> List[Field]:
        memo: Dict[str, bool] = {}
        return [f for f in fields if self._visibility(f.id, memo, set())]

    def get_required_fields(self, fields: Iterable[Field]) -> List[Field]:
        return [f for f in fields if self.is_field_required(f.id)]

    def get_dependent_fields(self, name: str) -> List[str]:
        """Ids of fields whose rules read `name`."""
        return [
            field_id for field_id, dependency in self.dependency_map.items()
            if name in dependency.all_dependencies()
        ]

    def prune_hidden_values(self) -> Dict[str, Any]:
        """Copy of the data without values of hidden fields."""
        memo: Dict[str, bool] = {}
        return {
            key: value for key, value in self.data.items()
            if self._visibility(key, memo, set())
        }

    def resolve(self) -> Resolution:
        memo: Dict[str, bool] = {}
        names = self.known_fields | set(self.dependency_map)
        visible = frozenset(n for n in names if self._visibility(n, memo, set()))
        required = frozenset(n for n in names if self.is_field_required(n))
        modifications = {}
        for name in names:
            changes = self.get_field_modifications(name)
            if changes:
                modifications[name] = changes

        if settings.get_nested("conditional_logic.debug", False):
            logger.debug(
                f"Resolved {len(names)} fields: {len(visible)} visible, {len(required)} required"
            )
        return Resolution(visible=visible, required=required, modifications=modifications)

    def _visibility(self, name: str, memo: Dict[str, bool], in_progress: Set[str]) -> bool:
        if name in memo:
            return memo[name]

        dependency = self.dependency_map.get(name)
        if dependency is None:
            memo[name] = True
            return True

        if name in in_progress:
            logger.debug(f"Skipping cyclic dependency edge into '{name}'")
            return True

        in_progress.add(name)
        try:
            hidden = {
                dep for dep in dependency.visibility_dependencies()
                if dep != name and dep not in in_progress
                and not self._visibility(dep, memo, in_progress)
            }
            if hidden and self.hide_when_dependency_hidden:
                visible = False
            elif dependency.visible_when is None:
                visible = True
            else:
                data = {k: v for k, v in self.data.items() if k not in hidden}
                visible = self._evaluate(dependency.visible_when, data)
        finally:
            in_progress.discard(name)

        memo[name] = visible
        return visible

    def _masked(self, names: Set[str], memo: Dict[str, bool]) -> Dict[str, Any]:
        hidden = {n for n in names if not self._visibility(n, memo, set())}
        return {k: v for k, v in self.data.items() if k not in hidden}

    def _static_required(self, name: str) -> bool:
        dependency = self.dependency_map.get(name)
        if dependency is not None and dependency.required:
            return True
        if self._fields is not None and name in self._fields:
            return self._fields[name].required
        return False

    def _evaluate(self, expression: ConditionExpression, data: Mapping[str, Any]) -> bool:
        return evaluate_condition(expression, data, self.parser)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_dependency_map(self) -> Dict[str, List[str]]:
        """Field id -> sorted ids it depends on (fields with no dependencies omitted)."""
        return {
            name: sorted(dependency.all_dependencies())
            for name, dependency in self.dependency_map.items()
            if dependency.all_dependencies()
        }

    def validate_dependencies(self) -> List[str]:
        """
        Human-readable problems in the dependency configuration: references to
        unknown fields and dependency cycles. Never raises.
        """
        errors: List[str] = []
        known = self.known_fields

        for name, dependency in self.dependency_map.items():
            if self._fields is not None and name not in known:
                errors.append(f"Conditional rules defined for unknown field '{name}'")
            for dep in sorted(dependency.all_dependencies()):
                if dep not in known:
                    errors.append(f"Field '{name}' depends on unknown field '{dep}'")

        errors.extend(self._find_cycles())
        return errors

    def _find_cycles(self) -> List[str]:
        graph = {
            name: sorted(dependency.all_dependencies())
            for name, dependency in self.dependency_map.items()
        }
        errors: List[str] = []
        visited: Set[str] = set()
        stack: List[str] = []
        on_stack: Set[str] = set()
        reported: Set[frozenset] = set()

        def visit(node: str) -> None:
            visited.add(node)
            stack.append(node)
            on_stack.add(node)
            for nxt in graph.get(node, ()):
                if nxt in on_stack:
                    cycle = stack[stack.index(nxt):]
                    key = frozenset(cycle)
                    if key not in reported:
                        reported.add(key)
                        path = " -> ".join(cycle + [nxt])
                        errors.append(f"Circular dependency detected: {path}")
                elif nxt not in visited and nxt in graph:
                    visit(nxt)
            stack.pop()
            on_stack.discard(node)

        for name in graph:
            if name not in visited:
                visit(name)
        return errors

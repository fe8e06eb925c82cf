"""
Form Builder State Machine.

Single owner of a BuilderSession, reached only through named operations.
Each operation runs a pure transition from formkit.builder.transitions,
logs an authoring event and reports success the way the authoring UI expects
(new field ids, True/False for no-ops).

States:
- editing: mutating operations allowed
- previewing: same operations; selection cleared on entry and disabled

Status lifecycle of the form under edit:
    draft <-> published, draft/published -> archived (terminal)

Example:
    builder = FormBuilder()
    field_id = builder.add_field("select", {"label": "Country"})
    builder.update_field(field_id, {"options": []})
    builder.publish_form()   # False: the select has no options
    builder.undo()
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from formkit.builder import transitions
from formkit.builder.session import BuilderSession
from formkit.builder.transitions import FieldRef
from formkit.conditions.resolver import FieldDependency
from formkit.field_types import FieldTypeRegistry, field_types
from formkit.field_types.registry import KindLike
from formkit.logger import logger
from formkit.model.entities import Field, Form, FormStatus, ValidationRule, new_field_id
from formkit.model.queries import field_index, option_problems, publishing_problems, rule_problems


class FormBuilder:
    """
    Undoable editor over one form.

    Attributes:
        session: Current immutable BuilderSession
        registry: Field type registry used to create fields
        max_history: Undo cap override (None = builder.max_history setting)
    """

    def __init__(
        self,
        form: Optional[Form] = None,
        registry: Optional[FieldTypeRegistry] = None,
        max_history: Optional[int] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.registry = registry or field_types
        self.max_history = max_history
        self.id_factory = id_factory
        self.session: BuilderSession = transitions.reset(form)
        logger.set_form(self.session.form.id)

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def form(self) -> Form:
        return self.session.form

    @property
    def selected_field_id(self) -> Optional[str]:
        return self.session.selected_field_id

    @property
    def preview_mode(self) -> bool:
        return self.session.preview_mode

    @property
    def errors(self) -> Dict[str, List[str]]:
        return self.session.errors

    def get_selected_field(self) -> Optional[Field]:
        return self.session.selected_field

    def can_undo(self) -> bool:
        return self.session.can_undo

    def can_redo(self) -> bool:
        return self.session.can_redo

    def _apply(self, new_session: BuilderSession) -> bool:
        """Install a transition result; False when it was a no-op."""
        if new_session is self.session:
            return False
        self.session = new_session
        return True

    # =========================================================================
    # Form-level operations
    # =========================================================================

    def set_form(self, form: Form) -> bool:
        """
        Replace the form wholesale (e.g. after loading). Recorded for undo.
        Refused when two fields share an id.
        """
        if not self._apply(transitions.set_form(self.session, form, self.max_history)):
            logger.warning("Form rejected: duplicate field ids", form_id=form.id)
            return False
        logger.set_form(form.id)
        logger.event("form_set", fields=len(form.fields))
        return True

    def update_form(self, partial: Mapping[str, Any]) -> bool:
        """Shallow-merge title, description or settings. Other keys are ignored."""
        changed = self._apply(transitions.update_form(self.session, partial, self.max_history))
        if changed:
            logger.event("form_updated", keys=sorted(partial))
        return changed

    def update_settings(self, partial: Mapping[str, Any]) -> None:
        self._apply(transitions.update_settings(self.session, partial, self.max_history))
        logger.event("settings_updated", keys=sorted(partial))

    def reset(self, form: Optional[Form] = None) -> None:
        """Start over with a fresh form; history is discarded."""
        self.session = transitions.reset(form)
        logger.set_form(self.session.form.id)
        logger.event("builder_reset")

    # =========================================================================
    # Field operations
    # =========================================================================

    def _new_field(self, kind: KindLike, overrides: Optional[Mapping[str, Any]]) -> Field:
        new_field = self.registry.create_field(kind, overrides, self.id_factory)
        taken = set(self.form.field_ids())
        if new_field.id in taken:
            fresh = (self.id_factory or new_field_id)()
            while fresh in taken:
                fresh = (self.id_factory or new_field_id)()
            logger.warning(f"Field id '{new_field.id}' already used, assigned '{fresh}'")
            new_field = replace(new_field, id=fresh)
        problems = rule_problems(new_field, self.registry.applicable_rules(new_field.type))
        if problems:
            allowed = self.registry.applicable_rules(new_field.type)
            for problem in problems:
                logger.warning(f"Dropping rule: {problem}", field_id=new_field.id)
            new_field = replace(
                new_field,
                validation_rules=[r for r in new_field.validation_rules if r.kind in allowed],
            )
        return new_field

    def add_field(self, kind: KindLike, overrides: Optional[Mapping[str, Any]] = None) -> str:
        """
        Append a field of `kind` built from its type defaults and select it.
        An "id" override already used in the form is replaced by a fresh id.

        Returns:
            The new field id

        Raises:
            UnknownFieldTypeError: If `kind` is not registered
        """
        new_field = self._new_field(kind, overrides)
        self._apply(transitions.insert_field(
            self.session, new_field, max_history=self.max_history
        ))
        logger.event("field_added", field_id=new_field.id, kind=new_field.type.value)
        return new_field.id

    def add_field_after(
        self,
        after_field_id: Optional[str],
        kind: KindLike,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Insert a new field right after another one (at the top when None or unknown)."""
        new_field = self._new_field(kind, overrides)
        index = field_index(self.form.fields, after_field_id) + 1 if after_field_id else 0
        self._apply(transitions.insert_field(
            self.session, new_field, index=index, max_history=self.max_history
        ))
        logger.event(
            "field_added", field_id=new_field.id, kind=new_field.type.value, position=index
        )
        return new_field.id

    def update_field(self, field_id: str, partial: Mapping[str, Any]) -> bool:
        """
        Shallow-merge `partial` onto a field.

        Returns False (nothing changes) when the field does not exist or the
        change would attach a rule kind that does not apply to the field type
        or repeat an option value.
        """
        current = self._find(field_id)
        if current is None:
            logger.debug("update_field: unknown field", field_id=field_id)
            return False

        rules = partial.get("validationRules", partial.get("validation_rules"))
        if rules is not None:
            try:
                parsed = [ValidationRule.from_dict(r) for r in rules]
            except (KeyError, ValueError) as e:
                logger.warning("Field update rejected", field_id=field_id, error=str(e))
                return False
            candidate = replace(current, validation_rules=parsed)
            problems = rule_problems(candidate, self.registry.applicable_rules(current.type))
            if problems:
                logger.warning("Field update rejected", field_id=field_id, problems=problems)
                return False

        if "options" in partial:
            problems = option_problems(current.merged({"options": partial["options"] or []}))
            if problems:
                logger.warning("Field update rejected", field_id=field_id, problems=problems)
                return False

        changed = self._apply(
            transitions.update_field(self.session, field_id, partial, self.max_history)
        )
        if changed:
            logger.event("field_updated", field_id=field_id, keys=sorted(partial))
        return changed

    def remove_field(self, field_id: str) -> bool:
        dependents = [
            f.id for f in self.form.fields
            if f.id != field_id and field_id in _condition_references(f)
        ]
        changed = self._apply(transitions.remove_field(self.session, field_id, self.max_history))
        if changed:
            logger.event("field_removed", field_id=field_id, detached_conditions=dependents)
        return changed

    def reorder_fields(self, ordered: Sequence[FieldRef]) -> bool:
        """
        Reorder to `ordered` (fields, wire dicts or ids).
        A list that is not a permutation of the current fields is rejected.
        """
        changed = self._apply(transitions.reorder_fields(self.session, ordered, self.max_history))
        if changed:
            logger.event("fields_reordered", order=self.form.field_ids())
        else:
            logger.warning("Reorder rejected: not a permutation of the form's fields")
        return changed

    def duplicate_field(self, field_id: str) -> Optional[str]:
        """Copy a field (fresh id, label suffixed). Returns the new id or None."""
        if not self._apply(transitions.duplicate_field(
            self.session, field_id, self.id_factory, self.max_history
        )):
            return None
        new_id = self.session.selected_field_id
        logger.event("field_duplicated", field_id=field_id, copy_id=new_id)
        return new_id

    def select_field(self, field_id: Optional[str]) -> bool:
        """Select a field (None clears). Unknown ids and selections while previewing are ignored."""
        if self.preview_mode:
            return False
        if field_id is not None and self._find(field_id) is None:
            return False
        self._apply(transitions.select_field(self.session, field_id))
        return True

    def toggle_preview(self, value: Optional[bool] = None) -> bool:
        """Switch between editing and previewing; returns the new preview flag."""
        self._apply(transitions.toggle_preview(self.session, value))
        logger.event("preview_toggled", preview=self.session.preview_mode)
        return self.session.preview_mode

    def _find(self, field_id: str) -> Optional[Field]:
        index = field_index(self.form.fields, field_id)
        return self.form.fields[index] if index >= 0 else None

    # =========================================================================
    # History
    # =========================================================================

    def undo(self) -> bool:
        changed = self._apply(transitions.undo(self.session))
        if changed:
            logger.event("undo", remaining=len(self.session.undo_stack))
        return changed

    def redo(self) -> bool:
        changed = self._apply(transitions.redo(self.session))
        if changed:
            logger.event("redo", remaining=len(self.session.redo_stack))
        return changed

    # =========================================================================
    # Status
    # =========================================================================

    def publish_form(self) -> bool:
        """
        Publish the form.

        Refused (status unchanged) when the form is not valid for publishing;
        the reasons are kept in errors["publish"].
        """
        problems = publishing_problems(self.form)
        if not problems and self.form.status != FormStatus.DRAFT:
            problems = [f"Cannot publish a form with status '{self.form.status.value}'"]
        if problems:
            self.session = self.session.with_errors("publish", problems)
            logger.event("publish_rejected", reasons=problems)
            return False

        self._apply(transitions.set_status(
            self.session, FormStatus.PUBLISHED, max_history=self.max_history
        ))
        self.session = self.session.with_errors("publish", [])
        logger.event("form_published", fields=len(self.form.fields))
        return True

    def unpublish_form(self) -> bool:
        return self._set_status(FormStatus.DRAFT, "form_unpublished")

    def archive_form(self) -> bool:
        return self._set_status(FormStatus.ARCHIVED, "form_archived")

    def _set_status(self, status: FormStatus, event: str) -> bool:
        previous = self.form.status
        changed = self._apply(transitions.set_status(
            self.session, status, max_history=self.max_history
        ))
        if changed:
            logger.event(event, previous=previous.value)
        else:
            logger.warning(f"Status transition {previous.value} -> {status.value} not allowed")
        return changed

    def __repr__(self) -> str:
        return (
            f"FormBuilder(form={self.form.id!r}, fields={len(self.form.fields)}, "
            f"status={self.form.status.value}, mode={self.session.mode})"
        )


def _condition_references(source: Field) -> set:
    dependency = FieldDependency.from_field(source)
    return dependency.all_dependencies() if dependency else set()

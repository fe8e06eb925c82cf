"""
Pure builder transitions: (session, ...) -> session.

Every mutating transition records the pre-mutation form on the undo stack and
clears the redo stack. A transition that changes nothing returns the very
same session object, so callers can tell a no-op with `is`.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from formkit.builder.session import BuilderSession
from formkit.model.entities import Field, Form, FormStatus, new_field_id
from formkit.model.queries import (
    can_transition,
    field_index,
    find_field,
    has_unique_ids,
    is_permutation,
    reindex_order,
    strip_references,
)
from formkit.settings import settings

FieldRef = Union[Field, Mapping[str, Any], str]

# Form attributes that update_form must not touch
PROTECTED_FORM_KEYS = frozenset({"id", "status", "fields", "publishedAt", "published_at"})


def history_limit() -> int:
    return int(settings.get_nested("builder.max_history", 100) or 0)


def _push(stack: tuple, form: Form, limit: int) -> tuple:
    stack = stack + (form,)
    if limit and len(stack) > limit:
        stack = stack[len(stack) - limit:]
    return stack


def commit(
    session: BuilderSession,
    form: Form,
    max_history: Optional[int] = None,
    **changes: Any,
) -> BuilderSession:
    """Replace the live form, recording the previous one for undo."""
    limit = history_limit() if max_history is None else max_history
    return replace(
        session,
        form=form,
        undo_stack=_push(session.undo_stack, session.form, limit),
        redo_stack=(),
        **changes,
    )


def set_form(session: BuilderSession, form: Form, max_history: Optional[int] = None) -> BuilderSession:
    """Replace the form wholesale (still undoable). A form with duplicate field ids is refused."""
    if not has_unique_ids(form.fields):
        return session
    form = form.with_fields(reindex_order(form.fields))
    selected = session.selected_field_id
    if selected is not None and selected not in form.field_ids():
        selected = None
    return commit(session, form, max_history, selected_field_id=selected)


def update_form(
    session: BuilderSession,
    partial: Mapping[str, Any],
    max_history: Optional[int] = None,
) -> BuilderSession:
    """Shallow-merge title/description/settings. Id, status and fields are ignored."""
    changes = {}
    for key, value in partial.items():
        if key in PROTECTED_FORM_KEYS:
            continue
        if key == "settings":
            changes["settings"] = {**session.form.settings, **dict(value or {})}
        elif key in ("title", "description"):
            changes[key] = "" if value is None else str(value)
    if not changes:
        return session
    return commit(session, replace(session.form, **changes), max_history)


def update_settings(
    session: BuilderSession,
    partial: Mapping[str, Any],
    max_history: Optional[int] = None,
) -> BuilderSession:
    merged = {**session.form.settings, **dict(partial)}
    return commit(session, replace(session.form, settings=merged), max_history)


def insert_field(
    session: BuilderSession,
    new_field: Field,
    index: Optional[int] = None,
    max_history: Optional[int] = None,
) -> BuilderSession:
    """Insert a field (append by default) and select it. An id already in the form: no-op."""
    if find_field(session.form, new_field.id) is not None:
        return session
    fields = list(session.form.fields)
    if index is None or index >= len(fields):
        fields.append(new_field)
    else:
        fields.insert(max(index, 0), new_field)
    form = session.form.with_fields(reindex_order(fields))
    return commit(session, form, max_history, selected_field_id=new_field.id)


def update_field(
    session: BuilderSession,
    field_id: str,
    partial: Mapping[str, Any],
    max_history: Optional[int] = None,
) -> BuilderSession:
    """Shallow-merge `partial` onto a field. Unknown id: no-op."""
    index = field_index(session.form.fields, field_id)
    if index < 0:
        return session
    partial = {k: v for k, v in partial.items() if k not in ("id", "type", "order")}
    fields = list(session.form.fields)
    fields[index] = fields[index].merged(partial)
    return commit(session, session.form.with_fields(fields), max_history)


def remove_field(
    session: BuilderSession,
    field_id: str,
    max_history: Optional[int] = None,
) -> BuilderSession:
    """
    Remove a field and every condition that reads it. Clears the selection if
    the removed field was selected. Unknown id: no-op.
    """
    if field_index(session.form.fields, field_id) < 0:
        return session
    remaining = [f for f in session.form.fields if f.id != field_id]
    fields = reindex_order(strip_references(remaining, field_id))
    selected = None if session.selected_field_id == field_id else session.selected_field_id
    return commit(
        session,
        session.form.with_fields(fields),
        max_history,
        selected_field_id=selected,
    )


def _ref_id(ref: FieldRef) -> str:
    if isinstance(ref, Field):
        return ref.id
    if isinstance(ref, Mapping):
        return str(ref.get("id", ""))
    return str(ref)


def reorder_fields(
    session: BuilderSession,
    ordered: Sequence[FieldRef],
    max_history: Optional[int] = None,
) -> BuilderSession:
    """
    Put the fields in the order of `ordered` (fields, wire dicts or ids).
    Anything but a permutation of the current fields is rejected (no-op).
    Field content always comes from the live form.
    """
    ordered_ids = [_ref_id(ref) for ref in ordered]
    if not is_permutation(session.form.fields, ordered_ids):
        return session
    by_id = {f.id: f for f in session.form.fields}
    fields = reindex_order(by_id[field_id] for field_id in ordered_ids)
    return commit(session, session.form.with_fields(fields), max_history)


def duplicate_field(
    session: BuilderSession,
    field_id: str,
    id_factory: Optional[Callable[[], str]] = None,
    max_history: Optional[int] = None,
) -> BuilderSession:
    """Append a copy with a fresh id and a suffixed label, and select it."""
    source = find_field(session.form, field_id)
    if source is None:
        return session
    suffix = settings.get_nested("builder.copy_suffix", " (Copy)")
    copy = replace(
        source.merged({"label": f"{source.label}{suffix}"}),
        id=(id_factory or new_field_id)(),
    )
    return insert_field(session, copy, max_history=max_history)


def select_field(session: BuilderSession, field_id: Optional[str]) -> BuilderSession:
    """Select a field (None clears). Not recorded in history; ignored while previewing."""
    if session.preview_mode:
        return session
    if field_id is not None and find_field(session.form, field_id) is None:
        return session
    if field_id == session.selected_field_id:
        return session
    return replace(session, selected_field_id=field_id)


def toggle_preview(session: BuilderSession, value: Optional[bool] = None) -> BuilderSession:
    """Switch editing <-> previewing (or force `value`). Entering preview clears the selection."""
    preview = (not session.preview_mode) if value is None else bool(value)
    if preview == session.preview_mode:
        return session
    selected = None if preview else session.selected_field_id
    return replace(session, preview_mode=preview, selected_field_id=selected)


def undo(session: BuilderSession) -> BuilderSession:
    if not session.undo_stack:
        return session
    previous = session.undo_stack[-1]
    return _after_history_move(replace(
        session,
        form=previous,
        undo_stack=session.undo_stack[:-1],
        redo_stack=session.redo_stack + (session.form,),
    ))


def redo(session: BuilderSession) -> BuilderSession:
    if not session.redo_stack:
        return session
    following = session.redo_stack[-1]
    return _after_history_move(replace(
        session,
        form=following,
        undo_stack=session.undo_stack + (session.form,),
        redo_stack=session.redo_stack[:-1],
    ))


def _after_history_move(session: BuilderSession) -> BuilderSession:
    # The restored form may not contain the selected field
    if session.selected_field_id is not None and session.selected_field is None:
        return replace(session, selected_field_id=None)
    return session


def set_status(
    session: BuilderSession,
    status: FormStatus,
    now: Optional[datetime] = None,
    max_history: Optional[int] = None,
) -> BuilderSession:
    """Status transition; disallowed transitions are no-ops. Validity is checked by the caller."""
    if not can_transition(session.form.status, status):
        return session
    changes = {"status": status}
    if status == FormStatus.PUBLISHED:
        changes["published_at"] = now or datetime.now(timezone.utc)
    return commit(session, replace(session.form, **changes), max_history)


def reset(form: Optional[Form] = None) -> BuilderSession:
    """Fresh session (history cleared) over `form` or a new untitled form."""
    if form is None:
        form = Form(title=settings.get_nested("builder.new_form_title", "Untitled Form"))
    return BuilderSession(form=form)


"""
Builder session: the single authoritative state of the form editor.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from formkit.model.entities import Form


@dataclass(frozen=True)
class BuilderSession:
    """
    Immutable snapshot of an editing session.

    Attributes:
        form: The form under edit
        selected_field_id: Id of the selected field (lookup only; may be None)
        undo_stack: Prior form snapshots, most recent last
        redo_stack: Undone form snapshots, most recent last
        preview_mode: Whether the session is previewing instead of editing
        errors: Last authoring diagnostics keyed by operation ("publish", ...)
    """
    form: Form = field(default_factory=Form)
    selected_field_id: Optional[str] = None
    undo_stack: Tuple[Form, ...] = ()
    redo_stack: Tuple[Form, ...] = ()
    preview_mode: bool = False
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def mode(self) -> str:
        return "previewing" if self.preview_mode else "editing"

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    @property
    def selected_field(self):
        if self.selected_field_id is None:
            return None
        for f in self.form.fields:
            if f.id == self.selected_field_id:
                return f
        return None

    def with_errors(self, key: str, messages: List[str]) -> "BuilderSession":
        errors = dict(self.errors)
        if messages:
            errors[key] = list(messages)
        else:
            errors.pop(key, None)
        return replace(self, errors=errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "form": self.form.to_dict(),
            "selectedFieldId": self.selected_field_id,
            "previewMode": self.preview_mode,
            "canUndo": self.can_undo,
            "canRedo": self.can_redo,
            "errors": {k: list(v) for k, v in self.errors.items()},
        }

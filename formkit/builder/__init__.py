"""
Form builder: undoable authoring session.

- BuilderSession: immutable session snapshot
- transitions: pure (session, ...) -> session functions
- FormBuilder: named operations over one session
"""

from formkit.builder.session import BuilderSession
from formkit.builder.state_machine import FormBuilder
from formkit.builder import transitions

__all__ = [
    "BuilderSession",
    "FormBuilder",
    "transitions",
]

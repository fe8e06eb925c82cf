"""
Structured logging for formkit.

JSON lines for production, readable output for development.
Every record carries the id of the form being edited, if one is set.

Usage:
    from formkit.logger import logger

    logger.set_form("form_123")
    logger.info("Field added", field_id="field_abc", kind="text")
    logger.event("publish_rejected", reasons=["Form has no title"])
"""

import json
import logging
import os
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from formkit.settings import settings


_form_id_var: ContextVar[Optional[str]] = ContextVar('form_id', default=None)
_extra_context_var: ContextVar[Optional[Dict[str, Any]]] = ContextVar('extra_context', default=None)


class StructuredLogger:
    """
    Structured logger with JSON support and form tracing.

    - JSON format when LOG_FORMAT=json
    - Readable format otherwise
    - form_id attached to every record
    - event() and metric() helpers for authoring analytics
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)

        if not self.logger.handlers:
            self._setup_logger()

    def _setup_logger(self) -> None:
        level_name = settings.get_nested("logging.level", "INFO")
        level = getattr(logging, str(level_name).upper(), logging.INFO)
        self.logger.setLevel(level)

        handler = logging.StreamHandler()
        handler.setLevel(level)

        if os.environ.get("LOG_FORMAT", "readable") == "json":
            formatter = logging.Formatter("%(message)s")
        else:
            formatter = logging.Formatter(
                "[%(asctime)s] %(levelname)s - %(message)s",
                datefmt="%H:%M:%S"
            )

        handler.setFormatter(formatter)
        self.logger.addHandler(handler)
        self.logger.propagate = False

    @property
    def form_id(self) -> Optional[str]:
        """Context-local id of the form under edit"""
        return _form_id_var.get()

    def set_form(self, form_id: Optional[str]) -> None:
        _form_id_var.set(form_id)

    def clear_form(self) -> None:
        _form_id_var.set(None)

    @property
    def _extra_context(self) -> Dict[str, Any]:
        ctx = _extra_context_var.get()
        if ctx is None:
            ctx = {}
            _extra_context_var.set(ctx)
        return ctx

    def set_context(self, **kwargs: Any) -> None:
        """Set extra context (context-local)"""
        ctx = dict(self._extra_context)
        ctx.update(kwargs)
        _extra_context_var.set(ctx)

    def clear_context(self) -> None:
        _extra_context_var.set({})

    def _format_structured(self, level: str, message: str, **kwargs: Any) -> Dict[str, Any]:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "logger": self.name,
            "message": message,
        }

        if self.form_id:
            log_entry["form_id"] = self.form_id

        if self._extra_context:
            log_entry.update(self._extra_context)

        if kwargs:
            log_entry.update(kwargs)

        return log_entry

    def _should_use_json(self) -> bool:
        return os.environ.get("LOG_FORMAT", "readable") == "json"

    def _readable(self, message: str, **kwargs: Any) -> str:
        if kwargs:
            extras = ", ".join(f"{k}={v}" for k, v in kwargs.items())
            message = f"{message} [{extras}]"
        if self.form_id:
            message = f"[{self.form_id}] {message}"
        return message

    def _log(self, level: str, message: str, log_method, **kwargs: Any) -> None:
        if self._should_use_json():
            structured = self._format_structured(level, message, **kwargs)
            log_method(json.dumps(structured, ensure_ascii=False, default=str))
        else:
            log_method(self._readable(message, **kwargs))

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log("DEBUG", message, self.logger.debug, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log("INFO", message, self.logger.info, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log("WARNING", message, self.logger.warning, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log("ERROR", message, self.logger.error, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback"""
        if self._should_use_json():
            kwargs["traceback"] = traceback.format_exc()
            structured = self._format_structured("ERROR", message, **kwargs)
            self.logger.error(json.dumps(structured, ensure_ascii=False, default=str))
        else:
            self.logger.exception(self._readable(message, **kwargs))

    def metric(self, name: str, value: Any, **kwargs: Any) -> None:
        """
        Structured metric.

        Example:
            logger.metric("validation_errors", 3, form_fields=12)
        """
        self._log("METRIC", name, self.logger.info, value=value, **kwargs)

    def event(self, event_type: str, **kwargs: Any) -> None:
        """
        Authoring/business event.

        Example:
            logger.event("field_added", field_id="field_1", kind="select")
        """
        self._log("EVENT", event_type, self.logger.info, **kwargs)


logger = StructuredLogger("formkit")


def create_test_logger(name: str = "test") -> StructuredLogger:
    """Isolated logger for tests"""
    return StructuredLogger(f"formkit.{name}")

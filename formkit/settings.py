"""
Settings loader for formkit (settings.yaml).

Usage:
    from formkit.settings import settings

    cap = settings.builder.max_history
    indent = settings.get_nested("export.json_indent", 2)
"""

import logging
from pathlib import Path
from typing import Any, List

import yaml

logger = logging.getLogger(__name__)


# Settings file shipped with the package
SETTINGS_FILE = Path(__file__).parent / "settings.yaml"

# Defaults (used when a key is absent from the YAML file)
DEFAULTS = {
    "logging": {
        "level": "INFO",
        "log_validation_failures": False,
    },
    "builder": {
        # 0 disables the cap
        "max_history": 100,
        "copy_suffix": " (Copy)",
        "new_form_title": "Untitled Form",
    },
    "validation": {
        "required_message": "{label} is required",
        "unlabeled_required_message": "This field is required",
    },
    "conditional_logic": {
        "hide_when_dependency_hidden": True,
        "debug": False,
        # Parsed expressions kept per parser (0 = unbounded)
        "parser_cache_size": 512,
    },
    "export": {
        "json_indent": 2,
        "array_separator": ", ",
        "timestamp_format": "iso",
    },
    "uploads": {
        "max_size_mb": 10,
        "accepted_types": ["image/*", "application/pdf"],
    },
}


class DotDict(dict):
    """Dict with attribute access: d.key instead of d['key']"""

    def __getattr__(self, key: str) -> Any:
        try:
            value = self[key]
            if isinstance(value, dict):
                return DotDict(value)
            return value
        except KeyError:
            raise AttributeError(f"Setting '{key}' not found")

    def __setattr__(self, key: str, value: Any) -> None:
        self[key] = value

    def get_nested(self, path: str, default: Any = None) -> Any:
        """Get a value by dotted path: 'builder.max_history'"""
        keys = path.split('.')
        value = self
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge of two dicts (override wins)"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(filepath: Path = None) -> DotDict:
    """
    Load settings from a YAML file.

    Priority:
    1. Values from the YAML file
    2. DEFAULTS

    Args:
        filepath: Path to the settings file (settings.yaml by default)

    Returns:
        DotDict with settings
    """
    filepath = filepath or SETTINGS_FILE

    config = _deep_merge({}, DEFAULTS)

    if filepath.exists():
        with open(filepath, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        config = _deep_merge(config, yaml_config)
    else:
        logger.warning(f"Settings file not found: {filepath}, using defaults")

    return DotDict(config)


def validate_settings(settings: DotDict) -> List[str]:
    """
    Validate settings.

    Returns:
        List of errors (empty when everything is OK)
    """
    errors = []

    max_history = settings.builder.max_history
    if not isinstance(max_history, int) or max_history < 0:
        errors.append("builder.max_history must be an integer >= 0")

    if not isinstance(settings.export.json_indent, int) or settings.export.json_indent < 0:
        errors.append("export.json_indent must be an integer >= 0")

    cache_size = settings.get_nested("conditional_logic.parser_cache_size", 0)
    if not isinstance(cache_size, int) or cache_size < 0:
        errors.append("conditional_logic.parser_cache_size must be an integer >= 0")

    if settings.uploads.max_size_mb <= 0:
        errors.append("uploads.max_size_mb must be > 0")

    if not settings.uploads.accepted_types:
        errors.append("uploads.accepted_types must not be empty")

    level = str(settings.logging.level).upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        errors.append(f"logging.level has unknown value '{settings.logging.level}'")

    return errors


_settings = None


def get_settings() -> DotDict:
    """Get global settings (singleton)"""
    global _settings
    if _settings is None:
        _settings = load_settings()
        errors = validate_settings(_settings)
        for err in errors:
            logger.warning(f"Invalid setting: {err}")
    return _settings


def reload_settings() -> DotDict:
    """Reload settings from file"""
    global _settings
    _settings = None
    return get_settings()


# from formkit.settings import settings
settings = get_settings()

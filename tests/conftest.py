"""
Shared pytest fixtures for formkit tests.

Provides fixtures for:
- Deterministic field id factories
- Sample fields and forms (contact form, number range field)
- Builders over fresh sessions
- Settings overrides
"""

import itertools
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict

import pytest

from formkit.builder import FormBuilder
from formkit.field_types import create_field
from formkit.model import Field, Form, FormStatus, Submission
from formkit.settings import settings


# =============================================================================
# Ids
# =============================================================================

@pytest.fixture
def id_factory():
    """Sequential ids: field_1, field_2, ..."""
    counter = itertools.count(1)
    return lambda: f"field_{next(counter)}"


# =============================================================================
# Fields and forms
# =============================================================================

@pytest.fixture
def number_field() -> Field:
    """Number field accepting 5..10."""
    return Field.from_dict({
        "id": "age",
        "type": "number",
        "label": "Age",
        "validationRules": [
            {"kind": "min", "params": {"min": 5}},
            {"kind": "max", "params": {"max": 10}},
        ],
    })


@pytest.fixture
def contact_fields():
    return [
        create_field("text", {"id": "name", "label": "Name", "required": True}),
        create_field("email", {"id": "email", "label": "Email", "required": True}),
        create_field("checkbox", {
            "id": "topics",
            "label": "Topics",
            "options": [
                {"value": "news", "label": "News"},
                {"value": "offers", "label": "Offers"},
            ],
        }),
        create_field("file", {"id": "cv", "label": "CV"}),
    ]


@pytest.fixture
def contact_form(contact_fields) -> Form:
    return Form(
        id="form_contact",
        title="Contact",
        status=FormStatus.PUBLISHED,
        fields=contact_fields,
    )


@pytest.fixture
def conditional_fields():
    """has_company -> company_name -> company_size chain."""
    return [
        Field.from_dict({
            "id": "has_company",
            "type": "radio",
            "label": "Do you have a company?",
            "options": ["yes", "no"],
        }),
        Field.from_dict({
            "id": "company_name",
            "type": "text",
            "label": "Company name",
            "visibilityCondition": {"field": "has_company", "operator": "equals", "value": "yes"},
            "requiredCondition": {"field": "has_company", "operator": "equals", "value": "yes"},
        }),
        Field.from_dict({
            "id": "company_size",
            "type": "number",
            "label": "Company size",
            "visibilityCondition": {"field": "company_name", "operator": "is_not_empty"},
        }),
    ]


@pytest.fixture
def submissions():
    return [
        Submission(
            id="sub_1",
            form_id="form_contact",
            data={"name": "Ada", "email": "ada@example.com", "topics": ["news", "offers"]},
            submitted_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        ),
        Submission(
            id="sub_2",
            form_id="form_contact",
            data={"name": 'Grace "Amazing" Hopper, PhD', "email": "grace@example.com"},
            submitted_at=datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc),
        ),
    ]


# =============================================================================
# Builders
# =============================================================================

@pytest.fixture
def builder(id_factory) -> FormBuilder:
    return FormBuilder(id_factory=id_factory)


# =============================================================================
# Settings overrides
# =============================================================================

@contextmanager
def override_settings(path: str, value: Any):
    """Temporarily set a dotted settings key."""
    *parents, key = path.split(".")
    node: Dict[str, Any] = settings
    for part in parents:
        node = node[part]
    missing = object()
    previous = node.get(key, missing)
    node[key] = value
    try:
        yield
    finally:
        if previous is missing:
            node.pop(key, None)
        else:
            node[key] = previous


@pytest.fixture
def settings_override():
    return override_settings

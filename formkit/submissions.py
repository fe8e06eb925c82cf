"""
Submission intake.

Validates filled-in data against a published form (hidden fields skipped,
conditional required-ness applied) and records an immutable Submission.
Values of hidden fields and keys that are not fields of the form are dropped
before storing.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from formkit.conditions.resolver import ConditionalLogicResolver
from formkit.logger import logger
from formkit.model.entities import Form, FormStatus, Submission
from formkit.ports import SubmissionStore
from formkit.validation.engine import ValidationResult, validate_visible_form

FORM_NOT_OPEN = "__form__"


@dataclass
class SubmissionOutcome:
    """Result of submit_form: the stored submission, or why it was refused."""
    accepted: bool
    submission: Optional[Submission] = None
    result: ValidationResult = field(default_factory=ValidationResult)

    @property
    def submission_id(self) -> Optional[str]:
        return self.submission.id if self.submission else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "submissionId": self.submission_id,
            **self.result.to_dict(),
        }


def submit_form(
    form: Form,
    data: Mapping[str, Any],
    store: SubmissionStore,
    metadata: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> SubmissionOutcome:
    """
    Validate and store a submission.

    Only published forms accept submissions. Validation errors are returned
    in the outcome; nothing is stored then.
    """
    if form.status != FormStatus.PUBLISHED:
        result = ValidationResult(
            valid=False,
            errors_by_field_id={FORM_NOT_OPEN: ["This form is not accepting submissions"]},
        )
        logger.warning("Submission refused: form not published", form_id=form.id)
        return SubmissionOutcome(accepted=False, result=result)

    resolver = ConditionalLogicResolver.from_fields(form.fields, data)
    result = validate_visible_form(data, form.fields, resolver=resolver)
    if not result.valid:
        logger.event(
            "submission_rejected",
            form_id=form.id,
            fields=sorted(result.errors_by_field_id),
        )
        return SubmissionOutcome(accepted=False, result=result)

    field_ids = set(form.field_ids())
    stored_data = {
        key: value for key, value in resolver.prune_hidden_values().items()
        if key in field_ids
    }
    submission = Submission(
        form_id=form.id,
        data=stored_data,
        submitted_at=now or datetime.now(timezone.utc),
        metadata=dict(metadata or {}),
    )
    submission_id = store.add_submission(submission)
    stored = replace(submission, id=submission_id)
    logger.event("submission_received", form_id=form.id, submission_id=submission_id)
    return SubmissionOutcome(accepted=True, submission=stored, result=result)

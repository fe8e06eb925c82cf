"""
Submission analytics.

Per-field response statistics over a set of submissions, computed the same
way the export formatter works: a pure function of (submissions, fields).

    report = generate_analytics(submissions, form.fields)
    report.fields["age"].average
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from formkit.export.formatter import SubmissionLike, as_submission
from formkit.model.entities import CHOICE_KINDS, Field, FieldKind

# Kinds whose values carry nothing worth aggregating
SKIPPED_KINDS = frozenset({FieldKind.FILE, FieldKind.HIDDEN})

TEXT_KINDS = frozenset({FieldKind.TEXT, FieldKind.TEXTAREA})


@dataclass
class FieldStats:
    """Statistics for one field. Kind-specific attributes stay None when not applicable."""
    response_count: int = 0
    response_rate: float = 0.0
    average_length: Optional[float] = None
    average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    distribution: Optional[Dict[str, int]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "responseCount": self.response_count,
            "responseRate": self.response_rate,
        }
        if self.average_length is not None:
            data["averageLength"] = self.average_length
        if self.average is not None:
            data.update({"average": self.average, "min": self.min, "max": self.max})
        if self.distribution is not None:
            data["distribution"] = dict(self.distribution)
        return data


@dataclass
class SubmissionAnalytics:
    total_submissions: int = 0
    fields: Dict[str, FieldStats] = field(default_factory=dict)
    submissions_by_day: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSubmissions": self.total_submissions,
            "fieldData": {field_id: stats.to_dict() for field_id, stats in self.fields.items()},
            "submissionsByDay": dict(self.submissions_by_day),
        }


def _numbers(values: Iterable[Any]) -> List[float]:
    numbers = []
    for value in values:
        if isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if not math.isnan(number):
            numbers.append(number)
    return numbers


def _utc_day(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def field_stats(values: Sequence[Any], source: Field, total: int) -> FieldStats:
    """Statistics of the answered (non-None) `values` of one field."""
    answered = [v for v in values if v is not None]
    stats = FieldStats(
        response_count=len(answered),
        response_rate=(len(answered) * 100 / total) if total else 0.0,
    )

    if source.type in TEXT_KINDS:
        stats.average_length = (
            sum(len(str(v)) for v in answered) / len(answered) if answered else 0.0
        )
    elif source.type == FieldKind.NUMBER:
        numbers = _numbers(answered)
        if numbers:
            stats.average = sum(numbers) / len(numbers)
            stats.min = min(numbers)
            stats.max = max(numbers)
    elif source.type in CHOICE_KINDS:
        counts: Counter = Counter()
        for value in answered:
            for item in value if isinstance(value, (list, tuple)) else [value]:
                counts[str(item)] += 1
        stats.distribution = dict(counts)
    return stats


def generate_analytics(
    submissions: Iterable[SubmissionLike],
    fields: Sequence[Field],
) -> SubmissionAnalytics:
    """
    Response statistics per field plus submission counts per UTC day.

    File and hidden fields are left out. Text fields report the average
    answer length, number fields average/min/max, choice fields how often
    each option was picked (each checked box counts once).
    """
    items = [as_submission(item) for item in submissions]
    report = SubmissionAnalytics(total_submissions=len(items))
    if not items:
        return report

    for source in fields:
        if source.type in SKIPPED_KINDS:
            continue
        values = [s.data.get(source.id) for s in items]
        report.fields[source.id] = field_stats(values, source, len(items))

    days: Counter = Counter(_utc_day(s.submitted_at) for s in items)
    report.submissions_by_day = dict(sorted(days.items()))
    return report

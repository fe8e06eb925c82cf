"""
Export formatter.

Turns submissions into CSV or JSON text. Pure functions of their inputs;
writing files or triggering downloads is left to the caller.

    text = to_csv(submissions, form.fields)
    text = export_submissions(submissions, form.fields, ExportFormat.JSON,
                              start=datetime(2024, 1, 1, tzinfo=timezone.utc))
"""

import csv
import io
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from formkit.model.entities import Field, FileValue, Submission, parse_timestamp
from formkit.settings import settings


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


@dataclass(frozen=True)
class FormatInfo:
    extension: str
    mime_type: str


FORMAT_INFO: Dict[ExportFormat, FormatInfo] = {
    ExportFormat.CSV: FormatInfo(extension="csv", mime_type="text/csv"),
    ExportFormat.JSON: FormatInfo(extension="json", mime_type="application/json"),
}

HEADER_PREFIX = ["Submission ID", "Submitted At"]

SubmissionLike = Union[Submission, Mapping[str, Any]]


def as_submission(item: SubmissionLike) -> Submission:
    return item if isinstance(item, Submission) else Submission.from_dict(item)


def format_timestamp(value: datetime) -> str:
    """Timestamp per export.timestamp_format ("iso" or a strftime pattern)."""
    pattern = settings.get_nested("export.timestamp_format", "iso")
    if not pattern or pattern == "iso":
        return value.isoformat()
    return value.strftime(pattern)


def format_cell(value: Any) -> str:
    """
    Flat text of a submitted value: lists joined, files as url (or name),
    other mappings as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        separator = settings.get_nested("export.array_separator", ", ")
        return separator.join(format_cell(item) for item in value)
    if isinstance(value, FileValue):
        return value.url or value.name
    if isinstance(value, Mapping):
        if "url" in value or "name" in value:
            return str(value.get("url") or value.get("name") or "")
        return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _json_value(value: Any) -> Any:
    if isinstance(value, FileValue):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_json_value(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def to_csv(submissions: Iterable[SubmissionLike], fields: Sequence[Field]) -> str:
    """
    CSV text: a header row (Submission ID, Submitted At, field labels) and one
    row per submission. Cells containing a comma, quote or newline are quoted
    with embedded quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(HEADER_PREFIX + [f.label for f in fields])
    for item in submissions:
        submission = as_submission(item)
        row = [submission.id or "", format_timestamp(submission.submitted_at)]
        row.extend(format_cell(submission.data.get(f.id)) for f in fields)
        writer.writerow(row)
    return buffer.getvalue().rstrip("\n")


def to_records(submissions: Iterable[SubmissionLike], fields: Sequence[Field]) -> List[Dict[str, Any]]:
    """Submissions re-keyed from field ids to field labels."""
    records = []
    for item in submissions:
        submission = as_submission(item)
        records.append({
            "id": submission.id,
            "submittedAt": format_timestamp(submission.submitted_at),
            "data": {
                f.label: _json_value(submission.data.get(f.id))
                for f in fields
            },
        })
    return records


def to_json(submissions: Iterable[SubmissionLike], fields: Sequence[Field]) -> str:
    """Pretty-printed JSON list of label-keyed submission records."""
    indent = settings.get_nested("export.json_indent", 2)
    return json.dumps(
        to_records(submissions, fields),
        indent=indent or None,
        ensure_ascii=False,
        default=str,
    )


def filter_submissions(
    submissions: Iterable[SubmissionLike],
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> List[Submission]:
    """Submissions with start <= submitted_at <= end (either bound optional)."""
    start_at = parse_timestamp(start) if start is not None else None
    end_at = parse_timestamp(end) if end is not None else None
    result = []
    for item in submissions:
        submission = as_submission(item)
        if start_at is not None and submission.submitted_at < start_at:
            continue
        if end_at is not None and submission.submitted_at > end_at:
            continue
        result.append(submission)
    return result


def select_fields(fields: Sequence[Field], field_ids: Optional[Iterable[str]] = None) -> List[Field]:
    """Fields restricted to `field_ids` (form order kept); all fields when None."""
    if field_ids is None:
        return list(fields)
    wanted = set(field_ids)
    return [f for f in fields if f.id in wanted]


def export_submissions(
    submissions: Iterable[SubmissionLike],
    fields: Sequence[Field],
    fmt: Union[ExportFormat, str] = ExportFormat.CSV,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
    field_ids: Optional[Iterable[str]] = None,
) -> str:
    """
    Filter by date range and fields, then format.

    Raises:
        ValueError: If `fmt` is not a supported export format
    """
    fmt = ExportFormat(fmt)
    selected = filter_submissions(submissions, start, end)
    columns = select_fields(fields, field_ids)
    if fmt == ExportFormat.JSON:
        return to_json(selected, columns)
    return to_csv(selected, columns)


def mime_type(fmt: Union[ExportFormat, str]) -> str:
    return FORMAT_INFO[ExportFormat(fmt)].mime_type


_UNSAFE_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def generate_export_filename(
    title: str,
    fmt: Union[ExportFormat, str],
    now: Optional[datetime] = None,
) -> str:
    """Filename like customer_survey_20240501T103000.csv for title "Customer Survey"."""
    info = FORMAT_INFO[ExportFormat(fmt)]
    now = now or datetime.now(timezone.utc)
    sanitized = _UNSAFE_CHARS.sub("_", title or "form").lower()
    return f"{sanitized}_{now.strftime('%Y%m%dT%H%M%S')}.{info.extension}"

"""Export of submissions to CSV and JSON, and submission analytics."""

from formkit.export.analytics import FieldStats, SubmissionAnalytics, field_stats, generate_analytics
from formkit.export.formatter import (
    FORMAT_INFO,
    HEADER_PREFIX,
    ExportFormat,
    FormatInfo,
    export_submissions,
    filter_submissions,
    format_cell,
    format_timestamp,
    generate_export_filename,
    mime_type,
    select_fields,
    to_csv,
    to_json,
    to_records,
)

__all__ = [
    "FORMAT_INFO",
    "HEADER_PREFIX",
    "ExportFormat",
    "FormatInfo",
    "FieldStats",
    "SubmissionAnalytics",
    "export_submissions",
    "field_stats",
    "filter_submissions",
    "format_cell",
    "format_timestamp",
    "generate_analytics",
    "generate_export_filename",
    "mime_type",
    "select_fields",
    "to_csv",
    "to_json",
    "to_records",
]

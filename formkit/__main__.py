#!/usr/bin/env python3
"""
formkit command line.

Usage:
    python -m formkit check form.yaml
    python -m formkit validate form.yaml answers.json
    python -m formkit export form.yaml submissions.json --format json -o out.json
    python -m formkit stats form.yaml submissions.json

Forms, answers and submissions are read as YAML or JSON.
Exit code: 0 on success, 1 when problems were found, 2 on unreadable input.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formkit.conditions.resolver import ConditionalLogicResolver
from formkit.export.analytics import generate_analytics
from formkit.export.formatter import (
    ExportFormat,
    export_submissions,
    filter_submissions,
    generate_export_filename,
)
from formkit.field_types import field_types
from formkit.model.entities import Form
from formkit.model.queries import option_problems, publishing_problems, rule_problems
from formkit.schemas import DocumentError, load_form_document, load_submission_documents
from formkit.validation.engine import validate_form, validate_visible_form


class InputError(Exception):
    """Raised when an input file cannot be read or parsed."""


def read_document(path: str) -> Any:
    """Parse a YAML or JSON file (JSON is valid YAML)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise InputError(f"Cannot read {path}: {e}") from e


def read_form(path: str) -> Form:
    document = read_document(path)
    if not isinstance(document, dict):
        raise InputError(f"{path} does not contain a form document")
    try:
        return load_form_document(document)
    except DocumentError as e:
        raise InputError(str(e)) from e


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="formkit",
        description="Check forms, validate answers and export submissions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m formkit check survey.yaml
  python -m formkit validate survey.yaml answers.json --all
  python -m formkit export survey.yaml submissions.json -f csv -o survey.csv
  python -m formkit stats survey.yaml submissions.json
        """,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Check publish readiness and conditional logic")
    check.add_argument("form", help="Form definition (YAML/JSON)")

    validate = commands.add_parser("validate", help="Validate answers against a form")
    validate.add_argument("form", help="Form definition (YAML/JSON)")
    validate.add_argument("data", help="Answers: field id -> value (YAML/JSON)")
    validate.add_argument(
        "--all",
        action="store_true",
        help="Validate every field, ignoring conditional visibility",
    )
    validate.add_argument("--json", action="store_true", help="Print the result as JSON")

    export = commands.add_parser("export", help="Export submissions as CSV or JSON")
    export.add_argument("form", help="Form definition (YAML/JSON)")
    export.add_argument("submissions", help="List of submission documents (YAML/JSON)")
    export.add_argument(
        "--format", "-f",
        choices=[fmt.value for fmt in ExportFormat],
        default=ExportFormat.CSV.value,
        help="Export format (default: csv)",
    )
    export.add_argument("--output", "-o", help="Output file ('auto' derives a name from the title)")
    export.add_argument("--start", help="Only submissions at or after this ISO timestamp")
    export.add_argument("--end", help="Only submissions at or before this ISO timestamp")
    export.add_argument("--fields", help="Comma-separated field ids to include")

    stats = commands.add_parser("stats", help="Summarize responses per field")
    stats.add_argument("form", help="Form definition (YAML/JSON)")
    stats.add_argument("submissions", help="List of submission documents (YAML/JSON)")
    stats.add_argument("--json", action="store_true", help="Print the report as JSON")

    return parser


def run_check(args: argparse.Namespace, console: Console) -> int:
    form = read_form(args.form)
    table = Table(title=escape(f"{form.title or '(untitled)'} [{form.status.value}]"))
    table.add_column("Area", style="cyan")
    table.add_column("Problem")

    for problem in publishing_problems(form):
        table.add_row("publishing", escape(problem))
    for f in form.fields:
        for problem in rule_problems(f, field_types.applicable_rules(f.type)):
            table.add_row(f"field {f.id}", escape(problem))
        for problem in option_problems(f):
            table.add_row(f"field {f.id}", escape(problem))
    resolver = ConditionalLogicResolver.from_fields(form.fields)
    for problem in resolver.validate_dependencies():
        table.add_row("conditions", escape(problem))

    if table.row_count == 0:
        console.print(f"[green]OK[/green]: {len(form.fields)} fields, ready to publish")
        return 0
    console.print(table)
    return 1


def run_validate(args: argparse.Namespace, console: Console) -> int:
    form = read_form(args.form)
    data = read_document(args.data) or {}
    if not isinstance(data, dict):
        raise InputError(f"{args.data} must map field ids to values")

    if args.all:
        result = validate_form(data, form.fields)
    else:
        result = validate_visible_form(data, form.fields)

    if args.json:
        console.print_json(json.dumps(result.to_dict(), ensure_ascii=False))
    elif result.valid:
        console.print("[green]Valid[/green]")
    else:
        labels = {f.id: f.label for f in form.fields}
        table = Table(title="Validation errors")
        table.add_column("Field", style="cyan")
        table.add_column("Label")
        table.add_column("Error", style="red")
        for field_id, errors in result.errors_by_field_id.items():
            for message in errors:
                table.add_row(field_id, escape(labels.get(field_id, "")), escape(message))
        console.print(table)
    return 0 if result.valid else 1


def read_submissions(path: str) -> list:
    documents = read_document(path) or []
    try:
        return load_submission_documents(documents)
    except DocumentError as e:
        raise InputError(str(e)) from e


def run_export(args: argparse.Namespace, console: Console) -> int:
    form = read_form(args.form)
    submissions = read_submissions(args.submissions)

    field_ids = [part.strip() for part in args.fields.split(",")] if args.fields else None
    try:
        selected = filter_submissions(submissions, args.start, args.end)
        text = export_submissions(selected, form.fields, args.format, field_ids=field_ids)
    except ValueError as e:
        raise InputError(str(e)) from e

    if not args.output:
        console.print(text, markup=False, highlight=False, soft_wrap=True)
        return 0

    output = args.output
    if output == "auto":
        output = generate_export_filename(form.title, args.format)
    Path(output).write_text(text + "\n", encoding="utf-8")
    console.print(f"Exported {len(selected)} submissions to [bold]{escape(output)}[/bold]")
    return 0


def _describe(stats) -> str:
    if stats.distribution is not None:
        return ", ".join(f"{value}: {count}" for value, count in stats.distribution.items())
    if stats.average is not None:
        return f"avg {stats.average:g}, min {stats.min:g}, max {stats.max:g}"
    if stats.average_length is not None:
        return f"avg length {stats.average_length:.1f}"
    return ""


def run_stats(args: argparse.Namespace, console: Console) -> int:
    form = read_form(args.form)
    report = generate_analytics(read_submissions(args.submissions), form.fields)

    if args.json:
        console.print_json(json.dumps(report.to_dict(), ensure_ascii=False))
        return 0

    labels = {f.id: f.label for f in form.fields}
    table = Table(title=f"{report.total_submissions} submissions")
    table.add_column("Field", style="cyan")
    table.add_column("Responses", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Summary")
    for field_id, stats in report.fields.items():
        table.add_row(
            escape(labels.get(field_id) or field_id),
            str(stats.response_count),
            f"{stats.response_rate:.0f}%",
            escape(_describe(stats)),
        )
    console.print(table)
    return 0


COMMANDS = {
    "check": run_check,
    "validate": run_validate,
    "export": run_export,
    "stats": run_stats,
}


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    console = console or Console()
    try:
        return COMMANDS[args.command](args, console)
    except InputError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        return 2


if __name__ == "__main__":
    sys.exit(main())

"""
Tests for the formkit command line.
"""

import io
import json

import pytest
import yaml
from rich.console import Console

from formkit.__main__ import create_parser, main


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def output(console) -> str:
    return console.file.getvalue()


@pytest.fixture
def form_file(tmp_path, contact_form):
    path = tmp_path / "form.yaml"
    path.write_text(yaml.safe_dump(contact_form.to_dict()), encoding="utf-8")
    return str(path)


@pytest.fixture
def submissions_file(tmp_path, submissions):
    path = tmp_path / "submissions.json"
    path.write_text(json.dumps([s.to_dict() for s in submissions]), encoding="utf-8")
    return str(path)


def write_json(tmp_path, name, data) -> str:
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestParser:

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_export_defaults(self):
        args = create_parser().parse_args(["export", "f.yaml", "s.json"])
        assert args.format == "csv"
        assert args.output is None


class TestCheck:

    def test_ready_form(self, form_file, console):
        assert main(["check", form_file], console) == 0
        assert "ready to publish" in output(console)

    def test_problems_listed(self, tmp_path, console):
        path = write_json(tmp_path, "bad.json", {
            "title": "",
            "fields": [
                {"id": "pick", "type": "select", "label": "Pick"},
                {"id": "n", "type": "number", "label": "N",
                 "validationRules": [{"kind": "minLength", "params": {"min": 1}}],
                 "visibilityCondition": {"field": "ghost", "operator": "is_not_empty"}},
            ],
        })
        assert main(["check", path], console) == 1
        text = output(console)
        assert "Form has no title" in text
        assert "needs at least one option" in text
        assert "does not apply to number fields" in text
        assert "unknown field 'ghost'" in text


class TestValidate:

    def test_valid(self, form_file, tmp_path, console):
        data = write_json(tmp_path, "data.json", {"name": "Ada", "email": "ada@example.com"})
        assert main(["validate", form_file, data], console) == 0
        assert "Valid" in output(console)

    def test_errors_as_json(self, form_file, tmp_path, console):
        data = write_json(tmp_path, "data.json", {"email": "nope"})
        assert main(["validate", form_file, data, "--json"], console) == 1
        result = json.loads(output(console))
        assert result["valid"] is False
        assert result["errors"]["name"] == ["Name is required"]

    def test_errors_table(self, form_file, tmp_path, console):
        data = write_json(tmp_path, "data.json", {})
        assert main(["validate", form_file, data], console) == 1
        assert "Email is required" in output(console)


class TestExport:

    def test_csv_to_stdout(self, form_file, submissions_file, console):
        assert main(["export", form_file, submissions_file, "--fields", "name"], console) == 0
        lines = output(console).strip().split("\n")
        assert lines[0] == "Submission ID,Submitted At,Name"
        assert lines[2] == 'sub_2,2024-06-01T09:30:00+00:00,"Grace ""Amazing"" Hopper, PhD"'

    def test_json_to_file(self, form_file, submissions_file, tmp_path, console):
        out = tmp_path / "out.json"
        args = ["export", form_file, submissions_file, "-f", "json", "-o", str(out),
                "--start", "2024-06-01"]
        assert main(args, console) == 0
        records = json.loads(out.read_text(encoding="utf-8"))
        assert [r["id"] for r in records] == ["sub_2"]
        assert "Exported 1 submissions" in output(console)


class TestStats:

    def test_table(self, form_file, submissions_file, console):
        assert main(["stats", form_file, submissions_file], console) == 0
        text = output(console)
        assert "2 submissions" in text
        assert "news: 1, offers: 1" in text
        assert "avg length 15.0" in text

    def test_json(self, form_file, submissions_file, console):
        assert main(["stats", form_file, submissions_file, "--json"], console) == 0
        report = json.loads(output(console))
        assert report["totalSubmissions"] == 2
        assert "cv" not in report["fieldData"]


class TestInputErrors:

    def test_missing_file(self, tmp_path, console):
        assert main(["check", str(tmp_path / "nope.yaml")], console) == 2
        assert "Cannot read" in output(console)

    def test_malformed_form(self, tmp_path, console):
        path = write_json(tmp_path, "bad.json", {"fields": [{"id": "a", "type": "signature"}]})
        assert main(["check", path], console) == 2
        assert "Invalid form document" in output(console)

    def test_not_a_mapping(self, tmp_path, console):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        assert main(["check", str(path)], console) == 2

    def test_bad_submissions(self, form_file, tmp_path, console):
        path = write_json(tmp_path, "subs.json", [{"data": {}}])
        assert main(["export", form_file, path], console) == 2

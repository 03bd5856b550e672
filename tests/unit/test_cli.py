"""Tests for the payroll-extract CLI."""

import json

import pytest
from click.testing import CliRunner

from payroll_extract.cli.__main__ import cli
from payroll_extract.sdk import save_settings


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def stub_file(tmp_path, ca_stub):
    path = tmp_path / "stub.txt"
    path.write_text(ca_stub)
    return path


class TestTextCommand:
    def test_json_output(self, runner, stub_file):
        result = runner.invoke(cli, ["text", str(stub_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        record = data["payrollRecord"]
        assert record["employeeInfo"]["name"] == "Jane Doe"
        assert record["statutoryDeductions"]["californiaStateIncome"]["thisPeriod"] == 60.0
        assert "debug" not in data

    def test_debug_output(self, runner, stub_file):
        result = runner.invoke(cli, ["text", str(stub_file), "--format", "json", "--debug"])

        assert result.exit_code == 0, result.output
        usage = json.loads(result.stdout)["debug"]["pattern_usage"]
        assert usage["medicare"]["strategy"] == "medicare:strict"

    def test_table_output(self, runner, stub_file):
        result = runner.invoke(cli, ["text", str(stub_file), "--debug"])

        assert result.exit_code == 0, result.output
        assert "Jane Doe" in result.output
        assert "Medicare" in result.output
        assert "name:third-to-last" in result.output

    def test_invalid_settings(self, runner, stub_file):
        save_settings({"lookback": 0})
        result = runner.invoke(cli, ["text", str(stub_file)])
        assert result.exit_code == 1
        assert "Invalid settings" in result.output


class TestExtractCommand:
    def test_not_a_pdf(self, runner, tmp_path):
        path = tmp_path / "stub.pdf"
        path.write_text("hello")

        result = runner.invoke(cli, ["extract", str(path), "--no-llm", "--no-vision", "--no-ocr"])

        assert result.exit_code == 1
        assert "does not appear to be a PDF" in result.output

    def test_blank_pdf_json(self, runner, blank_pdf):
        result = runner.invoke(
            cli, ["extract", str(blank_pdf), "--no-llm", "--no-vision", "--no-ocr", "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["sourceFile"] == "blank.pdf"
        assert data["pageCount"] == 1
        assert data["pages"] == []

    def test_blank_pdf_table_csv_and_save(self, runner, blank_pdf, tmp_path, isolated_dirs):
        csv_path = tmp_path / "out.csv"
        result = runner.invoke(
            cli,
            ["extract", str(blank_pdf), "--no-llm", "--no-vision", "--no-ocr", "--csv", str(csv_path), "--save"],
        )

        assert result.exit_code == 0, result.output
        assert "No pages" in result.output
        assert csv_path.read_text().startswith("PDF File,Page,Employee Name")
        assert (isolated_dirs["data"] / "payroll-extract" / "results" / "blank.json").exists()


class TestBatchCommand:
    def test_summary_and_failure_exit(self, runner, blank_pdf, tmp_path):
        bad = tmp_path / "notes.pdf"
        bad.write_text("plain text")

        result = runner.invoke(cli, ["batch", str(blank_pdf), str(bad), "--no-llm", "--no-vision", "--no-ocr"])

        assert result.exit_code == 1
        assert "blank.pdf" in result.output
        assert "1 of 2 document(s) failed" in result.output

    def test_all_succeed(self, runner, blank_pdf, tmp_path):
        csv_path = tmp_path / "all.csv"
        result = runner.invoke(
            cli, ["batch", str(blank_pdf), "--no-llm", "--no-vision", "--no-ocr", "--workers", "1",
                  "--csv", str(csv_path)]
        )
        assert result.exit_code == 0, result.output
        assert csv_path.exists()


class TestSettingsShow:
    def test_defaults(self, runner, isolated_dirs):
        result = runner.invoke(cli, ["settings", "show"])

        assert result.exit_code == 0, result.output
        assert f"Settings file: {isolated_dirs['config'] / 'settings.json'}" in result.output
        assert "File exists: False" in result.output
        assert "lookback: 4 (default)" in result.output

    def test_configured_value(self, runner):
        save_settings({"lookback": 6})
        result = runner.invoke(cli, ["settings", "show"])
        assert "lookback: 6\n" in result.output
        assert "File exists: True" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "payroll-extract" in result.output

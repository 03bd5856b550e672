"""Tests for CSV export and JSON persistence of page results."""

import csv
import json

import pytest

from payroll_extract import __version__
from payroll_extract.sdk import extract_with_patterns
from payroll_extract.sdk.export import load_results_json, result_columns, save_results_json, write_results_csv
from payroll_extract.sdk.schemas import (
    AmountPair,
    DocumentResult,
    EmployeeInfo,
    ExtractionMethod,
    PageResult,
    PayrollRecord,
)


@pytest.fixture
def document(ca_stub):
    nevada = PayrollRecord(
        employee_info=EmployeeInfo(name="John Smith", address="Reno, NV"),
        statutory_deductions={
            "medicare": AmountPair(this_period=72.5),
            "californiaStateDI": AmountPair(this_period=9.0),
        },
    )
    return DocumentResult(
        source_file="stubs.pdf",
        page_count=3,
        pages=[
            PageResult(page_number=1, source_text=ca_stub, payroll_record=extract_with_patterns(ca_stub),
                       extraction_method=ExtractionMethod.REGEX),
            PageResult(page_number=3, payroll_record=nevada, extraction_method=ExtractionMethod.HYBRID,
                       vision_attempts=1),
        ],
    )


class TestCsv:
    def test_columns(self):
        columns = result_columns()
        assert columns[:3] == ["PDF File", "Page", "Employee Name"]
        assert columns.index("Federal income") < columns.index("Social security") < columns.index("Medicare")
        assert "WI State DI" in columns
        assert columns[-1] == "Extraction Method"

    def test_rows(self, tmp_path, document):
        output = write_results_csv([document], tmp_path / "out.csv")

        with open(output, newline="") as f:
            rows = list(csv.DictReader(f))

        assert len(rows) == 2
        california, nevada = rows
        assert california["PDF File"] == "stubs.pdf"
        assert california["Employee Name"] == "Jane Doe"
        assert california["Period Start"] == "01/01/2024"
        assert california["Medicare"] == "29.00"
        assert california["CA State Income"] == "60.00"
        assert california["WI State Income"] == ""
        assert california["Extraction Method"] == "Regex"

        assert nevada["Page"] == "3"
        assert nevada["Medicare"] == "72.50"
        assert nevada["CA State DI"] == ""
        assert nevada["Extraction Method"] == "Hybrid"

    def test_failed_document_has_no_rows(self, tmp_path):
        failed = DocumentResult(source_file="bad.pdf", error="not a PDF")
        output = write_results_csv([failed], tmp_path / "out.csv")
        assert output.read_text().strip() == ",".join(result_columns())


class TestJson:
    def test_save_to_data_dir(self, document, isolated_dirs):
        path = save_results_json(document)

        assert path == isolated_dirs["data"] / "payroll-extract" / "results" / "stubs.json"
        payload = json.loads(path.read_text())
        assert payload["meta"]["source_file"] == "stubs.pdf"
        assert payload["meta"]["version"] == __version__
        assert payload["pages"][0]["payrollRecord"]["statutoryDeductions"]["medicare"]["thisPeriod"] == 29.0

    def test_load_back(self, document, tmp_path):
        path = save_results_json(document, tmp_path)
        loaded = load_results_json(path)
        assert loaded.source_file == "stubs.pdf"
        assert loaded.page_count == 3
        assert [p.page_number for p in loaded.pages] == [1, 3]
        assert loaded.pages[1].extraction_method == ExtractionMethod.HYBRID
        assert loaded.pages[0].payroll_record == document.pages[0].payroll_record

    def test_error_recorded(self, tmp_path):
        path = save_results_json(DocumentResult(source_file="bad.pdf", error="not a PDF"), tmp_path)
        assert load_results_json(path).error == "not a PDF"

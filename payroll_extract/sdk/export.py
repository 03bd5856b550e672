"""Consumers of page results: CSV export and JSON persistence."""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .. import __version__
from .config import get_data_path
from .definitions import load_deduction_definitions
from .jurisdiction import detect_jurisdiction
from .schemas import DocumentResult, PageResult

logger = logging.getLogger(__name__)

LEADING_COLUMNS = [
    "PDF File",
    "Page",
    "Employee Name",
    "SSN",
    "Account Number",
    "Period Start",
    "Period End",
    "Pay Date",
]
TRAILING_COLUMNS = ["Gross Pay", "Net Pay", "Extraction Method"]


def result_columns() -> List[str]:
    """Column headers, deductions in definition-table order."""
    return LEADING_COLUMNS + [d.label for d in load_deduction_definitions()] + TRAILING_COLUMNS


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def page_row(source_file: str, page: PageResult) -> List[str]:
    """One CSV row. State columns are blank unless they match the page's state."""
    record = page.payroll_record
    info = record.employee_info
    period = info.pay_period
    state = detect_jurisdiction(record)

    row = [
        source_file,
        str(page.page_number),
        _cell(info.name),
        _cell(info.ssn),
        _cell(info.account_number),
        _cell(period.start if period else None),
        _cell(period.end if period else None),
        _cell(info.pay_date),
    ]

    for definition in load_deduction_definitions():
        if definition.jurisdiction and definition.jurisdiction != state:
            row.append("")
            continue
        pair = record.deduction(definition)
        row.append(_cell(pair.this_period if pair else None))

    row += [
        _cell(info.gross_pay),
        _cell(info.net_pay),
        page.extraction_method.value.capitalize(),
    ]
    return row


def write_results_csv(documents: Sequence[DocumentResult], output_path: Path) -> Path:
    """Write every page of every document as one CSV table.

    Args:
        documents: Processed documents
        output_path: Path to output CSV file

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    with open(output_path, "w", newline="") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(result_columns())
        for document in documents:
            for page in document.pages:
                writer.writerow(page_row(document.source_file, page))

    logger.info(f"wrote {output_path}")
    return output_path


def save_results_json(document: DocumentResult, output_dir: Optional[Path] = None) -> Path:
    """Persist one document's page results as JSON.

    Saved to <data_dir>/results/<source stem>.json unless output_dir is given.

    Returns:
        Path to the saved JSON file
    """
    target_dir = Path(output_dir) if output_dir else get_data_path() / "results"
    target_dir.mkdir(parents=True, exist_ok=True)

    payload = {
        "meta": {
            "source_file": document.source_file,
            "page_count": document.page_count,
            "extracted_at": datetime.now().isoformat(),
            "version": __version__,
        },
        "pages": [page.model_dump(mode="json", by_alias=True) for page in document.pages],
    }
    if document.error:
        payload["meta"]["error"] = document.error

    result_path = target_dir / f"{Path(document.source_file).stem}.json"
    with open(result_path, "w") as f:
        json.dump(payload, f, indent=2)

    return result_path


def load_results_json(path: Path) -> DocumentResult:
    """Read a file written by save_results_json back into a DocumentResult."""
    with open(path, "r") as f:
        payload = json.load(f)
    meta = payload.get("meta", {})
    return DocumentResult.model_validate({
        "sourceFile": meta.get("source_file", Path(path).name),
        "pageCount": meta.get("page_count", 0),
        "pages": payload.get("pages", []),
        "error": meta.get("error"),
    })

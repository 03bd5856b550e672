"""Document-level driver: runs the escalation controller page by page.

Pages of one document are processed sequentially because page 1's pay
period and pay date are copied onto every later page. Independent
documents can run concurrently (process_batch); nothing is shared between
document runs.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import ExtractionSettings
from .escalation import EscalationController
from .pdf_source import DocumentError, Page, PdfPageSource, needs_ocr
from .schemas import DocumentResult, PageResult, PayrollRecord
from .services import OcrEngine

logger = logging.getLogger(__name__)


def apply_document_fields(record: PayrollRecord, pay_period, pay_date) -> PayrollRecord:
    """Force page-1 pay period and pay date onto a later page's record."""
    update = {}
    if pay_period is not None:
        update["pay_period"] = pay_period
    if pay_date is not None:
        update["pay_date"] = pay_date
    if not update:
        return record
    info = record.employee_info.model_copy(update=update)
    return record.model_copy(update={"employee_info": info})


def process_document(
    pages: Iterable[Page],
    controller: EscalationController,
    ocr_engine: Optional[OcrEngine] = None,
    settings: Optional[ExtractionSettings] = None,
    cancel: Optional[threading.Event] = None,
) -> List[PageResult]:
    """Resolve every page of one document, in page order.

    Pages whose text layer is shorter than settings.ocr_min_text_length are
    sent to the OCR engine first (if one is given). Pages with no name, no
    SSN and no deductions are dropped. If `cancel` is set, pages not yet
    started are skipped.
    """
    settings = settings or controller.settings
    wants_image = controller.vision_service is not None or ocr_engine is not None

    results: List[PageResult] = []
    first_page = True
    pay_period = pay_date = None

    for page in pages:
        if cancel is not None and cancel.is_set():
            logger.info(f"cancelled before page {page.number}")
            break

        image = page.image() if wants_image else None
        text = page.text
        ocr_used = False

        if ocr_engine is not None and image is not None and needs_ocr(text, settings.ocr_min_text_length):
            try:
                text = ocr_engine.recognize(image)
                ocr_used = True
                logger.info(f"page {page.number}: OCR produced {len(text)} chars")
            except Exception as e:
                logger.warning(f"page {page.number}: OCR failed, keeping text layer: {e}")

        resolution = controller.resolve(text, image, cancel=cancel)
        record = resolution.record

        if first_page:
            pay_period = record.employee_info.pay_period
            pay_date = record.employee_info.pay_date
            first_page = False
        else:
            record = apply_document_fields(record, pay_period, pay_date)

        if not record.has_identity_or_deductions:
            logger.info(f"page {page.number}: no name, SSN or deductions; dropped")
            continue

        results.append(PageResult(
            page_number=page.number,
            source_text=text,
            payroll_record=record,
            extraction_method=resolution.method,
            ocr_used=ocr_used,
            vision_attempts=resolution.vision_attempts,
        ))

    results.sort(key=lambda r: r.page_number)
    return results


def process_pdf(
    path,
    controller: EscalationController,
    ocr_engine: Optional[OcrEngine] = None,
    settings: Optional[ExtractionSettings] = None,
    cancel: Optional[threading.Event] = None,
) -> DocumentResult:
    """Process one PDF file.

    Raises:
        DocumentError: If the file is not a readable PDF
    """
    path = Path(path)
    with PdfPageSource(path) as source:
        logger.info(f"{path.name}: {source.page_count} page(s)")
        pages = process_document(source.pages(), controller, ocr_engine, settings, cancel)
        return DocumentResult(source_file=path.name, page_count=source.page_count, pages=pages)


def process_batch(
    paths: Sequence,
    controller: EscalationController,
    ocr_engine: Optional[OcrEngine] = None,
    settings: Optional[ExtractionSettings] = None,
    max_workers: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> List[DocumentResult]:
    """Process independent documents concurrently.

    Results are returned in input order. A document that fails is reported
    with its error and does not affect the others.
    """
    settings = settings or controller.settings
    workers = max_workers or settings.max_workers
    results: List[Optional[DocumentResult]] = [None] * len(paths)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(process_pdf, path, controller, ocr_engine, settings, cancel): i
            for i, path in enumerate(paths)
        }
        for future in as_completed(futures):
            i = futures[future]
            name = Path(paths[i]).name
            try:
                results[i] = future.result()
            except DocumentError as e:
                logger.warning(f"{name}: {e}")
                results[i] = DocumentResult(source_file=name, error=str(e))
            except Exception as e:
                logger.exception(f"{name}: unexpected failure")
                results[i] = DocumentResult(source_file=name, error=f"{type(e).__name__}: {e}")

    return results

"""Per-page text and page artifacts from a PDF, built on PyPDF2.

The "page image" handed to the vision service and the OCR engine is a
single-page PDF written to a temporary directory; rasterizing it is the
collaborator's job.

Usage:
    with PdfPageSource("stub.pdf") as source:
        for page in source.pages():
            page.number, page.text, page.image()
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

import PyPDF2
from PyPDF2.errors import PdfReadError

logger = logging.getLogger(__name__)

PDF_HEADER = b"%PDF-"
HEADER_SCAN_BYTES = 1024


class DocumentError(Exception):
    """The input is not a readable PDF document."""
    pass


@dataclass
class Page:
    """One page: 1-based number, text layer, and an on-demand artifact."""

    number: int
    text: str
    render: Optional[Callable[[], Path]] = field(default=None, repr=False)
    _image: Optional[Path] = field(default=None, repr=False)

    def image(self) -> Optional[Path]:
        """Path of the single-page artifact (written on first call)."""
        if self._image is None and self.render is not None:
            self._image = self.render()
        return self._image


def needs_ocr(text: str, min_text_length: int) -> bool:
    """True if the text layer is too short to be a real text page."""
    return len((text or "").strip()) < min_text_length


class PdfPageSource:
    """Reads a PDF page by page.

    Raises DocumentError on construction if the file is missing, has no PDF
    header, or cannot be parsed.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._temp_dir: Optional[Path] = None
        self._check_header()
        try:
            self.reader = PyPDF2.PdfReader(str(self.path))
            if self.reader.is_encrypted:
                self.reader.decrypt("")
            self.page_count = len(self.reader.pages)
        except (PdfReadError, OSError, ValueError, NotImplementedError) as e:
            raise DocumentError(f"Cannot read PDF {self.path.name}: {e}") from e

    def _check_header(self) -> None:
        if not self.path.is_file():
            raise DocumentError(f"File not found: {self.path}")
        with open(self.path, "rb") as f:
            head = f.read(HEADER_SCAN_BYTES)
        if PDF_HEADER not in head:
            raise DocumentError(f"{self.path.name} does not appear to be a PDF (missing %PDF- header)")

    def __enter__(self) -> "PdfPageSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._temp_dir is not None:
            shutil.rmtree(self._temp_dir, ignore_errors=True)
            self._temp_dir = None

    def _page_dir(self) -> Path:
        if self._temp_dir is None:
            self._temp_dir = Path(tempfile.mkdtemp(prefix="payroll_extract_"))
        return self._temp_dir

    def page_text(self, index: int) -> str:
        try:
            return self.reader.pages[index].extract_text() or ""
        except Exception as e:
            logger.debug(f"text extraction failed on page {index + 1}: {e}")
            return ""

    def write_page(self, index: int) -> Path:
        """Write page `index` (0-based) as a single-page PDF."""
        writer = PyPDF2.PdfWriter()
        writer.add_page(self.reader.pages[index])
        page_file = self._page_dir() / f"{self.path.stem}_page_{index + 1:02d}.pdf"
        with open(page_file, "wb") as f:
            writer.write(f)
        return page_file

    def pages(self) -> Iterator[Page]:
        for index in range(self.page_count):
            yield Page(
                number=index + 1,
                text=self.page_text(index),
                render=lambda index=index: self.write_page(index),
            )

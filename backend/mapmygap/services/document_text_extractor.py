"""
Policy document text extraction using Python-native libraries.

Handles TXT, DOCX, PDF, XLSX and XLS uploads. Any library failure is
reported as a DocumentExtractionError so the upload endpoint answers 400.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from mapmygap.errors import DocumentExtractionError

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Result of text extraction from a document."""

    text: str
    page_count: int = 0
    word_count: int = 0
    format: str = "unknown"
    title: Optional[str] = None


class DocumentTextExtractor:
    """
    Pure Python document text extractor.

    Supports TXT, DOCX, PDF, XLSX and XLS without external services.
    """

    SUPPORTED_EXTENSIONS = {".txt", ".docx", ".pdf", ".xlsx", ".xls"}

    @classmethod
    def is_supported(cls, filename: str) -> bool:
        return os.path.splitext(filename or "")[1].lower() in cls.SUPPORTED_EXTENSIONS

    async def extract_text(self, file_path: str, filename: str) -> ExtractionResult:
        """
        Extract text from a document file.

        Args:
            file_path: Path to the temporary file on disk
            filename: Original filename (used for extension detection)

        Returns:
            ExtractionResult with extracted text and metadata

        Raises:
            DocumentExtractionError: Unsupported extension or unreadable file
        """
        ext = os.path.splitext(filename)[1].lower()
        if ext not in self.SUPPORTED_EXTENSIONS:
            raise DocumentExtractionError(
                f"Unsupported file type '{ext or filename}'. Supported: "
                + ", ".join(sorted(self.SUPPORTED_EXTENSIONS))
            )

        try:
            if ext == ".pdf":
                result = self._extract_pdf(file_path, filename)
            elif ext == ".docx":
                result = self._extract_docx(file_path, filename)
            elif ext in (".xlsx", ".xls"):
                result = self._extract_xlsx(file_path, filename)
            else:
                result = self._extract_txt(file_path, filename)
        except Exception as e:
            logger.warning(f"Text extraction failed for {ext} upload: {e}")
            raise DocumentExtractionError(
                f"Could not read {filename}: {e}"
            ) from e

        logger.info(
            f"Extracted {len(result.text)} chars ({result.word_count} words) "
            f"from {result.format} upload"
        )
        return result

    def _extract_pdf(self, file_path: str, filename: str) -> ExtractionResult:
        """Extract text from PDF using pypdf."""
        from pypdf import PdfReader

        reader = PdfReader(file_path)
        pages = []
        for page in reader.pages:
            text = page.extract_text()
            if text:
                pages.append(text)

        full_text = "\n\n".join(pages)
        title = reader.metadata.title if reader.metadata else None

        return ExtractionResult(
            text=full_text,
            page_count=len(reader.pages),
            word_count=len(full_text.split()),
            format="pdf",
            title=title or os.path.splitext(filename)[0],
        )

    def _extract_docx(self, file_path: str, filename: str) -> ExtractionResult:
        """Extract paragraph and table text from DOCX using python-docx."""
        from docx import Document

        doc = Document(file_path)

        paragraphs = [para.text for para in doc.paragraphs if para.text.strip()]

        # Policy documents often keep control matrices in tables
        for table in doc.tables:
            for row in table.rows:
                row_text = " | ".join(
                    cell.text.strip() for cell in row.cells if cell.text.strip()
                )
                if row_text:
                    paragraphs.append(row_text)

        full_text = "\n\n".join(paragraphs)

        title = None
        if doc.core_properties and doc.core_properties.title:
            title = doc.core_properties.title

        return ExtractionResult(
            text=full_text,
            page_count=1,
            word_count=len(full_text.split()),
            format="docx",
            title=title or os.path.splitext(filename)[0],
        )

    def _extract_xlsx(self, file_path: str, filename: str) -> ExtractionResult:
        """Extract sheet rows from a workbook using openpyxl.

        Legacy binary .xls workbooks are not readable by openpyxl and surface
        as a DocumentExtractionError.
        """
        from openpyxl import load_workbook

        wb = load_workbook(file_path, read_only=True, data_only=True)
        try:
            sheets_text = []
            for sheet_name in wb.sheetnames:
                ws = wb[sheet_name]
                rows = []
                for row in ws.iter_rows(values_only=True):
                    row_vals = [str(v) for v in row if v is not None]
                    if row_vals:
                        rows.append(" | ".join(row_vals))
                if rows:
                    sheets_text.append(
                        f"--- Sheet: {sheet_name} ---\n" + "\n".join(rows)
                    )
            sheet_count = len(wb.sheetnames)
        finally:
            wb.close()

        full_text = "\n\n".join(sheets_text)

        return ExtractionResult(
            text=full_text,
            page_count=sheet_count,
            word_count=len(full_text.split()),
            format="xlsx",
            title=os.path.splitext(filename)[0],
        )

    def _extract_txt(self, file_path: str, filename: str) -> ExtractionResult:
        """Extract text from plain text file."""
        with open(file_path, encoding="utf-8", errors="replace") as f:
            full_text = f.read()

        return ExtractionResult(
            text=full_text,
            page_count=1,
            word_count=len(full_text.split()),
            format="txt",
            title=os.path.splitext(filename)[0],
        )

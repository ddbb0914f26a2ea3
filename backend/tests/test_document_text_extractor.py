"""Tests for mapmygap.services.document_text_extractor."""

import pytest

from mapmygap.errors import DocumentExtractionError
from mapmygap.services.document_text_extractor import DocumentTextExtractor


@pytest.fixture
def extractor():
    return DocumentTextExtractor()


class TestIsSupported:
    @pytest.mark.parametrize(
        "filename", ["policy.txt", "Policy.DOCX", "a.pdf", "b.xlsx", "c.xls"]
    )
    def test_supported(self, filename):
        assert DocumentTextExtractor.is_supported(filename)

    @pytest.mark.parametrize("filename", ["policy.csv", "policy.doc", "policy", ""])
    def test_unsupported(self, filename):
        assert not DocumentTextExtractor.is_supported(filename)


@pytest.mark.asyncio
class TestExtractText:
    async def test_txt(self, extractor, tmp_path):
        path = tmp_path / "policy.txt"
        path.write_text("All staff must use MFA.", encoding="utf-8")
        result = await extractor.extract_text(str(path), "policy.txt")
        assert result.text == "All staff must use MFA."
        assert result.format == "txt"
        assert result.word_count == 5

    async def test_docx_paragraphs_and_tables(self, extractor, tmp_path):
        from docx import Document

        doc = Document()
        doc.add_paragraph("Access Control Policy")
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "AC-2"
        table.rows[0].cells[1].text = "Accounts reviewed quarterly"
        path = tmp_path / "policy.docx"
        doc.save(path)

        result = await extractor.extract_text(str(path), "policy.docx")
        assert "Access Control Policy" in result.text
        assert "AC-2 | Accounts reviewed quarterly" in result.text
        assert result.format == "docx"

    async def test_xlsx(self, extractor, tmp_path):
        from openpyxl import Workbook

        wb = Workbook()
        ws = wb.active
        ws.title = "Controls"
        ws.append(["ID", "Status"])
        ws.append(["PR.AC-1", "Implemented"])
        path = tmp_path / "controls.xlsx"
        wb.save(path)

        result = await extractor.extract_text(str(path), "controls.xlsx")
        assert "--- Sheet: Controls ---" in result.text
        assert "PR.AC-1 | Implemented" in result.text

    async def test_unsupported_extension(self, extractor, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a,b")
        with pytest.raises(DocumentExtractionError):
            await extractor.extract_text(str(path), "data.csv")

    @pytest.mark.parametrize("filename", ["broken.pdf", "broken.docx", "legacy.xls"])
    async def test_corrupt_file(self, extractor, tmp_path, filename):
        path = tmp_path / filename
        path.write_bytes(b"this is not a real document")
        with pytest.raises(DocumentExtractionError) as exc_info:
            await extractor.extract_text(str(path), filename)
        assert exc_info.value.status_code == 400

"""Unit tests for TextExtractor (python-docx and PyMuPDF are mocked)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.models.story import DocumentFormat, RawDocument
from src.services.ingestion.text_extractor import TextExtractor
from src.utils.errors import ExtractionError


def _doc(content: bytes, fmt: DocumentFormat, name: str = "doc") -> RawDocument:
    return RawDocument(content=content, declared_format=fmt, name=name)


def _paragraph(text: str) -> MagicMock:
    return MagicMock(text=text)


class TestPlainText:
    def test_utf8_with_bom(self) -> None:
        text = TextExtractor().extract(_doc("\ufeffשלום\nworld".encode("utf-8"), DocumentFormat.TEXT))
        assert text == "שלום\nworld"

    def test_invalid_utf8_raises(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            TextExtractor().extract(_doc(b"\xff\xfe\xfa", DocumentFormat.TEXT, name="bad.txt"))
        assert exc_info.value.document_name == "bad.txt"


class TestDocx:
    def test_paragraphs_and_table_cells(self) -> None:
        cell = MagicMock(paragraphs=[_paragraph("in a table")])
        fake = MagicMock()
        fake.paragraphs = [_paragraph("###NEW STORY"), _paragraph("Story ID: Ad1")]
        fake.tables = [MagicMock(rows=[MagicMock(cells=[cell])])]

        with patch("src.services.ingestion.text_extractor.Document", return_value=fake):
            text = TextExtractor().extract(_doc(b"PK", DocumentFormat.DOCX))

        assert text == "###NEW STORY\nStory ID: Ad1\nin a table"

    def test_unreadable_docx_raises(self) -> None:
        with patch(
            "src.services.ingestion.text_extractor.Document",
            side_effect=ValueError("File is not a zip file"),
        ):
            with pytest.raises(ExtractionError) as exc_info:
                TextExtractor().extract(_doc(b"not a docx", DocumentFormat.DOCX, name="x.docx"))
        assert exc_info.value.provider_name == "python-docx"
        assert exc_info.value.document_name == "x.docx"


class TestPdf:
    def test_pages_joined_and_blank_runs_collapsed(self) -> None:
        page_one = MagicMock()
        page_one.get_text.return_value = "first page\n\n\n"
        page_two = MagicMock()
        page_two.get_text.return_value = "  \nsecond page\n"
        pdf = MagicMock()
        pdf.__iter__.return_value = iter([page_one, page_two])

        with patch("src.services.ingestion.text_extractor.fitz.open", return_value=pdf):
            text = TextExtractor().extract(_doc(b"%PDF", DocumentFormat.PDF))

        assert text == "first page\nsecond page"
        page_one.get_text.assert_called_once_with("text")
        pdf.close.assert_called_once()

    def test_unreadable_pdf_raises(self) -> None:
        with patch(
            "src.services.ingestion.text_extractor.fitz.open",
            side_effect=RuntimeError("cannot open broken document"),
        ):
            with pytest.raises(ExtractionError) as exc_info:
                TextExtractor().extract(_doc(b"junk", DocumentFormat.PDF))
        assert exc_info.value.provider_name == "pymupdf"


class TestFiles:
    def test_load_file_infers_format(self, tmp_path: Path) -> None:
        path = tmp_path / "Adar 02 English.txt"
        path.write_text("hello", encoding="utf-8")
        document = TextExtractor().load_file(path)
        assert document.declared_format == DocumentFormat.TEXT
        assert document.name == "Adar 02 English.txt"
        assert TextExtractor().extract_file(path) == "hello"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError):
            TextExtractor().load_file(tmp_path / "missing.docx")

    @pytest.mark.asyncio
    async def test_extract_async(self) -> None:
        text = await TextExtractor().extract_async(_doc(b"async text", DocumentFormat.TEXT))
        assert text == "async text"

    @pytest.mark.parametrize(
        ("name", "fmt"),
        [("a.docx", DocumentFormat.DOCX), ("b.PDF", DocumentFormat.PDF), ("c.txt", DocumentFormat.TEXT)],
    )
    def test_format_from_filename(self, name: str, fmt: DocumentFormat) -> None:
        assert DocumentFormat.from_filename(name) == fmt

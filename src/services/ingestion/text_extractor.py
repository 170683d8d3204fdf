"""Text extraction for the raw story documents.

Turns a :class:`~src.models.story.RawDocument` into one plain Unicode
string.  Word documents are read with python-docx, which exposes paragraph
text with all styling dropped.  PDFs are read page-by-page with PyMuPDF
and the runs of blank lines its layout engine leaves between blocks are
collapsed.  Plain text is decoded as UTF-8, tolerating a BOM.

Any failure to read the bytes as the declared format raises
:class:`~src.utils.errors.ExtractionError`.  The orchestrator treats that
as fatal for the document pair only.
"""

from __future__ import annotations

import asyncio
import io
import re
from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from docx import Document

from src.models.story import DocumentFormat, RawDocument
from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_BLANK_LINE_RUN = re.compile(r"\n[ \t\r\f\v]*(?:\n[ \t\r\f\v]*)+")


class TextExtractor:
    """Converts raw document bytes to plain text."""

    def extract(self, document: RawDocument) -> str:
        """Extract the text of *document* according to its declared format.

        Raises
        ------
        ExtractionError
            If the bytes cannot be parsed as ``document.declared_format``.
        """
        if document.declared_format == DocumentFormat.DOCX:
            text = self._extract_docx(document)
        elif document.declared_format == DocumentFormat.PDF:
            text = self._extract_pdf(document)
        else:
            text = self._decode_text(document)

        logger.info(
            "document_extracted",
            document=document.name,
            format=document.declared_format.value,
            chars=len(text),
        )
        return text

    async def extract_async(self, document: RawDocument) -> str:
        """Run :meth:`extract` in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.extract, document)

    def load_file(self, path: str | Path) -> RawDocument:
        """Read *path* into a RawDocument, inferring the format from its suffix."""
        file_path = Path(path)
        try:
            content = file_path.read_bytes()
        except OSError as exc:
            raise ExtractionError(
                message=f"Cannot read {file_path}: {exc}",
                document_name=file_path.name,
            ) from exc
        return RawDocument(
            content=content,
            declared_format=DocumentFormat.from_filename(file_path.name),
            name=file_path.name,
        )

    def extract_file(self, path: str | Path) -> str:
        return self.extract(self.load_file(path))

    # ------------------------------------------------------------------
    # Format readers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_docx(document: RawDocument) -> str:
        try:
            doc = Document(io.BytesIO(document.content))
            paragraphs = [p.text for p in doc.paragraphs]
            for table in doc.tables:
                for row in table.rows:
                    for cell in row.cells:
                        paragraphs.extend(p.text for p in cell.paragraphs)
        except Exception as exc:
            raise ExtractionError(
                message=f"{document.name} is not a readable .docx file: {exc}",
                provider_name="python-docx",
                document_name=document.name,
            ) from exc
        return "\n".join(paragraphs)

    @staticmethod
    def _extract_pdf(document: RawDocument) -> str:
        try:
            pdf = fitz.open(stream=document.content, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(
                message=f"{document.name} is not a readable PDF: {exc}",
                provider_name="pymupdf",
                document_name=document.name,
            ) from exc

        pages: list[str] = []
        try:
            for page in pdf:
                pages.append(page.get_text("text"))
        except Exception as exc:
            raise ExtractionError(
                message=f"Failed reading pages of {document.name}: {exc}",
                provider_name="pymupdf",
                document_name=document.name,
            ) from exc
        finally:
            pdf.close()

        if not any(p.strip() for p in pages):
            logger.warning("pdf_no_text_extracted", document=document.name)

        return _BLANK_LINE_RUN.sub("\n", "\n".join(pages)).strip()

    @staticmethod
    def _decode_text(document: RawDocument) -> str:
        try:
            return document.content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ExtractionError(
                message=f"{document.name} is not valid UTF-8 text: {exc}",
                document_name=document.name,
            ) from exc

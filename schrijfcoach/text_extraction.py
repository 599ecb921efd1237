from __future__ import annotations
from typing import List, Optional
import io

import pdfplumber
from docx import Document

PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class DocumentError(ValueError):
    """Raised when an uploaded document cannot be read."""


def detect_kind(filename: Optional[str], content_type: Optional[str]) -> str:
    name = (filename or "").lower()
    if content_type == PDF_TYPE or name.endswith(".pdf"):
        return "pdf"
    if content_type == DOCX_TYPE or name.endswith(".docx"):
        return "docx"
    return "text"


def extract_pdf_text(data: bytes) -> str:
    pages: List[str] = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            text = (page.extract_text() or "").strip()
            if text:
                pages.append(text)
    return "\n\n".join(pages)


def extract_docx_text(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                lines.append(" | ".join(cells))
    return "\n".join(lines)


def extract_document_text(filename: Optional[str], content_type: Optional[str], data: bytes) -> str:
    """Extract raw text from an uploaded PDF, DOCX or plain-text document."""
    kind = detect_kind(filename, content_type)

    if kind == "pdf":
        try:
            return extract_pdf_text(data)
        except Exception as e:
            print(f"[ERROR] PDF parsing error for {filename}: {e}")
            raise DocumentError("Fout bij het lezen van het PDF bestand") from e

    if kind == "docx":
        try:
            return extract_docx_text(data)
        except Exception as e:
            print(f"[ERROR] DOCX parsing error for {filename}: {e}")
            raise DocumentError("Fout bij het lezen van het Word bestand") from e

    if b"\x00" in data:
        raise DocumentError("Onbekend bestandsformaat. Gebruik PDF of DOCX.")
    return data.decode("utf-8", errors="replace")

import io

import pytest
from docx import Document
from reportlab.pdfgen import canvas

from schrijfcoach.text_extraction import DOCX_TYPE, PDF_TYPE, DocumentError, detect_kind, extract_document_text


def make_pdf(text: str) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer)
    pdf.drawString(72, 720, text)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def make_docx() -> bytes:
    doc = Document()
    doc.add_paragraph("Schrijf een betoog over klimaat.")
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Inleiding"
    table.cell(0, 1).text = "150 woorden"
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def test_detect_kind():
    assert detect_kind("opdracht.PDF", None) == "pdf"
    assert detect_kind("upload", PDF_TYPE) == "pdf"
    assert detect_kind("opdracht.docx", "application/octet-stream") == "docx"
    assert detect_kind("notes.txt", "text/plain") == "text"


def test_extracts_pdf_text():
    text = extract_document_text("opdracht.pdf", PDF_TYPE, make_pdf("Hallo wereld"))
    assert "Hallo wereld" in text


def test_extracts_docx_paragraphs_and_tables():
    text = extract_document_text("opdracht.docx", DOCX_TYPE, make_docx())
    assert "Schrijf een betoog over klimaat." in text
    assert "Inleiding | 150 woorden" in text


def test_plain_text_is_decoded():
    assert extract_document_text("a.txt", "text/plain", "Eén opdracht".encode("utf-8")) == "Eén opdracht"


def test_binary_garbage_is_rejected():
    with pytest.raises(DocumentError, match="Onbekend bestandsformaat"):
        extract_document_text("a.bin", "application/octet-stream", b"\x00\x01\x02")


def test_broken_pdf():
    with pytest.raises(DocumentError, match="Fout bij het lezen van het PDF bestand"):
        extract_document_text("kapot.pdf", PDF_TYPE, b"dit is geen pdf")


def test_broken_docx():
    with pytest.raises(DocumentError, match="Fout bij het lezen van het Word bestand"):
        extract_document_text("kapot.docx", DOCX_TYPE, b"dit is geen docx")

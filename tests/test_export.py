import io

import pytest
from docx import Document
from reportlab.platypus import Paragraph, Table

from schrijfcoach.export import (
    build_export_data,
    content_disposition,
    create_pdf_document,
    create_word_document,
    export_filename,
    format_date,
    html_to_flowables,
    inline_markup,
    _pdf_styles,
)
from schrijfcoach.markdown_html import convert_markdown_to_html

SECTION_HTML = (
    "<h1>Subkop</h1>"
    "<p>Dit is <strong>vet</strong> en <em>schuin</em>.</p>"
    "<ul><li>punt een</li><li>punt twee</li></ul>"
    "<ol><li>stap een</li></ol>"
    "<table><tr><th>Naam</th><th>Rol</th></tr><tr><td>An</td><td>Docent</td></tr></table>"
)


def export_data(assignment, **contents):
    return build_export_data(assignment, contents, {"name": "Sam"})


def test_build_export_data_pairs_sections_with_content(assignment):
    data = export_data(assignment, inleiding="<p>Hoi</p>")
    assert [s["id"] for s in data["sections"]] == ["inleiding", "slot"]
    assert data["sections"][0]["content"] == "<p>Hoi</p>"
    assert data["sections"][1]["content"] == ""
    assert data["student"] == {"name": "Sam"}


def test_word_document_structure(assignment):
    raw = create_word_document(export_data(assignment, inleiding=SECTION_HTML, slot="Gewoon tekst zonder tags"))
    doc = Document(io.BytesIO(raw))
    paragraphs = [(p.style.name, p.text) for p in doc.paragraphs]

    assert ("Title", "Betoog over klimaat") in paragraphs
    texts = [text for _, text in paragraphs]
    assert "Docent: Mevr. Jansen" in texts
    assert "Student: Sam" in texts
    assert "Niveau: VWO" in texts
    assert "Datum: 05-03-2024" in texts
    assert ("Heading 1", "Inleiding") in paragraphs
    assert ("Heading 2", "Subkop") in paragraphs
    assert ("List Bullet", "punt een") in paragraphs
    assert ("List Bullet", "punt twee") in paragraphs
    assert ("List Number", "stap een") in paragraphs
    assert "Gewoon tekst zonder tags" in texts

    body = next(p for p in doc.paragraphs if p.text == "Dit is vet en schuin.")
    assert [run.text for run in body.runs if run.bold] == ["vet"]
    assert [run.text for run in body.runs if run.italic] == ["schuin"]

    assert len(doc.tables) == 1
    assert doc.tables[0].cell(0, 0).text == "Naam"
    assert doc.tables[0].cell(1, 1).text == "Docent"


def test_pdf_document(assignment):
    raw = create_pdf_document(export_data(assignment, inleiding=SECTION_HTML + "<p>R&amp;D &lt;3</p>"))
    assert raw.startswith(b"%PDF")
    assert len(raw) > 1000


def test_inline_markup_escapes_text():
    assert inline_markup("<strong>vet</strong> &amp; <em>x</em>") == "<b>vet</b> &amp; <i>x</i>"
    assert inline_markup("a<br>b") == "a<br/>b"


def test_export_filename_uses_assignment_title(assignment):
    data = build_export_data(assignment, {})
    assert export_filename(data, "docx") == "Betoog over klimaat.docx"
    data["metadata"]["assignmentTitle"] = "Essay/Klimaat"
    assert export_filename(data, "pdf") == "Essay_Klimaat.pdf"


def test_content_disposition_encodes_unicode():
    header = content_disposition("Opdracht ë.docx")
    assert header.startswith('attachment; filename="Opdracht _.docx"')
    assert "filename*=UTF-8''Opdracht%20%C3%AB.docx" in header


def test_format_date():
    assert format_date("2024-03-05T10:00:00.000Z") == "05-03-2024"
    assert format_date("gisteren") == "gisteren"
    assert format_date(None) is None


TABLE_HTML = "<table><tr><th>Naam</th><th>Rol</th></tr><tr><td>An</td><td>Docent</td></tr></table>"
WRAPPED_TABLE_HTML = f"<div>Intro {TABLE_HTML}<strong>Slot</strong></div>"
MARKDOWN_TABLE = "Zie de tabel:\n| Naam | Rol |\n|---|---|\n| An | Docent |"


def word_document(assignment, html):
    return Document(io.BytesIO(create_word_document(export_data(assignment, inleiding=html))))


def test_word_table_inside_container(assignment):
    doc = word_document(assignment, WRAPPED_TABLE_HTML)
    texts = [p.text for p in doc.paragraphs]

    assert len(doc.tables) == 1
    assert doc.tables[0].cell(1, 0).text == "An"
    assert "Intro " in texts
    assert "Slot" in texts
    assert not any("NaamRol" in text for text in texts)
    assert texts.index("Intro ") < texts.index("Slot")


def test_word_table_from_markdown_paragraph(assignment):
    html = convert_markdown_to_html(MARKDOWN_TABLE)
    assert html.startswith("<p")

    doc = word_document(assignment, html)
    assert len(doc.tables) == 1
    assert [cell.text for cell in doc.tables[0].rows[0].cells] == ["Naam", "Rol"]
    assert any(p.text.startswith("Zie de tabel:") for p in doc.paragraphs)
    assert not any("Naam" in p.text for p in doc.paragraphs)


def test_pdf_table_inside_container():
    flowables = html_to_flowables(WRAPPED_TABLE_HTML, _pdf_styles())
    kinds = [type(f).__name__ for f in flowables]
    assert kinds == ["Paragraph", "Table", "Spacer", "Paragraph"]
    assert isinstance(flowables[1], Table)


def test_pdf_table_from_markdown_paragraph():
    flowables = html_to_flowables(convert_markdown_to_html(MARKDOWN_TABLE), _pdf_styles())
    assert sum(isinstance(f, Table) for f in flowables) == 1
    assert isinstance(flowables[0], Paragraph)
    assert flowables[0].text.startswith("Zie de tabel:")


def test_build_export_data_rejects_malformed_sections(assignment):
    assignment["sections"].append("geen sectie")
    with pytest.raises(ValueError, match="Ongeldige sectie data"):
        build_export_data(assignment, {})

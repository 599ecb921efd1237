"""Render a student's workspace (assignment plus section HTML) as Word or PDF."""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Union
import io
import re
from datetime import datetime
from urllib.parse import quote
from xml.sax.saxutils import escape

from bs4 import BeautifulSoup, Comment, NavigableString, PageElement, Tag
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BODY_SIZE = Pt(12)
HEADING_LEVELS = {"h1": 2, "h2": 3, "h3": 4}


def build_export_data(assignment: Dict[str, Any], section_contents: Dict[str, str],
                      student: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Pair every assignment section with the student's HTML for it."""
    sections = assignment.get("sections") or []
    if not isinstance(sections, list) or not all(isinstance(section, dict) for section in sections):
        raise ValueError("Ongeldige sectie data")

    return {
        "title": assignment.get("title") or "",
        "sections": [
            {
                "id": section.get("id"),
                "title": section.get("title") or "",
                "content": section_contents.get(section.get("id"), "") or "",
            }
            for section in sections
        ],
        "metadata": assignment.get("metadata") or {},
        "student": student,
    }


def document_title(export_data: Dict[str, Any]) -> str:
    metadata = export_data.get("metadata") or {}
    return metadata.get("assignmentTitle") or export_data.get("title") or "Opdracht"


def export_filename(export_data: Dict[str, Any], extension: str) -> str:
    name = re.sub(r'[\\/:*?"<>|\r\n]+', "_", document_title(export_data)).strip() or "Opdracht"
    return f"{name}.{extension}"


def content_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def format_date(value: Optional[str]) -> Optional[str]:
    """ISO timestamp to the Dutch dd-mm-yyyy notation."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%d-%m-%Y")


def header_lines(export_data: Dict[str, Any]) -> List[str]:
    metadata = export_data.get("metadata") or {}
    student = export_data.get("student") or {}
    lines = []
    if metadata.get("teacherName"):
        lines.append(f"Docent: {metadata['teacherName']}")
    if student.get("name"):
        lines.append(f"Student: {student['name']}")
    level_info = metadata.get("educationLevelInfo") or {}
    if level_info.get("name"):
        lines.append(f"Niveau: {level_info['name']}")
    created = format_date(metadata.get("createdAt"))
    if created:
        lines.append(f"Datum: {created}")
    return lines


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def table_rows(table: Tag) -> List[List[str]]:
    rows = []
    for tr in table.find_all("tr"):
        cells = [cell.get_text() for cell in tr.find_all(["th", "td"])]
        if cells:
            rows.append(cells)
    return rows


def split_at_tables(node: Tag) -> List[Union[Tag, List[PageElement]]]:
    """Children of a block as runs of inline content, with every child that is or holds a table kept apart."""
    parts: List[Union[Tag, List[PageElement]]] = []
    run: List[PageElement] = []
    for child in node.children:
        if isinstance(child, Tag) and (child.name == "table" or child.find("table") is not None):
            if run:
                parts.append(run)
                run = []
            parts.append(child)
        else:
            run.append(child)
    if run:
        parts.append(run)
    return parts


def run_text(nodes: List[PageElement]) -> str:
    return "".join(
        node.get_text() if isinstance(node, Tag) else str(node)
        for node in nodes
        if not isinstance(node, Comment)
    )


# ============================================================================
# Word
# ============================================================================

def _add_run(paragraph, text: str, bold: bool = False, italic: bool = False, underline: bool = False):
    run = paragraph.add_run(text)
    run.font.size = BODY_SIZE
    run.bold = bold or None
    run.italic = italic or None
    run.underline = underline or None
    return run


def _runs_from(paragraph, children) -> None:
    for child in children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            if child.strip():
                _add_run(paragraph, str(child))
            continue

        name = child.name.lower()
        if name in ("strong", "b"):
            _add_run(paragraph, child.get_text(), bold=True)
        elif name in ("em", "i"):
            _add_run(paragraph, child.get_text(), italic=True)
        elif name == "u":
            _add_run(paragraph, child.get_text(), underline=True)
        elif name == "br":
            _add_run(paragraph, "").add_break()
        elif name == "p":
            if child.contents:
                html_to_runs(paragraph, child)
                _add_run(paragraph, "").add_break()
        else:
            html_to_runs(paragraph, child)


def html_to_runs(paragraph, html: Union[str, Tag]) -> None:
    """Append the inline content of an HTML fragment to a python-docx paragraph as formatted runs."""
    node = parse_html(html) if isinstance(html, str) else html
    _runs_from(paragraph, node.children)


def _add_word_table(doc, rows: List[List[str]]) -> None:
    table = doc.add_table(rows=len(rows), cols=max(len(row) for row in rows))
    table.style = "Table Grid"
    for row_index, row in enumerate(rows):
        for col_index, text in enumerate(row):
            table.cell(row_index, col_index).text = text
    doc.add_paragraph("")


def _add_block(doc, node: PageElement) -> None:
    if isinstance(node, Comment):
        return
    if isinstance(node, NavigableString):
        if node.strip():
            _add_run(doc.add_paragraph(), str(node).strip())
        return

    name = node.name.lower()
    if name in HEADING_LEVELS:
        doc.add_heading(node.get_text(), level=HEADING_LEVELS[name])
    elif name in ("ul", "ol"):
        style = "List Bullet" if name == "ul" else "List Number"
        for li in node.find_all("li"):
            html_to_runs(doc.add_paragraph(style=style), li)
    elif name == "table":
        rows = table_rows(node)
        if rows:
            _add_word_table(doc, rows)
    elif node.find("table") is not None:
        # Editor-inserted tables often sit inside a <div> or <p>
        for part in split_at_tables(node):
            if isinstance(part, Tag):
                _add_block(doc, part)
            elif run_text(part).strip():
                _runs_from(doc.add_paragraph(), part)
    elif node.get_text().strip():
        html_to_runs(doc.add_paragraph(), node)


def add_html_content(doc, html: str) -> None:
    """Block-level walk over a section's HTML, appending headings, lists, tables and paragraphs."""
    for node in parse_html(html).children:
        _add_block(doc, node)



def create_word_document(export_data: Dict[str, Any]) -> bytes:
    doc = Document()

    title = doc.add_heading(document_title(export_data), 0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for line in header_lines(export_data):
        paragraph = doc.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _add_run(paragraph, line)

    for section in export_data.get("sections", []):
        doc.add_heading(section.get("title") or "", level=1)
        add_html_content(doc, section.get("content") or "")

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


# ============================================================================
# PDF
# ============================================================================

def _markup_from(children) -> str:
    parts = []
    for child in children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            parts.append(escape(str(child)))
            continue
        name = child.name.lower()
        if name in ("strong", "b"):
            parts.append(f"<b>{inline_markup(child)}</b>")
        elif name in ("em", "i"):
            parts.append(f"<i>{inline_markup(child)}</i>")
        elif name == "u":
            parts.append(f"<u>{inline_markup(child)}</u>")
        elif name == "br":
            parts.append("<br/>")
        elif name == "p":
            parts.append(inline_markup(child) + "<br/>")
        else:
            parts.append(inline_markup(child))
    return "".join(parts).strip()


def inline_markup(node: Union[str, Tag]) -> str:
    """HTML inline content as reportlab paragraph markup (<b>, <i>, <u>, <br/>)."""
    node = parse_html(node) if isinstance(node, str) else node
    return _markup_from(node.children)


def _pdf_styles() -> Dict[str, ParagraphStyle]:
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ExportTitle",
            parent=styles["Title"],
            fontSize=20,
            alignment=TA_CENTER,
            spaceAfter=20,
        ),
        "meta": ParagraphStyle(
            "ExportMeta",
            parent=styles["Normal"],
            alignment=TA_CENTER,
            spaceAfter=6,
        ),
        "section": ParagraphStyle(
            "ExportSection",
            parent=styles["Heading1"],
            textColor=HexColor("#1a2332"),
            spaceBefore=18,
            spaceAfter=10,
        ),
        "h1": styles["Heading2"],
        "h2": styles["Heading3"],
        "h3": styles["Heading4"],
        "body": ParagraphStyle(
            "ExportBody",
            parent=styles["BodyText"],
            fontSize=11,
            leading=16,
            spaceAfter=8,
        ),
    }


def _pdf_table(rows: List[List[str]], style: ParagraphStyle) -> Table:
    width = max(len(row) for row in rows)
    data = [[Paragraph(escape(cell), style) for cell in row] + [""] * (width - len(row)) for row in rows]
    table = Table(data, hAlign="LEFT")
    table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, HexColor("#9ca3af")),
        ("BACKGROUND", (0, 0), (-1, 0), HexColor("#f3f4f6")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def _block_flowables(node: PageElement, styles: Dict[str, ParagraphStyle]) -> List[Any]:
    if isinstance(node, Comment):
        return []
    if isinstance(node, NavigableString):
        return [Paragraph(escape(str(node).strip()), styles["body"])] if node.strip() else []

    name = node.name.lower()
    if name in HEADING_LEVELS:
        return [Paragraph(escape(node.get_text()), styles[name])]
    if name in ("ul", "ol"):
        items = []
        for index, li in enumerate(node.find_all("li"), start=1):
            marker = "•" if name == "ul" else f"{index}."
            items.append(Paragraph(f"{marker} {inline_markup(li)}", styles["body"]))
        return items
    if name == "table":
        rows = table_rows(node)
        return [_pdf_table(rows, styles["body"]), Spacer(1, 0.15 * inch)] if rows else []
    if node.find("table") is not None:
        flowables: List[Any] = []
        for part in split_at_tables(node):
            if isinstance(part, Tag):
                flowables.extend(_block_flowables(part, styles))
            elif run_text(part).strip():
                flowables.append(Paragraph(_markup_from(part), styles["body"]))
        return flowables
    if node.get_text().strip():
        return [Paragraph(inline_markup(node), styles["body"])]
    return []


def html_to_flowables(html: str, styles: Dict[str, ParagraphStyle]) -> List[Any]:
    story: List[Any] = []
    for node in parse_html(html).children:
        story.extend(_block_flowables(node, styles))
    return story


def create_pdf_document(export_data: Dict[str, Any]) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            rightMargin=72, leftMargin=72,
                            topMargin=72, bottomMargin=36,
                            title=document_title(export_data))
    styles = _pdf_styles()

    story: List[Any] = [Paragraph(escape(document_title(export_data)), styles["title"])]
    for line in header_lines(export_data):
        story.append(Paragraph(escape(line), styles["meta"]))
    story.append(Spacer(1, 0.3 * inch))

    for section in export_data.get("sections", []):
        story.append(Paragraph(escape(section.get("title") or ""), styles["section"]))
        story.extend(html_to_flowables(section.get("content") or "", styles))

    doc.build(story)
    return buffer.getvalue()

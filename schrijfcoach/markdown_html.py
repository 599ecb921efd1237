"""Markdown to the HTML dialect of the workspace editor (Tailwind classes)."""
from __future__ import annotations
from typing import List
import re

H1 = '<h1 class="text-2xl font-bold mt-8 mb-4">\\1</h1>'
H2 = '<h2 class="text-xl font-bold mt-6 mb-3">\\1</h2>'
H3 = '<h3 class="text-lg font-semibold mt-4 mb-2">\\1</h3>'
BLOCKQUOTE = '<blockquote class="border-l-4 border-gray-300 pl-4 italic text-gray-600 my-2">\\1</blockquote>'
UL_OPEN = '<ul class="list-disc pl-6 my-2">'
TABLE_OPEN = '<table class="border-collapse border border-gray-300 w-full my-4">'
TH_CLASS = "border border-gray-300 px-3 py-2 bg-gray-100 font-semibold text-left"
TD_CLASS = "border border-gray-300 px-3 py-2"

_BLOCK_PREFIXES = ("<h", "<ul", "<blockquote", "<table")


def markdown_to_html(markdown: str) -> str:
    if not markdown:
        return ""

    html = re.sub(r"^### (.*$)", H3, markdown, flags=re.IGNORECASE | re.MULTILINE)
    html = re.sub(r"^## (.*$)", H2, html, flags=re.IGNORECASE | re.MULTILINE)
    html = re.sub(r"^# (.*$)", H1, html, flags=re.IGNORECASE | re.MULTILINE)
    html = re.sub(r"^> (.*$)", BLOCKQUOTE, html, flags=re.IGNORECASE | re.MULTILINE)

    processed: List[str] = []
    in_list = False
    for raw_line in html.split("\n"):
        line = raw_line.strip()
        if line.startswith("- "):
            if not in_list:
                processed.append(UL_OPEN)
                in_list = True
            processed.append(f'<li class="mb-1">{line[2:]}</li>')
        else:
            if in_list:
                processed.append("</ul>")
                in_list = False
            processed.append(line)
    if in_list:
        processed.append("</ul>")
    html = "\n".join(processed)

    html = re.sub(r"\*\*(.*?)\*\*", r'<strong class="font-bold">\1</strong>', html)
    html = re.sub(r"\*(.*?)\*", r'<em class="italic">\1</em>', html)

    blocks = []
    for paragraph in html.split("\n\n"):
        trimmed = paragraph.strip()
        if not trimmed:
            continue
        if trimmed.startswith(_BLOCK_PREFIXES):
            blocks.append(trimmed)
            continue
        with_breaks = trimmed.replace("\n", "<br>")
        if not with_breaks.startswith("<"):
            with_breaks = f'<p class="mb-3">{with_breaks}</p>'
        blocks.append(with_breaks)

    return "\n".join(blocks)


def _table_html(table_lines: List[str]) -> str:
    html = TABLE_OPEN + "\n"
    for index, table_line in enumerate(table_lines):
        cells = [cell.strip() for cell in table_line.split("|") if cell.strip()]
        if not cells:
            continue
        html += "  <tr>\n"
        for cell in cells:
            if index == 0:
                html += f'    <th class="{TH_CLASS}">{cell}</th>\n'
            else:
                html += f'    <td class="{TD_CLASS}">{cell}</td>\n'
        html += "  </tr>\n"
    return html + "</table>"


def convert_markdown_tables(content: str) -> str:
    """Replace runs of pipe-delimited lines with HTML tables; the first row becomes the header."""
    lines = content.split("\n")
    result: List[str] = []
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if "|" in line and "---" not in line:
            table_lines = []
            j = i
            while j < len(lines) and "|" in lines[j]:
                table_line = lines[j].strip()
                if "---" not in table_line:
                    table_lines.append(table_line)
                j += 1
            if table_lines:
                result.append(_table_html(table_lines))
                i = j
                continue
        result.append(lines[i])
        i += 1
    return "\n".join(result)


def convert_markdown_to_html(markdown: str) -> str:
    return markdown_to_html(convert_markdown_tables(markdown or ""))

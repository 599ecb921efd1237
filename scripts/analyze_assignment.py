"""Analyze a local assignment document with Gemini and store the result as JSON.

Usage:
    python scripts/analyze_assignment.py opdracht.pdf --level VWO --teacher "J. de Vries"
"""
from __future__ import annotations
import argparse
import json
import re
import sys
from pathlib import Path
from typing import List, Optional

from schrijfcoach import config
from schrijfcoach.analysis import analyze_document
from schrijfcoach.text_extraction import DocumentError, extract_document_text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Split an assignment document into sections with Gemini.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("documents", nargs="+", type=Path, help="PDF, DOCX or text files")
    parser.add_argument("--level", default=config.DEFAULT_EDUCATION_LEVEL,
                        help="Education level code (PO, VMBO, HAVO, VWO, MBO, HBO, UNI)")
    parser.add_argument("--teacher", default="", help="Teacher name")
    parser.add_argument("--title", default="", help="Assignment title")
    parser.add_argument("--instructions", default="", help="Extra instructions for the analysis")
    parser.add_argument("--out-dir", type=Path, default=config.OUTPUT_DIR / "assignments",
                        help="Directory for the resulting JSON")
    return parser


def read_documents(paths: List[Path]) -> str:
    texts = []
    for path in paths:
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")
        print(f"[INFO] Reading {path}")
        text = extract_document_text(path.name, None, path.read_bytes())
        if len(paths) > 1:
            text = f"=== Document: {path.name} ===\n{text}"
        texts.append(text)
    return "\n\n".join(texts)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not config.get_gemini_api_key():
        print("[ERROR] Please set GEMINI_API_KEY in your environment.")
        return 1

    try:
        document_text = read_documents(args.documents)
    except (FileNotFoundError, DocumentError) as e:
        print(f"[ERROR] {e}")
        return 1

    if not document_text.strip():
        print("[ERROR] Geen tekst gevonden in het document")
        return 1

    try:
        assignment = analyze_document(
            document_text[:config.MAX_TEXT_LENGTH],
            education_level=args.level,
            teacher_name=args.teacher,
            assignment_title=args.title,
            instructions=args.instructions,
        )
    except Exception as e:
        print(f"[ERROR] Failed to analyze {', '.join(str(p) for p in args.documents)}: {e}")
        return 1

    name = args.title or assignment.get("title") or args.documents[0].stem
    out_path = args.out_dir / f"{re.sub(r'[^a-zA-Z0-9]+', '_', name).strip('_') or 'assignment'}.json"
    args.out_dir.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(assignment, indent=2, ensure_ascii=False), encoding="utf-8")

    print(f"[INFO] {len(assignment.get('sections', []))} sections found")
    for section in assignment.get("sections", []):
        print(f"  - {section['id']}: {section['title']}")
    print(f"[INFO] Saved analysis to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

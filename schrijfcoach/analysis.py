"""Turn an assignment document into a structured Assignment via Gemini.

Shared by the upload route and the command line script.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from . import config
from .api_helpers import utc_timestamp
from .gemini_service import GeminiService
from .llm_json import parse_llm_json
from .prompts import build_analysis_prompt


def normalize_sections(sections: Any) -> List[Dict[str, Any]]:
    """Drop malformed entries and make sure every section has an id and an order."""
    normalized = []
    for section in sections if isinstance(sections, list) else []:
        if not isinstance(section, dict) or not section.get("title"):
            continue
        section = dict(section)
        section["id"] = str(section.get("id") or f"section-{len(normalized) + 1}")
        section["order"] = len(normalized)
        normalized.append(section)
    return normalized


def apply_custom_sections(generated: List[Dict[str, Any]],
                          custom_sections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Teacher-approved structure wins; generated descriptions and questions fill the gaps."""
    by_id = {section["id"]: section for section in generated}
    merged = []
    for custom in normalize_sections(custom_sections):
        section = dict(by_id.get(custom["id"], {}))
        section.update({key: value for key, value in custom.items() if value not in (None, "", [])})
        merged.append(section)
    return merged


def analyze_document(
    document_text: str,
    education_level: Optional[str] = None,
    teacher_name: str = "",
    assignment_title: str = "",
    instructions: str = "",
    custom_sections: Optional[List[Dict[str, Any]]] = None,
    formative_assessment: Optional[Dict[str, Any]] = None,
    service: Optional[GeminiService] = None,
) -> Dict[str, Any]:
    """Blocking: one Gemini call plus tolerant JSON parsing.

    With ``custom_sections`` (the teacher's final structure) the returned
    sections follow that structure instead of the model's proposal.
    """
    education_level = education_level or config.DEFAULT_EDUCATION_LEVEL
    level_info = config.get_education_level(education_level)
    prompt = build_analysis_prompt(
        document_text,
        level_info,
        teacher_name=teacher_name,
        assignment_title=assignment_title,
        instructions=instructions,
        custom_sections=custom_sections,
    )

    service = service or GeminiService.get_instance()
    response_text = service.generate_content(prompt)
    print(f"[DEBUG] Gemini analysis response: {len(response_text)} chars")
    analysis = parse_llm_json(response_text)

    sections = normalize_sections(analysis.get("sections"))
    if custom_sections:
        sections = apply_custom_sections(sections, custom_sections)

    metadata: Dict[str, Any] = {
        "educationLevel": education_level,
        "educationLevelInfo": level_info,
        "teacherName": teacher_name or None,
        "assignmentTitle": assignment_title or None,
        "instructions": instructions or None,
        "createdAt": utc_timestamp(),
    }
    if formative_assessment is not None:
        metadata["formativeAssessment"] = formative_assessment

    return {**analysis, "sections": sections, "metadata": metadata}

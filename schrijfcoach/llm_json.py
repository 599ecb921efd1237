from __future__ import annotations
from typing import Any, Dict, Optional
import json
import re

CODE_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def fix_incomplete_json(json_str: str) -> str:
    """Try to fix incomplete JSON by closing strings and brackets and dropping trailing commas."""
    if not json_str or not json_str.strip():
        return "{}"

    json_str = json_str.strip()
    if not json_str.startswith("{"):
        json_str = "{" + json_str

    # Close a dangling string first, otherwise the added brackets end up inside it
    unescaped_quotes = json_str.count('"') - json_str.count('\\"')
    if unescaped_quotes % 2 != 0:
        json_str += '"'

    json_str = json_str.rstrip()
    if json_str.endswith(","):
        json_str = json_str[:-1]
    if json_str.endswith(":"):
        json_str += " null"

    # Close open structures innermost first
    stack = []
    in_string = False
    escaped = False
    for char in json_str:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            stack.append(char)
        elif char in "}]" and stack:
            stack.pop()
    for opener in reversed(stack):
        json_str += "}" if opener == "{" else "]"

    # Remove trailing commas before closing brackets/braces
    json_str = re.sub(r",\s*}", "}", json_str)
    json_str = re.sub(r",\s*]", "]", json_str)

    return json_str


def _try_load(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_llm_json(response_text: str) -> Dict[str, Any]:
    """Parse a JSON object out of an LLM reply.

    Tries, in order: the whole reply, the contents of a ```json fence, the
    outermost {...} span, and finally a repaired version of that span.
    """
    text = (response_text or "").strip()

    parsed = _try_load(text)
    if isinstance(parsed, dict):
        return parsed

    fence_match = CODE_FENCE_RE.search(text)
    if fence_match:
        parsed = _try_load(fence_match.group(1))
        if isinstance(parsed, dict):
            return parsed

    start = text.find("{")
    if start == -1:
        print(f"[ERROR] No JSON found in response: {text[:500]}")
        raise ValueError("Kon geen geldige JSON vinden in de response")

    end = text.rfind("}")
    candidate = text[start:end + 1] if end > start else text[start:]
    candidate = candidate.replace("```json", "").replace("```", "").strip()
    parsed = _try_load(candidate)
    if isinstance(parsed, dict):
        return parsed

    repaired = fix_incomplete_json(text[start:].replace("```json", "").replace("```", ""))
    parsed = _try_load(repaired)
    if isinstance(parsed, dict):
        print("[WARNING] Used fallback JSON repair for LLM response")
        return parsed

    print(f"[ERROR] JSON parse error after cleaning. Attempted to parse: {candidate[:500]}")
    raise ValueError("Ongeldige JSON in de response")

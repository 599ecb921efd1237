"""Split a generated whole-assignment example back into per-section texts.

The model is asked to start every section with ``# <exact title>``, but it
does not always comply. Parsing therefore falls back from header matching to
keyword density and finally to a proportional distribution of paragraphs.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import re

SIMILARITY_THRESHOLD = 0.6
MIN_MAPPED_RATIO = 0.6
MIN_SECTION_CHARS = 50
MIN_SENTENCE_CHARS = 20
MIN_SECTION_WEIGHT = 100

HEADER_PATTERNS = [
    re.compile(r"^#{1,3}\s+(.+?)$", re.MULTILINE),  # Markdown headers
    re.compile(r"^(.+?)\n[=-]{3,}$", re.MULTILINE),  # Underlined headers
    re.compile(r"^\d+\.\s+(.+?)$", re.MULTILINE),  # Numbered headers
]

DUTCH_STOP_WORDS = {
    "de", "het", "een", "en", "van", "voor", "in", "op", "met", "aan",
    "bij", "te", "is", "zijn", "was", "waren", "heeft", "hebben", "had", "hadden",
}


def levenshtein_distance(str1: str, str2: str) -> int:
    previous = list(range(len(str1) + 1))
    for i in range(1, len(str2) + 1):
        current = [i] + [0] * len(str1)
        for j in range(1, len(str1) + 1):
            if str2[i - 1] == str1[j - 1]:
                current[j] = previous[j - 1]
            else:
                current[j] = min(previous[j - 1], current[j - 1], previous[j]) + 1
        previous = current
    return previous[len(str1)]


def calculate_text_similarity(text1: str, text2: str) -> float:
    """1.0 for identical strings, 0.0 for completely different ones."""
    longer, shorter = (text1, text2) if len(text1) > len(text2) else (text2, text1)
    if not longer:
        return 1.0
    return (len(longer) - levenshtein_distance(longer, shorter)) / len(longer)


def extract_keywords(title: str, description: Optional[str] = None) -> List[str]:
    text = f"{title} {description or ''}".lower()
    return [word for word in re.findall(r"\b\w{3,}\b", text) if word not in DUTCH_STOP_WORDS]


def find_content_boundaries(content: str, keywords: List[str]) -> Tuple[int, int]:
    """Character span of the run of sentences with the highest keyword density.

    Returns (-1, -1) when there are no keywords or no keyword occurs.
    """
    if not keywords:
        return -1, -1

    sentences = [s for s in re.split(r"[.!?]+", content) if len(s.strip()) > MIN_SENTENCE_CHARS]
    patterns = [re.compile(re.escape(keyword)) for keyword in keywords]
    best_start, best_end = -1, -1
    max_density = 0.0

    for start in range(len(sentences)):
        for end in range(start + 1, len(sentences) + 1):
            span = " ".join(sentences[start:end]).lower()
            keyword_count = sum(len(pattern.findall(span)) for pattern in patterns)
            density = keyword_count / (end - start)
            if density > max_density:
                max_density = density
                best_start = content.find(sentences[start])
                best_end = content.find(sentences[end]) if end < len(sentences) else len(content)

    return best_start, best_end


def parse_word_count(word_count: Any) -> Optional[int]:
    """Read a word-count hint such as 300, "300" or "200-300 woorden" (first number wins)."""
    if isinstance(word_count, bool) or word_count is None:
        return None
    if isinstance(word_count, (int, float)):
        return int(word_count) if word_count > 0 else None
    match = re.search(r"\d+", str(word_count))
    if not match:
        return None
    value = int(match.group(0))
    return value or None


def _js_round(value: float) -> int:
    return int(value + 0.5)


def parse_by_headers(content: str, sections: List[Dict[str, Any]]) -> Dict[str, str]:
    best_match: Dict[str, str] = {}
    best_score = 0

    for pattern in HEADER_PATTERNS:
        matches = list(pattern.finditer(content))
        if not matches:
            continue

        parsed: Dict[str, str] = {}
        score = 0
        for index, match in enumerate(matches):
            header_text = match.group(1).strip().lower()
            end_pos = matches[index + 1].start() if index + 1 < len(matches) else len(content)
            body = content[match.end():end_pos].strip()

            section = next(
                (
                    s for s in sections
                    if calculate_text_similarity(header_text, (s.get("title") or "").lower()) > SIMILARITY_THRESHOLD
                ),
                None,
            )
            if section is not None and len(body) > MIN_SECTION_CHARS:
                parsed[section["id"]] = body
                score += len(body)
                print(f"[DEBUG] Matched header \"{match.group(1).strip()}\" -> \"{section.get('title')}\"")

        if score > best_score:
            best_match = parsed
            best_score = score

    return best_match if len(best_match) >= len(sections) * MIN_MAPPED_RATIO else {}


def parse_by_keywords(content: str, sections: List[Dict[str, Any]]) -> Dict[str, str]:
    segments: Dict[str, str] = {}
    for section in sections:
        keywords = extract_keywords(section.get("title") or "", section.get("description"))
        start, end = find_content_boundaries(content, keywords)
        if start == -1 or end == -1:
            continue
        body = content[start:end].strip()
        if len(body) > MIN_SECTION_CHARS:
            segments[section["id"]] = body
    return segments


def distribute_content(content: str, sections: List[Dict[str, Any]]) -> Dict[str, str]:
    """Hand out paragraphs (or sentences) to sections in order, weighted by word count."""
    cleaned = re.sub(r"^#+\s+.*$", "", content, flags=re.MULTILINE)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned).strip()

    sentences = [s for s in re.split(r"[.!?]+\s+", cleaned) if len(s.strip()) > MIN_SENTENCE_CHARS]
    paragraphs = [p for p in re.split(r"\n\s*\n", cleaned) if len(p.strip()) > MIN_SECTION_CHARS]
    use_paragraphs = len(paragraphs) >= len(sections)
    chunks = paragraphs if use_paragraphs else sentences
    print(f"[DEBUG] Distributing {len(chunks)} {'paragraphs' if use_paragraphs else 'sentences'}")

    total_words = len(" ".join(chunks).split()) if chunks else 0
    even_share = total_words // len(sections)
    weights = [
        max(parse_word_count(section.get("wordCount")) or even_share, MIN_SECTION_WEIGHT)
        for section in sections
    ]
    total_weight = sum(weights)

    distribution: Dict[str, str] = {}
    chunk_index = 0
    for section, weight in zip(sections, weights):
        target_chunks = max(1, _js_round(len(chunks) * weight / total_weight))
        section_chunks = chunks[chunk_index:chunk_index + target_chunks]
        chunk_index += target_chunks
        if section_chunks:
            distribution[section["id"]] = "\n\n".join(section_chunks).strip()
    return distribution


def parse_sections(content: str, sections: List[Dict[str, Any]]) -> Dict[str, str]:
    """Map section ids to their part of a whole-assignment example."""
    sections = [s for s in sections if s.get("id")]
    if not sections or not content or not content.strip():
        return {}

    required = len(sections) * MIN_MAPPED_RATIO
    parsed = parse_by_headers(content, sections)

    if len(parsed) < required:
        print("[INFO] Header parsing insufficient, trying keyword-based parsing...")
        keyword_result = parse_by_keywords(content, sections)
        if len(keyword_result) > len(parsed):
            parsed = keyword_result

    if len(parsed) < required:
        print("[INFO] Keyword parsing insufficient, distributing content proportionally...")
        parsed = distribute_content(content, sections)

    print(f"[INFO] Parsed {len(parsed)}/{len(sections)} sections")
    return parsed

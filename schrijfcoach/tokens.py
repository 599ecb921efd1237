"""Rough token estimates for the editor's usage meter (about 4 characters per token)."""
from __future__ import annotations
import math
import re

DEFAULT_MAX_TOKENS = 20000


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    clean_text = re.sub(r"\s+", " ", text.strip())
    return math.ceil(len(clean_text) / 4)


def format_token_count(count: int, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
    percentage = count / max_tokens * 100
    return f"{count:,} / {max_tokens:,} tokens ({percentage:.1f}%)"


def token_count_level(count: int, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
    percentage = count / max_tokens * 100
    if percentage >= 100:
        return "over"
    if percentage >= 90:
        return "high"
    if percentage >= 75:
        return "warning"
    return "ok"


def is_within_token_limit(count: int, max_tokens: int = DEFAULT_MAX_TOKENS) -> bool:
    return count <= max_tokens

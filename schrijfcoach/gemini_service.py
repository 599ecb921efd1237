from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional
import base64
import io
import re

import google.generativeai as genai
from PIL import Image

from . import config

# Gemini's web search tool; older/newer models reject it with one of these messages
GROUNDING_TOOL = "google_search_retrieval"
GROUNDING_UNSUPPORTED_MARKERS = (
    "Search Grounding is not supported",
    "google_search_retrieval is not supported",
)

FINISH_REASONS = {
    0: "FINISH_REASON_UNSPECIFIED",
    2: "MAX_TOKENS",
    3: "SAFETY",
    4: "RECITATION",
    5: "OTHER",
}

MAX_IMAGE_WIDTH = 1200


def is_grounding_unsupported(error: Exception) -> bool:
    message = str(error)
    return any(marker in message for marker in GROUNDING_UNSUPPORTED_MARKERS)


def image_part(image_data: str) -> Image.Image:
    """Decode a base64 image (optionally a data URL) into a PIL image for Gemini.

    Wide images are downscaled to 1200px to keep requests small.
    """
    payload = re.sub(r"^data:image/\w+;base64,", "", image_data)
    image_bytes = base64.b64decode(payload)
    pil_image = Image.open(io.BytesIO(image_bytes))

    if pil_image.width > MAX_IMAGE_WIDTH:
        ratio = MAX_IMAGE_WIDTH / pil_image.width
        new_height = int(pil_image.height * ratio)
        pil_image = pil_image.resize((MAX_IMAGE_WIDTH, new_height), Image.Resampling.LANCZOS)

    return pil_image


def extract_response_text(response: Any) -> str:
    """Get the text out of a Gemini response, trying response.text then candidate parts."""
    error_details: List[str] = []

    prompt_feedback = getattr(response, "prompt_feedback", None)
    if prompt_feedback and getattr(prompt_feedback, "block_reason", None):
        error_details.append(f"Prompt blocked: {prompt_feedback.block_reason}")

    candidates = getattr(response, "candidates", None) or []
    if candidates:
        finish_reason = getattr(candidates[0], "finish_reason", None)
        if finish_reason and finish_reason != 1:  # 1 = STOP
            reason = FINISH_REASONS.get(finish_reason, f"Unknown ({finish_reason})")
            error_details.append(f"Finish reason: {reason}")

    try:
        text = response.text
        if text:
            return text
    except (ValueError, AttributeError) as e:
        error_details.append(f"response.text failed: {type(e).__name__}: {e}")

    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        texts = [part.text for part in parts if getattr(part, "text", None)]
        if texts:
            return "".join(texts)

    message = "Could not extract text from Gemini response"
    if error_details:
        message += f". Details: {'; '.join(error_details)}"
    raise ValueError(message)


def extract_grounding(response: Any) -> Dict[str, Any]:
    """Summarize web-search grounding metadata, if the model attached any."""
    candidates = getattr(response, "candidates", None) or []
    metadata = getattr(candidates[0], "grounding_metadata", None) if candidates else None

    search_queries = list(getattr(metadata, "web_search_queries", None) or []) if metadata else []
    chunks = list(getattr(metadata, "grounding_chunks", None) or []) if metadata else []

    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        sources.append({
            "title": getattr(web, "title", None) or "Unknown",
            "uri": getattr(web, "uri", None) or "",
            "snippet": getattr(web, "snippet", None) or "",
        })

    return {
        "isGrounded": bool(metadata),
        "searchQueries": search_queries,
        "sources": sources,
    }


def chunk_text(chunk: Any) -> str:
    try:
        return chunk.text or ""
    except (ValueError, AttributeError):
        # Chunks without parts (e.g. a final safety/usage chunk) carry no text
        return ""


class GeminiService:
    """Lazily configured, process-wide Gemini client handle."""

    _instance: Optional["GeminiService"] = None

    def __init__(self, api_key: str, model_name: str = config.GEMINI_MODEL,
                 timeout_seconds: float = config.GEMINI_TIMEOUT_SECONDS):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds

    @classmethod
    def get_instance(cls) -> "GeminiService":
        if cls._instance is None:
            api_key = config.get_gemini_api_key()
            if not api_key:
                raise RuntimeError("GEMINI_API_KEY is not configured")
            cls._instance = cls(api_key)
        return cls._instance

    @staticmethod
    def is_configured() -> bool:
        return bool(config.get_gemini_api_key())

    @staticmethod
    def get_key_status() -> Dict[str, Any]:
        key = config.get_gemini_api_key()
        status: Dict[str, Any] = {"configured": bool(key)}
        if key:
            status["keyLength"] = len(key)
        return status

    def get_model(self, model_name: Optional[str] = None) -> genai.GenerativeModel:
        return genai.GenerativeModel(model_name or self.model_name)

    def _request_options(self) -> Dict[str, Any]:
        return {"timeout": self.timeout_seconds}

    def generate_content(self, prompt: Any, model_name: Optional[str] = None,
                         generation_config: Optional[Dict[str, Any]] = None) -> str:
        model = self.get_model(model_name)
        response = model.generate_content(
            prompt,
            generation_config=generation_config,
            request_options=self._request_options(),
        )
        return extract_response_text(response)

    def generate_with_history(self, messages: List[Dict[str, Any]], message: str,
                              model_name: Optional[str] = None) -> str:
        """Replay earlier user/model turns and send one new message."""
        model = self.get_model(model_name)
        chat = model.start_chat(history=messages)
        response = chat.send_message(message, request_options=self._request_options())
        return extract_response_text(response)

    def generate_with_fallback(self, contents: List[Dict[str, Any]], use_grounding: bool = True,
                               model_name: Optional[str] = None) -> Any:
        """Send contents, with web-search grounding when asked.

        When the model rejects the search tool the request is resent once
        without it. Returns the raw response so callers can read grounding data.
        """
        model = self.get_model(model_name)
        if not use_grounding:
            return model.generate_content(contents, request_options=self._request_options())
        try:
            return model.generate_content(
                contents, tools=GROUNDING_TOOL, request_options=self._request_options()
            )
        except Exception as e:
            if not is_grounding_unsupported(e):
                raise
            print("[INFO] Grounding not supported, retrying without grounding...")
            return model.generate_content(contents, request_options=self._request_options())

    def stream_with_fallback(self, contents: List[Dict[str, Any]], use_grounding: bool = True,
                             model_name: Optional[str] = None) -> Iterator[str]:
        """Streaming variant of generate_with_fallback, yielding text pieces."""
        model = self.get_model(model_name)
        kwargs: Dict[str, Any] = {"stream": True, "request_options": self._request_options()}
        if use_grounding:
            try:
                response = model.generate_content(contents, tools=GROUNDING_TOOL, **kwargs)
            except Exception as e:
                if not is_grounding_unsupported(e):
                    raise
                print("[INFO] Grounding not supported, retrying streaming without grounding...")
                response = model.generate_content(contents, **kwargs)
        else:
            response = model.generate_content(contents, **kwargs)

        for chunk in response:
            text = chunk_text(chunk)
            if text:
                yield text


def build_user_contents(message: str, images: Optional[List[str]] = None,
                        history: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, Any]]:
    """Gemini contents for a chat turn: prior history plus the new user message and images."""
    contents: List[Dict[str, Any]] = []
    for entry in history or []:
        role = "model" if entry.get("role") == "assistant" else "user"
        contents.append({"role": role, "parts": [entry.get("content", "")]})

    parts: List[Any] = [message]
    for image_data in images or []:
        parts.append(image_part(image_data))
    contents.append({"role": "user", "parts": parts})
    return contents

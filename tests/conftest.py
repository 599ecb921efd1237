from __future__ import annotations
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from schrijfcoach import config
from schrijfcoach.gemini_service import GeminiService
from schrijfcoach.main import app


class FakeResponse:
    def __init__(self, text: str):
        self.text = text
        self.candidates: List[Any] = []
        self.prompt_feedback = None


class FakeGemini:
    """Stands in for GeminiService; records prompts and returns canned replies."""

    def __init__(self):
        self.reply = "Wat is volgens jou de kern van je betoog?"
        self.stream_tokens = ["Hallo", " daar"]
        self.error: Optional[Exception] = None
        self.prompts: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def generate_content(self, prompt, model_name=None, generation_config=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply

    def generate_with_fallback(self, contents, use_grounding=True, model_name=None):
        self.calls.append({"contents": contents, "use_grounding": use_grounding})
        if self.error:
            raise self.error
        return FakeResponse(self.reply)

    def stream_with_fallback(self, contents, use_grounding=True, model_name=None):
        self.calls.append({"contents": contents, "use_grounding": use_grounding})
        for token in self.stream_tokens:
            yield token
        if self.error:
            raise self.error


@pytest.fixture
def fake_gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(GeminiService, "_instance", fake)
    return fake


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setattr(GeminiService, "_instance", None)


@pytest.fixture
def workspaces_dir(tmp_path, monkeypatch):
    directory = tmp_path / "workspaces"
    monkeypatch.setattr(config, "WORKSPACES_DIR", directory)
    return directory


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def assignment() -> Dict[str, Any]:
    return {
        "title": "Betoog klimaat",
        "objective": "Schrijf een betoog over klimaatbeleid",
        "sections": [
            {"id": "inleiding", "title": "Inleiding", "description": "Introduceer het onderwerp",
             "guideQuestions": ["Wat is je standpunt?"], "wordCount": "150"},
            {"id": "slot", "title": "Slot", "description": "Vat je argumenten samen"},
        ],
        "generalGuidance": "Onderbouw elk argument",
        "metadata": {
            "educationLevel": "VWO",
            "educationLevelInfo": {"name": "VWO", "ageRange": "12-18 jaar", "complexity": "hoog niveau"},
            "teacherName": "Mevr. Jansen",
            "assignmentTitle": "Betoog over klimaat",
            "createdAt": "2024-03-05T10:00:00.000Z",
        },
    }

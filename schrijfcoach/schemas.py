"""Request/response shapes shared by the API routes.

The workspace client sends loosely shaped JSON (sections without ids, learning
goals as strings or as records), so most nested context is accepted as-is and
only the fields the routes depend on are validated strictly.
"""
from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import MAX_MESSAGE_LENGTH, MAX_TEXT_LENGTH, MAX_TITLE_LENGTH


class _Loose(BaseModel):
    model_config = ConfigDict(extra="allow")


class Section(_Loose):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    guideQuestions: Optional[List[str]] = None
    wordCount: Optional[Union[str, int, float]] = None
    order: Optional[int] = Field(default=None, ge=0)


class SectionContext(_Loose):
    """A section as the workspace sends it in chat/example requests; every field optional."""
    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    guideQuestions: Optional[List[str]] = None
    wordCount: Optional[Union[str, int, float]] = None
    content: Optional[str] = None


class SectionWithContent(Section):
    content: str = Field(default="", max_length=MAX_TEXT_LENGTH)


class AssignmentContext(_Loose):
    title: str = ""
    objective: Optional[str] = None
    description: Optional[str] = None
    generalGuidance: Optional[str] = None
    instructions: Optional[str] = None
    sections: Optional[List[SectionContext]] = None


class ChatHistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    image: Optional[str] = None
    images: Optional[List[str]] = None
    useGrounding: bool = True
    history: Optional[List[ChatHistoryMessage]] = None


class ReflectionContext(_Loose):
    sectionId: Optional[str] = None
    reflection: str = ""
    exampleContent: str = ""


class SocraticChatRequest(_Loose):
    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    currentSection: Optional[SectionContext] = None
    currentContent: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    sectionProgress: Optional[List[Dict[str, Any]]] = None
    assignmentContext: AssignmentContext = Field(default_factory=AssignmentContext)
    metadata: Optional[Dict[str, Any]] = None
    learningGoals: Optional[Dict[str, Any]] = None
    reflectionContext: Optional[ReflectionContext] = None
    formativeState: Optional[Dict[str, Any]] = None
    isQuizMode: bool = False
    chatHistory: Optional[List[Dict[str, Any]]] = None


class GenerateExampleRequest(_Loose):
    scope: Literal["current-section", "all-sections"]
    sectionId: Optional[str] = None
    currentSection: Optional[SectionContext] = None
    allSections: Optional[List[SectionContext]] = None
    assignmentContext: AssignmentContext
    metadata: Optional[Dict[str, Any]] = None
    formativeAssessment: Optional[Dict[str, Any]] = None
    customContext: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)


class GenerateQuizRequest(_Loose):
    scope: Literal["current-section", "all-sections"]
    targetSections: List[SectionWithContent] = Field(min_length=1)
    assignmentContext: AssignmentContext = Field(default_factory=AssignmentContext)
    metadata: Optional[Dict[str, Any]] = None
    formativeState: Optional[Dict[str, Any]] = None


class StudentInfo(_Loose):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = None


class ExportRequest(_Loose):
    assignmentData: Dict[str, Any]
    sectionContents: Dict[str, str] = Field(default_factory=dict)
    student: Optional[StudentInfo] = None


class WorkspaceExportRequest(_Loose):
    studentName: str = Field(min_length=1, max_length=200)
    studentEmail: Optional[str] = None
    assignmentData: Dict[str, Any]
    sectionContents: Dict[str, str] = Field(default_factory=dict)
    chatHistory: Optional[List[Dict[str, Any]]] = None
    formativeState: Optional[Dict[str, Any]] = None


class MarkdownRequest(BaseModel):
    markdown: str = Field(default="", max_length=MAX_TEXT_LENGTH)


class TokenEstimateRequest(BaseModel):
    text: str = Field(default="", max_length=MAX_TEXT_LENGTH * 4)
    maxTokens: int = Field(default=20000, gt=0)

from __future__ import annotations
from typing import Any, Dict, List, Optional
import json

from fastapi import Body, FastAPI, File, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.datastructures import UploadFile as StarletteUploadFile

from . import config
from .analysis import analyze_document
from .api_helpers import (
    ApiError,
    create_success_response,
    log_api_request,
    read_upload,
    register_error_handlers,
    sanitize_input,
    utc_timestamp,
    validate_gemini_key,
    validate_request,
    validate_text_length,
    with_timeout,
)
from .export import (
    build_export_data,
    content_disposition,
    create_pdf_document,
    create_word_document,
    export_filename,
)
from .gemini_service import GeminiService, build_user_contents, extract_grounding, extract_response_text
from .markdown_html import convert_markdown_to_html
from .prompts import (
    ALL_SECTIONS,
    CURRENT_SECTION,
    build_example_prompt,
    build_quiz_prompt,
    build_socratic_prompt,
    count_numbered_questions,
)
from .schemas import (
    ChatRequest,
    ExportRequest,
    GenerateExampleRequest,
    GenerateQuizRequest,
    MarkdownRequest,
    SocraticChatRequest,
    StudentInfo,
    TokenEstimateRequest,
    WorkspaceExportRequest,
)
from .section_parser import parse_sections
from .text_extraction import DocumentError, extract_document_text
from .tokens import estimate_tokens, format_token_count, is_within_token_limit, token_count_level
from .workspace_storage import (
    export_filename as work_export_filename,
    export_student_work,
    list_snapshots,
    load_snapshot,
    login_student,
    parse_imported_file,
    save_snapshot,
)

app = FastAPI(title="Schrijfcoach", version=config.APP_VERSION)

# CORS configuration - allow requests from frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

register_error_handlers(app)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


async def run_gemini(func, *args):
    """Run a blocking Gemini SDK call off the event loop, bounded by the configured timeout."""
    return await with_timeout(
        run_in_threadpool(func, *args),
        config.GEMINI_TIMEOUT_SECONDS,
        f"Gemini request timed out after {config.GEMINI_TIMEOUT_SECONDS:g}s",
    )


def sse(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


@app.get("/api/health")
async def health() -> JSONResponse:
    log_api_request("/api/health", "GET")
    return create_success_response({
        "status": "healthy",
        "geminiConfigured": GeminiService.is_configured(),
        "version": config.APP_VERSION,
    })


# ============================================================================
# Assignment analysis
# ============================================================================

def collect_uploads(form) -> List[StarletteUploadFile]:
    """The upload form sends either `file` or `file_0` .. `file_{fileCount-1}`."""
    uploads = []
    single = form.get("file")
    if isinstance(single, StarletteUploadFile):
        uploads.append(single)

    try:
        file_count = int(form.get("fileCount") or 0)
    except ValueError:
        raise ApiError(400, "Validation failed", "fileCount: must be a number")
    for index in range(file_count):
        upload = form.get(f"file_{index}")
        if isinstance(upload, StarletteUploadFile):
            uploads.append(upload)
    return uploads


def parse_json_field(form, field: str) -> Optional[Any]:
    raw = form.get(field)
    if not raw or not isinstance(raw, str):
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ApiError(400, "Validation failed", f"{field}: invalid JSON ({e.msg})")


@app.post("/api/analyze-assignment")
async def analyze_assignment(request: Request) -> Dict[str, Any]:
    log_api_request("/api/analyze-assignment", "POST")
    validate_gemini_key()

    form = await request.form()
    instructions = str(form.get("instructions") or "").strip()
    education_level = str(form.get("educationLevel") or config.DEFAULT_EDUCATION_LEVEL)
    teacher_name = str(form.get("teacherName") or "").strip()
    assignment_title = str(form.get("assignmentTitle") or "").strip()
    mode = str(form.get("mode") or "preview")
    custom_sections = parse_json_field(form, "customSections")
    formative_assessment = parse_json_field(form, "formativeAssessment")

    length_error = validate_text_length(instructions, 0, config.MAX_TEXT_LENGTH, "instructions")
    if length_error:
        raise ApiError(400, "Validation failed", length_error)

    uploads = collect_uploads(form)
    if not uploads:
        raise ApiError(400, "Geen bestand geüpload")

    texts = []
    for upload in uploads:
        data = await read_upload(upload)
        print(f"[INFO] Extracting text from {upload.filename} ({upload.content_type}, {len(data)} bytes)")
        try:
            text = await run_in_threadpool(extract_document_text, upload.filename, upload.content_type, data)
        except DocumentError as e:
            raise ApiError(400, str(e))
        if len(uploads) > 1:
            text = f"=== Document: {upload.filename} ===\n{text}"
        texts.append(text)

    document_text = "\n\n".join(texts)
    if not document_text.strip():
        raise ApiError(400, "Geen tekst gevonden in het document")
    if len(document_text) > config.MAX_TEXT_LENGTH:
        print(f"[WARNING] Document text truncated from {len(document_text)} to {config.MAX_TEXT_LENGTH} chars")
        document_text = document_text[:config.MAX_TEXT_LENGTH]

    use_custom = mode == "final" and isinstance(custom_sections, list) and bool(custom_sections)

    try:
        return await run_gemini(
            analyze_document,
            document_text,
            education_level,
            teacher_name,
            assignment_title,
            instructions,
            custom_sections if use_custom else None,
            formative_assessment,
        )
    except Exception as e:
        print(f"[ERROR] Error analyzing assignment: {type(e).__name__}: {e}")
        raise ApiError(500, "Er ging iets mis bij het analyseren van de opdracht", str(e))


# ============================================================================
# Chat
# ============================================================================

def chat_contents(body: ChatRequest) -> List[Dict[str, Any]]:
    images = body.images or ([body.image] if body.image else [])
    history = [entry.model_dump() for entry in body.history or []]
    try:
        return build_user_contents(body.message, images, history)
    except (ValueError, OSError) as e:
        raise ApiError(400, "Ongeldige afbeelding", str(e))


@app.post("/api/chat")
async def chat(request: Dict[str, Any] = Body(...)) -> JSONResponse:
    log_api_request("/api/chat", "POST")
    validate_gemini_key()
    body = validate_request(ChatRequest, request)
    contents = chat_contents(body)

    try:
        service = GeminiService.get_instance()
        response = await run_gemini(service.generate_with_fallback, contents, body.useGrounding)
        text = extract_response_text(response)
    except Exception as e:
        print(f"[ERROR] Chat API error: {type(e).__name__}: {e}")
        raise ApiError(500, "Er is een fout opgetreden bij het verwerken van je bericht", str(e))

    return create_success_response({"response": text, "grounding": extract_grounding(response)})


@app.post("/api/chat-stream")
async def chat_stream(request: Dict[str, Any] = Body(...)) -> StreamingResponse:
    log_api_request("/api/chat-stream", "POST")
    validate_gemini_key()
    body = validate_request(ChatRequest, request)
    contents = chat_contents(body)
    service = GeminiService.get_instance()

    def event_stream():
        try:
            for token in service.stream_with_fallback(contents, body.useGrounding):
                yield sse({"token": token, "timestamp": utc_timestamp()})
            yield sse({"done": True})
        except Exception as e:
            print(f"[ERROR] Streaming error: {type(e).__name__}: {e}")
            yield sse({"error": True, "message": str(e) or "Streaming error occurred"})

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@app.post("/api/socratic-chat")
async def socratic_chat(request: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    log_api_request("/api/socratic-chat", "POST")
    validate_gemini_key()
    body = validate_request(SocraticChatRequest, request)

    prompt = build_socratic_prompt(
        message=body.message,
        current_section=body.currentSection.model_dump(exclude_none=True) if body.currentSection else {},
        current_content=body.currentContent or "",
        section_progress=body.sectionProgress,
        assignment_context=body.assignmentContext.model_dump(exclude_none=True),
        metadata=body.metadata,
        learning_goals=body.learningGoals,
        reflection=body.reflectionContext.model_dump() if body.reflectionContext else None,
        formative_state=body.formativeState,
        chat_history=body.chatHistory,
        quiz_mode=body.isQuizMode,
    )

    try:
        service = GeminiService.get_instance()
        text = await run_gemini(service.generate_content, prompt)
    except Exception as e:
        print(f"[ERROR] Socratic chat error: {type(e).__name__}: {e}")
        raise ApiError(500, "Er ging iets mis met de chat", str(e))

    return {"response": text}


# ============================================================================
# Examples and quizzes
# ============================================================================

@app.post("/api/generate-example")
async def generate_example(request: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    log_api_request("/api/generate-example", "POST")
    if not request.get("scope") or not request.get("assignmentContext"):
        raise ApiError(400, "Scope en assignment context zijn vereist")
    validate_gemini_key()
    body = validate_request(GenerateExampleRequest, request)

    assignment_context = body.assignmentContext.model_dump(exclude_none=True)
    context_sections = assignment_context.get("sections") or []

    current_section = body.currentSection.model_dump(exclude_none=True) if body.currentSection else None
    if current_section is None and body.sectionId:
        current_section = next((s for s in context_sections if s.get("id") == body.sectionId), None)

    if body.allSections:
        all_sections = [section.model_dump(exclude_none=True) for section in body.allSections]
    else:
        all_sections = context_sections

    if body.scope == CURRENT_SECTION and current_section is None:
        raise ApiError(400, "Validation failed", "currentSection: required for scope current-section")
    if body.scope == ALL_SECTIONS and not all_sections:
        raise ApiError(400, "Validation failed", "allSections: required for scope all-sections")

    prompt = build_example_prompt(
        body.scope,
        assignment_context,
        current_section=current_section,
        all_sections=all_sections,
        metadata=body.metadata,
        formative_assessment=body.formativeAssessment or (body.metadata or {}).get("formativeAssessment"),
        custom_context=body.customContext,
    )

    try:
        service = GeminiService.get_instance()
        example_content = await run_gemini(service.generate_content, prompt)
    except Exception as e:
        print(f"[ERROR] Example generation error: {type(e).__name__}: {e}")
        raise ApiError(500, "Er ging iets mis bij het genereren van het voorbeeld", str(e))

    print(f"[INFO] Generated example: {len(example_content)} chars")
    if body.scope == ALL_SECTIONS:
        examples = await run_in_threadpool(parse_sections, example_content, all_sections)
    else:
        section_id = (current_section or {}).get("id") or body.sectionId or "unknown-section"
        examples = {section_id: example_content.strip()}

    return {
        "success": True,
        "scope": body.scope,
        "examples": examples,
        "metadata": {
            "generatedAt": utc_timestamp(),
            "wordCount": len(example_content) / 5,
            "sectionsGenerated": len(examples),
        },
    }


@app.post("/api/generate-quiz")
async def generate_quiz(request: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    log_api_request("/api/generate-quiz", "POST")
    if not request.get("scope") or not request.get("targetSections"):
        raise ApiError(400, "Scope en target sections zijn vereist")
    validate_gemini_key()
    body = validate_request(GenerateQuizRequest, request)

    target_sections = [section.model_dump(exclude_none=True) for section in body.targetSections]
    prompt = build_quiz_prompt(
        body.scope,
        target_sections,
        assignment_context=body.assignmentContext.model_dump(exclude_none=True),
        metadata=body.metadata,
        formative_state=body.formativeState,
    )

    try:
        service = GeminiService.get_instance()
        questions = await run_gemini(service.generate_content, prompt)
    except Exception as e:
        print(f"[ERROR] Quiz generation error: {type(e).__name__}: {e}")
        raise ApiError(500, "Er ging iets mis bij het genereren van de quiz", str(e))

    return {
        "success": True,
        "scope": body.scope,
        "initialQuestions": questions,
        "targetSections": [section["id"] for section in target_sections],
        "metadata": {
            "generatedAt": utc_timestamp(),
            "questionsCount": count_numbered_questions(questions),
            "scope": body.scope,
        },
    }


@app.post("/api/markdown-to-html")
async def markdown_to_html(request: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    body = validate_request(MarkdownRequest, request)
    return {"html": convert_markdown_to_html(body.markdown)}


# ============================================================================
# Export
# ============================================================================

async def _export(request: Dict[str, Any], renderer, extension: str, media_type: str) -> Response:
    body = validate_request(ExportRequest, request)
    try:
        export_data = build_export_data(
            body.assignmentData,
            body.sectionContents,
            body.student.model_dump(exclude_none=True) if body.student else None,
        )
    except ValueError as e:
        raise ApiError(400, str(e))
    try:
        content = await run_in_threadpool(renderer, export_data)
    except Exception as e:
        print(f"[ERROR] Export to {extension} failed: {type(e).__name__}: {e}")
        raise ApiError(500, "Kon document niet exporteren", str(e))

    filename = export_filename(export_data, extension)
    return Response(content=content, media_type=media_type,
                    headers={"Content-Disposition": content_disposition(filename)})


@app.post("/api/export/word")
async def export_word(request: Dict[str, Any] = Body(...)) -> Response:
    log_api_request("/api/export/word", "POST")
    return await _export(request, create_word_document, "docx", DOCX_MEDIA_TYPE)


@app.post("/api/export/pdf")
async def export_pdf(request: Dict[str, Any] = Body(...)) -> Response:
    log_api_request("/api/export/pdf", "POST")
    return await _export(request, create_pdf_document, "pdf", "application/pdf")


# ============================================================================
# Workspace save / load
# ============================================================================

def work_from_request(request: Dict[str, Any]) -> Dict[str, Any]:
    body = validate_request(WorkspaceExportRequest, request)
    return export_student_work(
        body.studentName.strip(),
        body.studentEmail,
        body.assignmentData,
        body.sectionContents,
        chat_history=body.chatHistory,
        formative_state=body.formativeState,
    )


@app.post("/api/workspace/export")
async def workspace_export(request: Dict[str, Any] = Body(...)) -> JSONResponse:
    log_api_request("/api/workspace/export", "POST")
    work = work_from_request(request)
    filename = work_export_filename(work["studentName"], work["assignmentTitle"])
    return JSONResponse(content=work, headers={"Content-Disposition": content_disposition(filename)})


@app.post("/api/workspace/import")
async def workspace_import(file: UploadFile = File(...)) -> Dict[str, Any]:
    log_api_request("/api/workspace/import", "POST")
    raw = await read_upload(file)
    try:
        data = parse_imported_file(raw)
    except ValueError as e:
        raise ApiError(400, str(e))
    return {"success": True, "data": data}


@app.post("/api/workspace/save")
async def workspace_save(request: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    log_api_request("/api/workspace/save", "POST")
    work = request if "version" in request else work_from_request(request)
    try:
        path = save_snapshot(work)
    except ValueError as e:
        raise ApiError(400, str(e))
    except OSError as e:
        print(f"[ERROR] Could not save workspace: {e}")
        raise ApiError(500, "Kon werk niet opslaan", str(e))
    return {"success": True, "file": path.name, "lastSaved": work.get("lastSaved")}


@app.get("/api/workspace/load")
async def workspace_load(
    studentName: str = Query(..., min_length=1),
    assignmentTitle: str = Query(""),
) -> Dict[str, Any]:
    log_api_request("/api/workspace/load", "GET", studentName=studentName)
    work = load_snapshot(studentName, assignmentTitle)
    if work is None:
        raise ApiError(404, "Geen opgeslagen werk gevonden")
    return {"success": True, "data": work}


@app.get("/api/workspace/list")
async def workspace_list() -> Dict[str, Any]:
    return {"workspaces": list_snapshots()}


@app.post("/api/student/login")
async def student_login(request: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    log_api_request("/api/student/login", "POST")
    body = validate_request(StudentInfo, request)
    if not body.name.strip():
        raise ApiError(400, "Validation failed", "name: Naam is verplicht")
    return login_student(sanitize_input(body.name), body.email)


@app.post("/api/estimate-tokens")
async def estimate_tokens_route(request: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    body = validate_request(TokenEstimateRequest, request)
    tokens = estimate_tokens(body.text)
    return {
        "tokens": tokens,
        "formatted": format_token_count(tokens, body.maxTokens),
        "level": token_count_level(tokens, body.maxTokens),
        "withinLimit": is_within_token_limit(tokens, body.maxTokens),
    }

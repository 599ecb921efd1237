from __future__ import annotations
from typing import Any, Dict, Optional, Type, TypeVar
import asyncio
from datetime import datetime, timezone

from fastapi import HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config

T = TypeVar("T", bound=BaseModel)


class ApiError(HTTPException):
    """HTTP error carrying a user-facing (Dutch) message and optional technical details."""

    def __init__(self, status_code: int, message: str, details: Optional[str] = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_body(message: str, details: Optional[str] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": message,
        "details": details,
        "timestamp": utc_timestamp(),
    }


def create_error_response(message: str, details: Optional[str] = None, status: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status, content=error_body(message, details))


def create_success_response(data: Any, status: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"success": True, "data": data, "timestamp": utc_timestamp()},
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return create_error_response(exc.message, exc.details, exc.status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return create_error_response(str(exc.detail), None, exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = ", ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return create_error_response("Validation failed", details, 400)


def register_error_handlers(app) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


def validate_gemini_key() -> None:
    if not config.get_gemini_api_key():
        print("[ERROR] GEMINI_API_KEY is not set in environment variables")
        raise ApiError(
            500,
            "API configuratie fout. Controleer de environment variabelen.",
            "GEMINI_API_KEY ontbreekt",
        )


def validate_request(schema: Type[T], data: Any) -> T:
    """Validate a decoded JSON body against a pydantic model, raising a 400 on failure."""
    if not isinstance(data, dict):
        raise ApiError(400, "Invalid JSON in request body", "Request body must be a JSON object")
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        details = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ApiError(400, "Validation failed", ", ".join(details))


def validate_text_length(
    text: str,
    min_length: int = 1,
    max_length: int = config.MAX_TEXT_LENGTH,
    field_name: str = "text",
) -> Optional[str]:
    if len(text) < min_length:
        return f"{field_name} moet minimaal {min_length} karakters bevatten"
    if len(text) > max_length:
        return f"{field_name} mag maximaal {max_length} karakters bevatten"
    return None


_SANITIZE_ENTITIES = (
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)


def sanitize_input(value: str) -> str:
    """Basic XSS escaping of user input. Ampersands are left alone."""
    for char, entity in _SANITIZE_ENTITIES:
        value = value.replace(char, entity)
    return value.strip()


async def with_timeout(awaitable, timeout_seconds: float = 30, timeout_message: str = "Operation timed out"):
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise TimeoutError(timeout_message)


def log_api_request(endpoint: str, method: str, **info: Any) -> None:
    if config.is_development():
        print(f"[API] {method} {endpoint}", {"timestamp": utc_timestamp(), **info})


async def read_upload(
    file: Optional[UploadFile],
    field_name: str = "file",
    allowed_types: Optional[list] = None,
    max_size_bytes: int = config.MAX_UPLOAD_BYTES,
) -> bytes:
    """Read an uploaded file after presence, type and size checks."""
    if file is None or not getattr(file, "filename", None):
        raise ApiError(400, f"Missing file in field: {field_name}", "No file uploaded")

    if allowed_types and file.content_type not in allowed_types:
        raise ApiError(400, "Invalid file type", f"Allowed types: {', '.join(allowed_types)}")

    data = await file.read()
    if len(data) > max_size_bytes:
        raise ApiError(
            413,
            "File too large",
            f"Maximum size: {round(max_size_bytes / 1024 / 1024)}MB",
        )
    return data

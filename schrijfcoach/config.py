from __future__ import annotations
from typing import Dict, Any, List, Optional
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

APP_ENV = os.environ.get("APP_ENV", "production")
APP_VERSION = os.environ.get("APP_VERSION", "0.1.0")

GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "models/gemini-2.5-flash")
GEMINI_TIMEOUT_SECONDS = float(os.environ.get("GEMINI_TIMEOUT_SECONDS", "30"))

# Request limits
MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
MAX_TEXT_LENGTH = 100000
MAX_MESSAGE_LENGTH = 32000
MAX_TITLE_LENGTH = 500

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]

# Saved workspace snapshots live here
OUTPUT_DIR = Path(os.environ.get("OUTPUT_DIR", Path.cwd() / "output_static"))
WORKSPACES_DIR = OUTPUT_DIR / "workspaces"

EDUCATION_LEVELS_PATH = Path(__file__).parent / "data" / "education_levels.yml"
DEFAULT_EDUCATION_LEVEL = "HAVO"


def get_gemini_api_key() -> Optional[str]:
    """Current GEMINI_API_KEY from the environment, or None when unset."""
    return os.environ.get("GEMINI_API_KEY") or None


def get_cors_origins() -> List[str]:
    raw = os.environ.get("CORS_ORIGINS", "")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or list(DEFAULT_CORS_ORIGINS)


def is_development() -> bool:
    return APP_ENV == "development"


_EDUCATION_LEVELS: Optional[Dict[str, Dict[str, Any]]] = None


def load_education_levels() -> Dict[str, Dict[str, Any]]:
    """Load the education level table (PO .. UNI) from the bundled YAML file."""
    global _EDUCATION_LEVELS
    if _EDUCATION_LEVELS is None:
        with open(EDUCATION_LEVELS_PATH, "r", encoding="utf-8") as f:
            _EDUCATION_LEVELS = yaml.safe_load(f) or {}
    return _EDUCATION_LEVELS


def get_education_level(code: Optional[str]) -> Dict[str, Any]:
    """Return name/ageRange/complexity for a level code, falling back to HAVO."""
    levels = load_education_levels()
    level = levels.get((code or "").upper()) or levels[DEFAULT_EDUCATION_LEVEL]
    return {
        "name": level["name"],
        "ageRange": level["ageRange"],
        "complexity": level["complexity"],
    }


def get_level_approach(code: Optional[str]) -> List[str]:
    levels = load_education_levels()
    level = levels.get((code or "").upper())
    if not level:
        return []
    return list(level.get("approach", []))

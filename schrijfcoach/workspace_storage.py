from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import hashlib
import json
import re
from datetime import date, datetime, timezone
from pathlib import Path

from . import config

STUDENT_WORK_VERSION = "1.0"
REQUIRED_FIELDS = ["studentName", "assignmentData", "sectionContents", "lastSaved", "version"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def load_json_file(file_path: Path, default: Any = None) -> Any:
    """Load JSON file with error handling. Returns default if file doesn't exist or fails to load."""
    if not file_path.exists():
        return default
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"[ERROR] Error loading JSON file {file_path}: {e}")
        return default


def save_json_file(file_path: Path, data: Any, create_dirs: bool = True) -> bool:
    """Save data to JSON file with error handling. Returns True if successful."""
    try:
        if create_dirs:
            file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return True
    except (OSError, TypeError) as e:
        print(f"[ERROR] Error saving JSON file {file_path}: {e}")
        return False


def assignment_title_of(assignment_data: Dict[str, Any]) -> str:
    metadata = assignment_data.get("metadata") or {}
    return metadata.get("assignmentTitle") or assignment_data.get("title") or ""


def export_student_work(
    student_name: str,
    student_email: Optional[str],
    assignment_data: Dict[str, Any],
    section_contents: Dict[str, str],
    chat_history: Optional[List[Dict[str, Any]]] = None,
    formative_state: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Snapshot of everything a student produced, in the StudentWork 1.0 layout."""
    work: Dict[str, Any] = {
        "studentName": student_name,
        "studentEmail": student_email,
        "assignmentTitle": assignment_title_of(assignment_data),
        "assignmentData": assignment_data,
        "sectionContents": section_contents,
        "chatHistory": chat_history,
        "lastSaved": _now_iso(),
        "version": STUDENT_WORK_VERSION,
    }
    if formative_state is not None:
        work["formativeState"] = formative_state
    return work


def validate_imported_data(data: Any) -> Tuple[bool, Optional[str]]:
    if not data or not isinstance(data, dict):
        return False, "Ongeldig JSON formaat"

    for field in REQUIRED_FIELDS:
        if field not in data:
            return False, f"Ontbrekend veld: {field}"

    assignment_data = data["assignmentData"]
    if not isinstance(assignment_data, dict) or not isinstance(assignment_data.get("sections"), list):
        return False, "Ongeldige sectie data"

    if not isinstance(data["sectionContents"], dict):
        return False, "Ongeldige sectie inhoud"

    return True, None


def parse_imported_file(raw: bytes) -> Dict[str, Any]:
    """Decode and validate an uploaded StudentWork file; raises ValueError with a Dutch message."""
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValueError("Ongeldig JSON formaat")

    valid, error = validate_imported_data(data)
    if not valid:
        raise ValueError(error)
    return data


def safe_name(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", value or "")


def export_filename(student_name: str, assignment_title: str, on_date: Optional[date] = None) -> str:
    on_date = on_date or datetime.now(timezone.utc).date()
    return f"{safe_name(student_name)}_{safe_name(assignment_title)}_{on_date.isoformat()}.json"


def login_student(name: str, email: Optional[str] = None) -> Dict[str, Any]:
    return {
        "name": name.strip(),
        "email": email.strip() if email is not None else None,
        "loginTime": _now_iso(),
    }


# ============================================================================
# Server-side snapshots
# ============================================================================

def _workspaces_dir(base_dir: Optional[Path]) -> Path:
    return base_dir if base_dir is not None else config.WORKSPACES_DIR


def snapshot_key(student_name: str, assignment_title: str) -> str:
    """Readable slug plus a digest of the exact names."""
    digest = hashlib.sha256(f"{student_name}\n{assignment_title}".encode("utf-8")).hexdigest()[:12]
    return f"{safe_name(student_name)}_{safe_name(assignment_title)}_{digest}"


def snapshot_path(student_name: str, assignment_title: str, base_dir: Optional[Path] = None) -> Path:
    """One file per student/assignment pair; saving again overwrites it."""
    return _workspaces_dir(base_dir) / f"{snapshot_key(student_name, assignment_title)}.json"


def save_snapshot(work: Dict[str, Any], base_dir: Optional[Path] = None) -> Path:
    valid, error = validate_imported_data(work)
    if not valid:
        raise ValueError(error)

    path = snapshot_path(work["studentName"], work.get("assignmentTitle") or "", base_dir)
    if not save_json_file(path, work):
        raise OSError(f"Could not write snapshot to {path}")
    print(f"[INFO] Saved workspace snapshot: {path.name}")
    return path


def load_snapshot(student_name: str, assignment_title: str,
                  base_dir: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    path = snapshot_path(student_name, assignment_title, base_dir)
    data = load_json_file(path)
    if data is None:
        return None

    valid, error = validate_imported_data(data)
    if not valid:
        print(f"[WARNING] Ignoring invalid snapshot {path.name}: {error}")
        return None
    if data.get("studentName") != student_name or (data.get("assignmentTitle") or "") != assignment_title:
        print(f"[WARNING] Snapshot {path.name} belongs to another student or assignment")
        return None
    return data


def list_snapshots(base_dir: Optional[Path] = None) -> List[Dict[str, Any]]:
    directory = _workspaces_dir(base_dir)
    if not directory.exists():
        return []

    snapshots = []
    for path in sorted(directory.glob("*.json")):
        data = load_json_file(path)
        if not isinstance(data, dict):
            continue
        snapshots.append({
            "file": path.name,
            "studentName": data.get("studentName"),
            "assignmentTitle": data.get("assignmentTitle"),
            "lastSaved": data.get("lastSaved"),
        })
    snapshots.sort(key=lambda item: item.get("lastSaved") or "", reverse=True)
    return snapshots

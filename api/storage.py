"""JSON-file document store for quizzes, scored attempts and curricula.

Stands in for the managed document database the platform uses: one JSON
document per record under ``DATA_DIR`` plus a small index for attempt
lookups by user. Writes go through a temp file and an atomic replace.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
QUIZZES_DIR = DATA_ROOT / "quizzes"
ATTEMPTS_DIR = DATA_ROOT / "attempts"
CURRICULA_DIR = DATA_ROOT / "curricula"
ATTEMPT_INDEX_PATH = DATA_ROOT / "attempts_index.json"

_LOCK = threading.Lock()
_ID_RX = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


def _ensure_dirs() -> None:
    for d in (QUIZZES_DIR, ATTEMPTS_DIR, CURRICULA_DIR):
        d.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.error("unreadable document %s: %s", path, e)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def _doc_path(folder: Path, doc_id: str) -> Optional[Path]:
    if not _ID_RX.match(doc_id or ""):
        return None
    return folder / f"{doc_id}.json"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def valid_id(doc_id: str) -> bool:
    return bool(_ID_RX.match(doc_id or ""))


# ---- quizzes ----

def save_quiz(quiz_id: str, doc: Dict[str, Any]) -> None:
    path = _doc_path(QUIZZES_DIR, quiz_id)
    if path is None:
        raise ValueError(f"invalid quiz id {quiz_id!r}")
    _ensure_dirs()
    with _LOCK:
        _write_json(path, doc)


def load_quiz(quiz_id: str) -> Optional[Dict[str, Any]]:
    path = _doc_path(QUIZZES_DIR, quiz_id)
    if path is None:
        return None
    return _read_json(path, None)


# ---- attempts ----

def save_attempt(attempt_id: str, record: Dict[str, Any]) -> None:
    """Persist a scored attempt and its index metadata."""

    path = _doc_path(ATTEMPTS_DIR, attempt_id)
    if path is None:
        raise ValueError(f"invalid attempt id {attempt_id!r}")
    _ensure_dirs()
    meta = {
        "userId": record.get("userId"),
        "quizId": record.get("quizId"),
        "submittedAt": record.get("submittedAt"),
        "percentage": record.get("percentage"),
        "passed": record.get("passed"),
    }
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(ATTEMPT_INDEX_PATH, {})
        index[attempt_id] = meta
        _write_json(ATTEMPT_INDEX_PATH, index)
        _write_json(path, record)


def load_attempt(attempt_id: str) -> Optional[Dict[str, Any]]:
    path = _doc_path(ATTEMPTS_DIR, attempt_id)
    if path is None:
        return None
    return _read_json(path, None)


def list_attempts_for_user(user_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(ATTEMPT_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for aid, meta in index.items():
        if meta.get("userId") == user_id:
            item = {"id": aid}
            item.update({k: v for k, v in meta.items() if k != "id"})
            out.append(item)
    out.sort(key=lambda r: r.get("submittedAt") or "", reverse=True)
    return out


def list_quiz_attempts(user_id: str, quiz_id: str) -> List[Dict[str, Any]]:
    return [a for a in list_attempts_for_user(user_id) if a.get("quizId") == quiz_id]


# ---- curricula ----

def save_curriculum(curriculum_id: str, doc: Dict[str, Any]) -> None:
    path = _doc_path(CURRICULA_DIR, curriculum_id)
    if path is None:
        raise ValueError(f"invalid curriculum id {curriculum_id!r}")
    _ensure_dirs()
    with _LOCK:
        _write_json(path, doc)


def load_curriculum(curriculum_id: str) -> Optional[Dict[str, Any]]:
    path = _doc_path(CURRICULA_DIR, curriculum_id)
    if path is None:
        return None
    return _read_json(path, None)


def delete_curriculum(curriculum_id: str) -> bool:
    path = _doc_path(CURRICULA_DIR, curriculum_id)
    if path is None:
        return False
    with _LOCK:
        if not path.exists():
            return False
        path.unlink()
    return True


def _curricula_where(field: str, value: str) -> List[Dict[str, Any]]:
    if not CURRICULA_DIR.exists():
        return []
    out: List[Dict[str, Any]] = []
    for path in CURRICULA_DIR.glob("*.json"):
        doc = _read_json(path, None)
        if doc and doc.get(field) == value:
            out.append(doc)
    out.sort(key=lambda d: d.get("updatedAt") or "", reverse=True)
    return out


def list_curricula_for_student(student_id: str) -> List[Dict[str, Any]]:
    return _curricula_where("studentId", student_id)


def list_curricula_for_coach(coach_id: str) -> List[Dict[str, Any]]:
    return _curricula_where("coachId", coach_id)

"""Helpers to export the per-question answers of a quiz attempt as JSON/CSV."""
from __future__ import annotations

from typing import Iterable, List, Dict, Any
import csv
import io
import json

_FIELDS: tuple[str, ...] = (
    "questionId",
    "questionType",
    "answer",
    "isCorrect",
    "pointsEarned",
    "timeSpent",
    "gradedBy",
    "feedback",
)


def _answer_text(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (list, tuple)):
        return json.dumps(list(val), ensure_ascii=False)
    return str(val)


def _normalize_answer(row: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _FIELDS:
        val = row.get(key)
        if key in {"pointsEarned", "timeSpent"}:
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = 0.0
        elif key == "isCorrect":
            out[key] = bool(val)
        elif key == "answer":
            out[key] = _answer_text(val)
        else:
            out[key] = "" if val is None else str(val)
    return out


def to_json(answers: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a JSON-safe payload for answer export."""

    normalized: List[Dict[str, Any]] = [_normalize_answer(a or {}) for a in answers]
    return {"answers": normalized}


def to_csv(answers: Iterable[Dict[str, Any]]) -> str:
    """Render attempt answers as CSV with a fixed header."""

    normalized = [_normalize_answer(a or {}) for a in answers]
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for row in normalized:
        writer.writerow(row)
    return buf.getvalue()


__all__ = ["to_json", "to_csv"]

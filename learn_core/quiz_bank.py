from __future__ import annotations
import json, importlib.resources as ir
from pathlib import Path
from typing import Any, Dict, List
from . import config
from .types import Quiz, CurriculumItem, quiz_from_dict, item_from_dict

def _packaged(name: str) -> Dict[str, Any]:
    data = (ir.files(__package__) / "data" / name).read_text(encoding="utf-8")
    return json.loads(data)

def load_quiz_doc(path: str | Path | None = None) -> Dict[str, Any]:
    if path is None:
        return _packaged("sample_quiz.json")
    return json.loads(Path(path).read_text(encoding="utf-8"))

def load_quiz(path: str | Path | None = None) -> Quiz:
    return quiz_from_dict(load_quiz_doc(path), default_passing_score=config.DEFAULT_PASSING_SCORE)

def load_sample_curriculum() -> List[CurriculumItem]:
    raw = _packaged("sample_curriculum.json")
    return [item_from_dict(r) for r in raw["items"]]

from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip()


GRADING_URL: str = ""
GRADING_TIMEOUT_SEC: float = 15.0
GRADING_MAX_WORKERS: int = 4
GRADING_LOG_PATH: str = ""
FILL_BLANK_AI_GRADING: bool = False

DEFAULT_PASSING_SCORE: float = 70.0
DEFAULT_ITEM_MINUTES: int = 30

LLM_BACKEND: str = "none"
LLM_MAX_TOKENS: int = 300

LOG_LEVEL: str = "INFO"

AUDIT_MIN_QUESTIONS: int = 1

# // env overrides for staging/ops; defaults remain conservative.
GRADING_URL = _env_str("GRADING_URL", GRADING_URL)
GRADING_TIMEOUT_SEC = _env_float("GRADING_TIMEOUT_SEC", GRADING_TIMEOUT_SEC)
GRADING_MAX_WORKERS = max(1, _env_int("GRADING_MAX_WORKERS", GRADING_MAX_WORKERS))
GRADING_LOG_PATH = _env_str("GRADING_LOG_PATH", GRADING_LOG_PATH)
FILL_BLANK_AI_GRADING = _env_bool("FILL_BLANK_AI_GRADING", FILL_BLANK_AI_GRADING)
DEFAULT_PASSING_SCORE = _env_float("DEFAULT_PASSING_SCORE", DEFAULT_PASSING_SCORE)
DEFAULT_ITEM_MINUTES = _env_int("DEFAULT_ITEM_MINUTES", DEFAULT_ITEM_MINUTES)
LLM_BACKEND = _env_str("LLM_BACKEND", LLM_BACKEND).lower() or "none"
LOG_LEVEL = _env_str("LOG_LEVEL", LOG_LEVEL).upper() or "INFO"


def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("GRADING_URL"): cfg["GRADING_URL"] = e.get("GRADING_URL")
    if e.get("GRADING_TIMEOUT_SEC"): cfg["GRADING_TIMEOUT_SEC"] = _env_float("GRADING_TIMEOUT_SEC", GRADING_TIMEOUT_SEC)
    if e.get("FILL_BLANK_AI_GRADING"): cfg["FILL_BLANK_AI_GRADING"] = _env_bool("FILL_BLANK_AI_GRADING", False)
    if e.get("LLM_BACKEND"): cfg["LLM_BACKEND"] = e.get("LLM_BACKEND")
    for k in ("AZURE_OPENAI_ENDPOINT","AZURE_OPENAI_API_VERSION","AZURE_OPENAI_API_KEY","AZURE_OPENAI_DEPLOYMENT"):
        if e.get(k): cfg[k] = e.get(k)
    return cfg


def get_backend(cfg: dict) -> str|None:
    b = (cfg.get("LLM_BACKEND") or "").lower().strip()
    return b if b == "azure" else None

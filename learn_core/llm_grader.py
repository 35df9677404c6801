# learn_core/llm_grader.py
from __future__ import annotations
import os, json, pathlib, re, logging
from dataclasses import dataclass
from openai import AzureOpenAI

from . import config
from .grading_bridge import GradeRequest, GradeResult, GradingServiceUnavailable, parse_grade_response

log = logging.getLogger(__name__)

_AZURE_KEYS = ("endpoint", "api_key", "api_version", "deployment")


class LLMNotConfigured(RuntimeError):
    pass


class LLMGradingError(RuntimeError):
    pass


@dataclass(frozen=True)
class AzureSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str


def _from_env() -> dict[str, str]:
    return {
        "endpoint":   os.getenv("AZURE_OPENAI_ENDPOINT", ""),
        "api_key":    os.getenv("AZURE_OPENAI_API_KEY", ""),
        "api_version":os.getenv("AZURE_OPENAI_API_VERSION", ""),
        "deployment": os.getenv("AZURE_OPENAI_DEPLOYMENT", ""),
    }


def _from_json(path: str = ".azure_config.json") -> dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists(): return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.warning("ignoring unreadable %s: %s", path, e)
        return {}
    return {k: str(j.get(k, "")) for k in _AZURE_KEYS}


def backend_in_use() -> str:
    b = config.get_backend(config.load_config()) or config.get_backend({"LLM_BACKEND": config.LLM_BACKEND})
    return b or "none"


def azure_settings() -> AzureSettings:
    cfg = _from_env()
    if not all(cfg.values()):
        for k, v in _from_json().items():
            if not cfg.get(k): cfg[k] = v
    missing = [k for k, v in cfg.items() if not v]
    if missing:
        raise LLMNotConfigured(f"Azure OpenAI not configured. Missing: {', '.join(missing)}")
    return AzureSettings(
        endpoint=cfg["endpoint"],
        api_key=cfg["api_key"],
        deployment=cfg["deployment"],
        api_version=cfg["api_version"],
    )


def client() -> AzureOpenAI:
    s = azure_settings()
    return AzureOpenAI(
        azure_endpoint=s.endpoint,
        api_key=s.api_key,
        api_version=s.api_version,
    )


_SYSTEM = ("You are a fair, strict grader for sports-skill quizzes. "
           "Return ONLY compact JSON with keys: isCorrect (boolean), pointsEarned (number from 0 to maxPoints), "
           "feedback (one or two sentences for the student). No other text.")


def build_prompt(req: GradeRequest) -> str:
    parts = [f"Question: {req.question_text.strip()}"]
    if req.question_content.strip() and req.question_content.strip() != req.question_text.strip():
        parts.append(f"Details: {req.question_content.strip()}")
    if req.correct_answer:
        parts.append("Expected blanks (in order): " + " | ".join(req.correct_answer))
        parts.append("Accept synonyms and minor spelling slips; reject different meanings.")
    if req.sample_answer:
        parts.append(f"Sample answer: {req.sample_answer.strip()}")
    if req.rubric:
        parts.append(f"Rubric:\n{req.rubric.strip()}")
    answer = req.user_answer if isinstance(req.user_answer, str) else " | ".join(req.user_answer)
    parts.append(f"maxPoints: {req.max_points:g}")
    parts.append(f"Student answer:\n{answer.strip()}")
    return "\n\n".join(parts)


_FENCE_RX = re.compile(r"^```(?:json)?\s*|\s*```$", re.I)


def _chat(system: str, user: str) -> str:
    s = azure_settings(); cli = client()
    resp = cli.chat.completions.create(
        model=s.deployment, messages=[{"role":"system","content":system},{"role":"user","content":user}],
        temperature=0.0, max_tokens=config.LLM_MAX_TOKENS, top_p=1.0,
    )
    return resp.choices[0].message.content or "{}"


def grade_answer(req: GradeRequest) -> GradeResult:
    """Grade one answer with the configured LLM; points are clamped to [0, maxPoints]."""
    if backend_in_use() != "azure":
        raise LLMNotConfigured("no LLM backend configured for grading")
    try:
        raw = _chat(_SYSTEM, build_prompt(req))
    except LLMNotConfigured:
        raise
    except Exception as e:
        raise LLMGradingError(f"LLM call failed: {e}") from e
    try:
        data = json.loads(_FENCE_RX.sub("", raw.strip()))
        res = parse_grade_response(data)
    except (ValueError, GradingServiceUnavailable) as e:
        raise LLMGradingError(f"unusable LLM grading output: {e}") from e
    pts = max(0.0, min(float(req.max_points), res.points_earned))
    return GradeResult(is_correct=res.is_correct, points_earned=pts, feedback=res.feedback)

from __future__ import annotations
import json, logging, math, time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt, ValidationError, field_validator

from . import config

log = logging.getLogger(__name__)


class GradingServiceUnavailable(RuntimeError):
    """The external grader could not produce a usable verdict."""


@dataclass(frozen=True)
class GradeRequest:
    question_id: str
    question_text: str
    question_content: str
    user_answer: Union[str, List[str]]
    max_points: float
    correct_answer: Optional[List[str]] = None
    sample_answer: Optional[str] = None
    rubric: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "questionText": self.question_text,
            "questionContent": self.question_content,
            "userAnswer": self.user_answer,
            "maxPoints": self.max_points,
        }
        if self.correct_answer is not None:
            body["correctAnswer"] = list(self.correct_answer)
        if self.sample_answer:
            body["sampleAnswer"] = self.sample_answer
        if self.rubric:
            body["rubric"] = self.rubric
        return body


@dataclass(frozen=True)
class GradeResult:
    is_correct: bool
    points_earned: float
    feedback: Optional[str] = None


class _GradeResponse(BaseModel):
    isCorrect: StrictBool
    pointsEarned: Union[StrictInt, StrictFloat]
    feedback: Optional[str] = None
    success: Optional[bool] = None

    @field_validator("pointsEarned")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(float(v)):
            raise ValueError("pointsEarned must be finite")
        return v


Grader = Callable[[GradeRequest], GradeResult]


def parse_grade_response(body: Any) -> GradeResult:
    if not isinstance(body, dict):
        raise GradingServiceUnavailable("grading response is not a JSON object")
    if body.get("success") is False:
        raise GradingServiceUnavailable(f"grading service reported failure: {body.get('error', 'unknown')}")
    try:
        parsed = _GradeResponse.model_validate(body)
    except ValidationError as e:
        raise GradingServiceUnavailable(f"malformed grading response: {e.error_count()} error(s)") from e
    return GradeResult(
        is_correct=parsed.isCorrect,
        points_earned=float(parsed.pointsEarned),
        feedback=parsed.feedback,
    )


def _log_call(req: GradeRequest, outcome: str, t0: float, result: GradeResult | None = None) -> None:
    path = config.GRADING_LOG_PATH
    if not path:
        return
    row = {
        "ts": round(time.time(), 3),
        "question": req.question_id,
        "outcome": outcome,
        "max_points": req.max_points,
        "points": result.points_earned if result else None,
        "rt_ms": int((time.time() - t0) * 1000),
    }
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")
    except OSError as e:
        log.warning("could not append grading log %s: %s", path, e)


class HttpGrader:
    """POSTs grading requests to the configured grading endpoint.

    Every failure mode (no endpoint, transport error, timeout, non-2xx status,
    non-JSON or invalid body) is raised as GradingServiceUnavailable so the
    evaluator can fall back.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = config.GRADING_URL if url is None else url
        self.timeout = config.GRADING_TIMEOUT_SEC if timeout is None else timeout
        self._transport = transport

    def __call__(self, req: GradeRequest) -> GradeResult:
        t0 = time.time()
        if not self.url:
            _log_call(req, "unconfigured", t0)
            raise GradingServiceUnavailable("grading endpoint not configured")
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.url, json=req.to_payload())
        except httpx.HTTPError as e:
            _log_call(req, "transport_error", t0)
            raise GradingServiceUnavailable(f"transport error: {e}") from e
        if not resp.is_success:
            _log_call(req, f"http_{resp.status_code}", t0)
            raise GradingServiceUnavailable(f"grading service returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            _log_call(req, "bad_json", t0)
            raise GradingServiceUnavailable("grading response is not valid JSON") from e
        try:
            result = parse_grade_response(body)
        except GradingServiceUnavailable:
            _log_call(req, "malformed", t0)
            raise
        _log_call(req, "ok", t0, result)
        return result


def default_grader() -> Grader:
    return HttpGrader()

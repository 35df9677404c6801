from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from . import config
from .grading_bridge import GradeRequest, GradeResult, GradingServiceUnavailable
from .progress import next_item, progress_summary, record_completion, compute_unlocks, start_item
from .quiz_bank import load_quiz, load_sample_curriculum
from .scoring import build_completion_record, score_quiz
from .types import (
    DescriptiveQuestion,
    FillInBlankQuestion,
    MultipleChoiceQuestion,
    Question,
    Quiz,
    Submission,
    TrueFalseQuestion,
)


def _enable_logging() -> None:
    logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(name)s: %(message)s")


def _offline_grader(req: GradeRequest) -> GradeResult:
    raise GradingServiceUnavailable("offline smoke run")


def _auto_answer(q: Question) -> Submission:
    if isinstance(q, MultipleChoiceQuestion):
        ids = q.correct_ids
        value: Any = ids if q.allow_multiple_answers else (ids[0] if ids else "")
        return Submission(q.id, value, 12.0)
    if isinstance(q, TrueFalseQuestion):
        return Submission(q.id, q.correct_answer, 6.0)
    if isinstance(q, FillInBlankQuestion):
        return Submission(q.id, [f"  {a.upper()} " for a in q.correct_answers], 20.0)
    if isinstance(q, DescriptiveQuestion):
        return Submission(q.id, q.sample_answer or "practice " * 30, 90.0)
    return Submission(q.id, None)


def run_quiz(quiz: Quiz | None = None) -> Dict[str, Any]:
    quiz = quiz or load_quiz()
    subs = {q.id: _auto_answer(q) for q in quiz.questions}
    result = score_quiz(quiz, subs, grader=_offline_grader, max_workers=1)
    record = build_completion_record("smoke_user", quiz, result)
    logging.info(
        "Quiz %s: score=%.1f/%.1f (%.1f%%) passed=%s",
        quiz.id, result.score, result.max_score, result.percentage, result.passed,
    )
    for a in result.answers:
        logging.info("  %s %-15s correct=%s points=%.1f via=%s",
                     a.question_id, a.question_type, a.is_correct, a.points_earned, a.graded_by)
    return record


def run_curriculum() -> List[Dict[str, Any]]:
    items = compute_unlocks(load_sample_curriculum())
    steps = 0
    while True:
        nxt = next_item(items)
        if nxt is None:
            break
        items = start_item(items, nxt.id).items
        now = datetime.now(timezone.utc).isoformat()
        res = record_completion(items, nxt.id, now=now)
        items = res.items
        steps += 1
        summary = progress_summary(items)
        logging.info("Completed %s -> %d%% done, next=%s", nxt.id, summary["progressPercentage"],
                     (summary["nextItem"] or {}).get("id"))
    logging.info("Curriculum finished in %d steps", steps)
    return [it.to_dict() for it in items]


def run_smoke_session() -> None:
    _enable_logging()
    run_quiz()
    run_curriculum()


if __name__ == "__main__":  # pragma: no cover
    run_smoke_session()

from __future__ import annotations
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from . import config
from .grading_bridge import GradeRequest, GradeResult, Grader, GradingServiceUnavailable, default_grader
from .types import (
    DescriptiveQuestion,
    FillInBlankQuestion,
    MultipleChoiceQuestion,
    Question,
    QuestionAnswer,
    Quiz,
    QuizScore,
    Submission,
    TrueFalseQuestion,
)

log = logging.getLogger(__name__)


class MalformedAnswer(ValueError):
    """Submitted answer does not have the shape its question expects."""


def _clamp_points(x: Any, max_points: float) -> float:
    try:
        xf = float(x)
    except (TypeError, ValueError):
        return 0.0
    if xf != xf or xf < 0.0: return 0.0
    if xf > max_points: return float(max_points)
    return xf


def _seconds(x: Any) -> float:
    try:
        xf = float(x or 0.0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(xf) or xf < 0.0: return 0.0
    return xf


def _max_points(q: Question) -> float:
    return float(max(0, q.points))


def _as_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    raise MalformedAnswer(f"expected text, got {type(value).__name__}")


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        raise MalformedAnswer(f"expected a list, got {type(value).__name__}")
    if not all(isinstance(v, str) for v in value):
        raise MalformedAnswer("expected a list of strings")
    return list(value)


def _as_blanks(value: Any) -> List[Optional[str]]:
    """Blanks may hold None for an unanswered slot; anything else must be text."""
    if not isinstance(value, (list, tuple)):
        raise MalformedAnswer(f"expected a list of blanks, got {type(value).__name__}")
    if not all(v is None or isinstance(v, str) for v in value):
        raise MalformedAnswer("expected blanks to be strings")
    return list(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v == "true": return True
        if v == "false": return False
    raise MalformedAnswer(f"expected a boolean, got {value!r}")


def _blank_matches(expected: str, given: Optional[str], case_sensitive: bool) -> bool:
    if given is None:
        return False
    g = given.strip()
    if not g:
        return False
    e = expected.strip()
    if case_sensitive:
        return g == e
    return g.casefold() == e.casefold()


def _delegate(grader: Grader, req: GradeRequest) -> Tuple[bool, float, Optional[str]] | None:
    """Run the external grader; None means the caller must use its fallback."""
    try:
        res = grader(req)
        if not isinstance(res, GradeResult):
            raise GradingServiceUnavailable(f"grader returned {type(res).__name__}, not a GradeResult")
        return bool(res.is_correct), _clamp_points(res.points_earned, req.max_points), res.feedback
    except GradingServiceUnavailable as e:
        log.warning("grading unavailable for question %s: %s", req.question_id, e)
        return None
    except Exception:
        log.exception("grader raised unexpectedly for question %s", req.question_id)
        return None


def _score_multiple_choice(q: MultipleChoiceQuestion, answer: Any) -> Tuple[bool, float]:
    correct = q.correct_ids
    if q.allow_multiple_answers:
        chosen = _as_str_list(answer)
        ok = bool(correct) and len(chosen) == len(set(chosen)) and set(chosen) == set(correct)
    else:
        # any option flagged correct is accepted; see DESIGN.md
        ok = _as_str(answer) in correct
    return ok, _max_points(q) if ok else 0.0


def _score_true_false(q: TrueFalseQuestion, answer: Any) -> Tuple[bool, float]:
    ok = _as_bool(answer) == q.correct_answer
    return ok, _max_points(q) if ok else 0.0


def _score_fill_in_blank(q: FillInBlankQuestion, answer: Any, grader: Optional[Grader]) -> QuestionAnswer:
    given = _as_blanks(answer)
    ok = bool(q.correct_answers) and all(
        _blank_matches(exp, given[i] if i < len(given) else None, q.case_sensitive)
        for i, exp in enumerate(q.correct_answers)
    )
    qa = QuestionAnswer(q.id, q.type, answer, ok, _max_points(q) if ok else 0.0)
    if ok or not (q.ai_grading or config.FILL_BLANK_AI_GRADING) or q.points <= 0:
        return qa
    req = GradeRequest(
        question_id=q.id,
        question_text=q.title or q.content,
        question_content=q.content,
        user_answer=[g or "" for g in given],
        max_points=_max_points(q),
        correct_answer=list(q.correct_answers),
    )
    remote = _delegate(grader or default_grader(), req)
    if remote is None:
        qa.graded_by = "fallback"
        return qa
    is_correct, points, feedback = remote
    qa.is_correct = is_correct
    qa.points_earned = points if is_correct else 0.0
    qa.feedback = feedback
    qa.graded_by = "remote"
    return qa


def _score_descriptive(q: DescriptiveQuestion, answer: Any, grader: Optional[Grader]) -> QuestionAnswer:
    text = _as_str(answer)
    qa = QuestionAnswer(q.id, q.type, answer, False, 0.0, graded_by="fallback")
    if not text.strip() or q.points <= 0:
        return qa
    req = GradeRequest(
        question_id=q.id,
        question_text=q.title or q.content,
        question_content=q.content,
        user_answer=text,
        max_points=_max_points(q),
        sample_answer=q.sample_answer,
        rubric=q.rubric,
    )
    remote = _delegate(grader or default_grader(), req)
    if remote is None:
        return qa
    qa.is_correct, qa.points_earned, qa.feedback = remote
    qa.graded_by = "remote"
    return qa


def evaluate(question: Question, answer: Any, *, grader: Optional[Grader] = None, time_spent: float = 0.0) -> QuestionAnswer:
    """
    Score one submitted answer.

    Never raises for bad input: malformed answers and grader failures come
    back as an incorrect, zero-credit QuestionAnswer.
    """
    try:
        if isinstance(question, MultipleChoiceQuestion):
            ok, pts = _score_multiple_choice(question, answer)
            qa = QuestionAnswer(question.id, question.type, answer, ok, pts)
        elif isinstance(question, TrueFalseQuestion):
            ok, pts = _score_true_false(question, answer)
            qa = QuestionAnswer(question.id, question.type, answer, ok, pts)
        elif isinstance(question, FillInBlankQuestion):
            qa = _score_fill_in_blank(question, answer, grader)
        elif isinstance(question, DescriptiveQuestion):
            qa = _score_descriptive(question, answer, grader)
        else:
            raise MalformedAnswer(f"unsupported question type {getattr(question, 'type', None)!r}")
    except MalformedAnswer as e:
        log.info("malformed answer for question %s: %s", getattr(question, "id", "?"), e)
        qa = QuestionAnswer(
            str(getattr(question, "id", "")), str(getattr(question, "type", "")), answer, False, 0.0
        )
    qa.time_spent = _seconds(time_spent)
    return qa


def compute_percentage(score: float, max_score: float) -> float:
    if max_score <= 0:
        return 0.0
    return 100.0 * score / max_score


def score_quiz(
    quiz: Quiz,
    submissions: Mapping[str, Submission],
    *,
    grader: Optional[Grader] = None,
    max_workers: Optional[int] = None,
) -> QuizScore:
    """Score every question of `quiz`; unanswered questions earn nothing."""
    g = grader or default_grader()
    workers = max(1, int(max_workers or config.GRADING_MAX_WORKERS))

    def _one(q: Question) -> QuestionAnswer:
        sub = submissions.get(q.id)
        if sub is None:
            return evaluate(q, None, grader=g)
        return evaluate(q, sub.answer, grader=g, time_spent=sub.time_spent)

    questions = list(quiz.questions)
    if workers > 1 and len(questions) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(questions))) as pool:
            answers = list(pool.map(_one, questions))
    else:
        answers = [_one(q) for q in questions]

    total = sum(a.points_earned for a in answers)
    max_score = float(quiz.max_score)
    pct = compute_percentage(total, max_score)
    return QuizScore(
        answers=answers,
        score=total,
        max_score=max_score,
        percentage=pct,
        passed=pct >= quiz.settings.passing_score,
    )


def build_completion_record(user_id: str, quiz: Quiz, result: QuizScore, time_spent: Optional[float] = None) -> Dict[str, Any]:
    if time_spent is None:
        time_spent = sum(a.time_spent for a in result.answers)
    time_spent = _seconds(time_spent)
    return {
        "userId": user_id,
        "quizId": quiz.id,
        "skillId": quiz.skill_id,
        "sportId": quiz.sport_id,
        "answers": [a.to_dict() for a in result.answers],
        "score": result.score,
        "maxScore": result.max_score,
        "percentage": result.percentage,
        "passed": result.passed,
        "correctAnswers": result.correct_answers,
        "totalQuestions": result.total_questions,
        "timeSpent": time_spent,
    }


def check_eligibility(quiz: Quiz, previous: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Decide whether another attempt on `quiz` is allowed.

    `previous` holds the user's earlier scored attempts on this quiz (each with
    a `passed` flag). A passed quiz is closed; otherwise `maxAttempts` caps the
    count, 0 meaning unlimited (`attemptsRemaining` is then -1).
    """
    attempts = list(previous)
    count = len(attempts)
    cap = quiz.settings.max_attempts
    out: Dict[str, Any] = {"eligible": True, "attemptNumber": count + 1}
    if any(a.get("passed") for a in attempts):
        out.update(eligible=False, reason="Quiz already passed", attemptsRemaining=0)
    elif cap > 0 and count >= cap:
        out.update(eligible=False, reason="Maximum attempts exceeded", attemptsRemaining=0)
    else:
        out["attemptsRemaining"] = cap - count if cap > 0 else -1
    return out

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Literal, Union

QuestionType = Literal["multiple_choice", "true_false", "fill_in_blank", "descriptive"]
ItemType = Literal["lesson", "quiz", "custom_lesson", "custom_quiz"]
ItemStatus = Literal["locked", "unlocked", "in_progress", "completed"]
GradedBy = Literal["local", "remote", "fallback"]

QUESTION_TYPES: tuple[str, ...] = ("multiple_choice", "true_false", "fill_in_blank", "descriptive")
ITEM_TYPES: tuple[str, ...] = ("lesson", "quiz", "custom_lesson", "custom_quiz")
ITEM_STATUSES: tuple[str, ...] = ("locked", "unlocked", "in_progress", "completed")

AnswerValue = Union[str, bool, List[str], None]


@dataclass(frozen=True)
class Option:
    id: str; text: str; is_correct: bool = False


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    id: str; title: str; content: str
    options: List[Option] = field(default_factory=list)
    allow_multiple_answers: bool = False
    points: int = 0
    explanation: Optional[str] = None
    type: Literal["multiple_choice"] = "multiple_choice"

    @property
    def correct_ids(self) -> List[str]:
        return [o.id for o in self.options if o.is_correct]


@dataclass(frozen=True)
class TrueFalseQuestion:
    id: str; title: str; content: str
    correct_answer: bool = True
    points: int = 0
    explanation: Optional[str] = None
    type: Literal["true_false"] = "true_false"


@dataclass(frozen=True)
class FillInBlankQuestion:
    id: str; title: str; content: str
    correct_answers: List[str] = field(default_factory=list)
    case_sensitive: bool = False
    ai_grading: bool = False
    points: int = 0
    explanation: Optional[str] = None
    type: Literal["fill_in_blank"] = "fill_in_blank"


@dataclass(frozen=True)
class DescriptiveQuestion:
    id: str; title: str; content: str
    sample_answer: Optional[str] = None
    rubric: Optional[str] = None
    min_words: Optional[int] = None
    max_words: Optional[int] = None
    points: int = 0
    explanation: Optional[str] = None
    type: Literal["descriptive"] = "descriptive"


Question = Union[MultipleChoiceQuestion, TrueFalseQuestion, FillInBlankQuestion, DescriptiveQuestion]


@dataclass(frozen=True)
class QuizSettings:
    passing_score: float = 70.0
    max_attempts: int = 0  # 0 = unlimited


@dataclass(frozen=True)
class Quiz:
    id: str; title: str
    questions: List[Question] = field(default_factory=list)
    settings: QuizSettings = field(default_factory=QuizSettings)
    skill_id: Optional[str] = None
    sport_id: Optional[str] = None

    @property
    def max_score(self) -> int:
        return sum(max(0, q.points) for q in self.questions)


@dataclass
class QuestionAnswer:
    question_id: str
    question_type: str
    answer: Any
    is_correct: bool
    points_earned: float
    time_spent: float = 0.0
    feedback: Optional[str] = None
    graded_by: GradedBy = "local"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "questionId": self.question_id,
            "questionType": self.question_type,
            "answer": self.answer,
            "isCorrect": self.is_correct,
            "pointsEarned": self.points_earned,
            "timeSpent": self.time_spent,
            "gradedBy": self.graded_by,
        }
        if self.feedback:
            out["feedback"] = self.feedback
        return out


@dataclass
class QuizScore:
    answers: List[QuestionAnswer]
    score: float
    max_score: float
    percentage: float
    passed: bool

    @property
    def correct_answers(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    @property
    def total_questions(self) -> int:
        return len(self.answers)


@dataclass(frozen=True)
class CurriculumItem:
    id: str
    type: ItemType
    order: int
    status: ItemStatus = "locked"
    content_id: Optional[str] = None
    title: Optional[str] = None
    estimated_minutes: Optional[int] = None
    unlocked_at: Optional[str] = None
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "contentId": self.content_id,
            "order": self.order,
            "status": self.status,
            "title": self.title,
            "estimatedMinutes": self.estimated_minutes,
            "unlockedAt": self.unlocked_at,
            "completedAt": self.completed_at,
        }


# ---- document (camelCase) parsing ----

def _rubric_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        lines = [str(r).strip() for r in raw if str(r).strip()]
        return "\n".join(lines) or None
    text = str(raw).strip()
    return text or None


def _flag(raw: Any, default: bool, name: str) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        v = raw.strip().lower()
        if v == "true": return True
        if v == "false": return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _opt_int(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    return int(raw)


def question_from_dict(d: Dict[str, Any]) -> Question:
    """Build the typed question variant for a stored question document."""
    if not isinstance(d, dict):
        raise ValueError(f"question must be an object, got {type(d).__name__}")
    t = d.get("type")
    common = {
        "id": str(d["id"]),
        "title": str(d.get("title") or ""),
        "content": str(d.get("content") or ""),
        "points": int(d.get("points") or 0),
        "explanation": d.get("explanation"),
    }
    if t == "multiple_choice":
        options = [
            Option(id=str(o["id"]), text=str(o.get("text") or ""), is_correct=_flag(o.get("isCorrect"), False, "isCorrect"))
            for o in d.get("options") or []
        ]
        allow_multi = d.get("allowMultipleAnswers", d.get("allowMultiple", False))
        return MultipleChoiceQuestion(options=options, allow_multiple_answers=_flag(allow_multi, False, "allowMultipleAnswers"), **common)
    if t == "true_false":
        return TrueFalseQuestion(correct_answer=_flag(d.get("correctAnswer"), True, "correctAnswer"), **common)
    if t == "fill_in_blank":
        return FillInBlankQuestion(
            correct_answers=[str(a) for a in d.get("correctAnswers") or []],
            case_sensitive=_flag(d.get("caseSensitive"), False, "caseSensitive"),
            ai_grading=_flag(d.get("aiGrading"), False, "aiGrading"),
            **common,
        )
    if t == "descriptive":
        return DescriptiveQuestion(
            sample_answer=d.get("sampleAnswer"),
            rubric=_rubric_text(d.get("rubric")),
            min_words=_opt_int(d.get("minWords")),
            max_words=_opt_int(d.get("maxWords")),
            **common,
        )
    raise ValueError(f"unknown question type: {t!r}")


def quiz_from_dict(d: Dict[str, Any], default_passing_score: float = 70.0) -> Quiz:
    settings = d.get("settings") or {}
    questions = d.get("questions") or []
    if not isinstance(settings, dict):
        raise ValueError("settings must be an object")
    if not isinstance(questions, list):
        raise ValueError("questions must be a list")
    passing = settings.get("passingScore", default_passing_score)
    max_attempts = int(d.get("maxAttempts", settings.get("maxAttempts")) or 0)
    if max_attempts < 0:
        raise ValueError(f"maxAttempts must be >= 0, got {max_attempts}")
    return Quiz(
        id=str(d["id"]),
        title=str(d.get("title") or ""),
        questions=[question_from_dict(q) for q in questions],
        settings=QuizSettings(passing_score=float(passing), max_attempts=max_attempts),
        skill_id=d.get("skillId"),
        sport_id=d.get("sportId"),
    )


def item_from_dict(d: Dict[str, Any]) -> CurriculumItem:
    t = d.get("type", "lesson")
    if t not in ITEM_TYPES:
        raise ValueError(f"unknown curriculum item type: {t!r}")
    status = d.get("status", "locked")
    if status not in ITEM_STATUSES:
        raise ValueError(f"unknown curriculum item status: {status!r}")
    return CurriculumItem(
        id=str(d["id"]),
        type=t,
        order=int(d["order"]),
        status=status,
        content_id=d.get("contentId"),
        title=d.get("title"),
        estimated_minutes=_opt_int(d.get("estimatedMinutes")),
        unlocked_at=d.get("unlockedAt"),
        completed_at=d.get("completedAt"),
    )


@dataclass(frozen=True)
class Submission:
    question_id: str
    answer: AnswerValue = None
    time_spent: float = 0.0

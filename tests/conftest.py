from __future__ import annotations

import importlib
import os
import sys

import pytest

from learn_core.grading_bridge import GradeRequest, GradeResult, GradingServiceUnavailable
from learn_core.types import (
    CurriculumItem,
    DescriptiveQuestion,
    FillInBlankQuestion,
    MultipleChoiceQuestion,
    Option,
    Quiz,
    QuizSettings,
    TrueFalseQuestion,
)


class StubGrader:
    """Records grading requests and replays a fixed verdict or failure."""

    def __init__(self, result: GradeResult | None = None, exc: Exception | None = None) -> None:
        self.result = result
        self.exc = exc
        self.calls: list[GradeRequest] = []

    def __call__(self, req: GradeRequest) -> GradeResult:
        self.calls.append(req)
        if self.exc is not None:
            raise self.exc
        assert self.result is not None
        return self.result


def offline_grader() -> StubGrader:
    return StubGrader(exc=GradingServiceUnavailable("unreachable"))


def mcq(qid: str = "mc1", *, points: int = 5, correct: tuple[str, ...] = ("b",), multi: bool = False) -> MultipleChoiceQuestion:
    return MultipleChoiceQuestion(
        id=qid,
        title=f"{qid} title",
        content=f"{qid} content",
        options=[Option(id=o, text=o.upper(), is_correct=o in correct) for o in ("a", "b", "c", "d")],
        allow_multiple_answers=multi,
        points=points,
    )


def true_false(qid: str = "tf1", *, points: int = 5, correct: bool = True) -> TrueFalseQuestion:
    return TrueFalseQuestion(id=qid, title=f"{qid} title", content="True or false?", correct_answer=correct, points=points)


def fill_blank(
    qid: str = "fb1",
    *,
    points: int = 10,
    answers: tuple[str, ...] = ("Pivot", "elbow"),
    case_sensitive: bool = False,
    ai_grading: bool = False,
) -> FillInBlankQuestion:
    return FillInBlankQuestion(
        id=qid,
        title=f"{qid} title",
        content="Plant your ____ foot and keep your ____ in.",
        correct_answers=list(answers),
        case_sensitive=case_sensitive,
        ai_grading=ai_grading,
        points=points,
    )


def descriptive(qid: str = "d1", *, points: int = 10) -> DescriptiveQuestion:
    return DescriptiveQuestion(
        id=qid,
        title="Explain the closeout",
        content="How do you close out on a shooter?",
        sample_answer="Sprint then chop your steps, high hand, stay balanced.",
        rubric="Mentions chopping steps\nMentions a high hand",
        min_words=10,
        max_words=100,
        points=points,
    )


def build_quiz(*questions, passing_score: float = 70.0, quiz_id: str = "quiz1") -> Quiz:
    return Quiz(
        id=quiz_id,
        title="Test quiz",
        questions=list(questions),
        settings=QuizSettings(passing_score=passing_score),
        skill_id="skill_a",
        sport_id="sport_a",
    )


def build_curriculum(n: int = 4, *, first_unlocked: bool = True) -> list[CurriculumItem]:
    items = []
    for order in range(1, n + 1):
        status = "unlocked" if (order == 1 and first_unlocked) else "locked"
        items.append(CurriculumItem(id=f"item_{order}", type="lesson" if order % 2 else "quiz", order=order, status=status))
    return items


def quiz_doc(quiz_id: str = "quiz_doc_1") -> dict:
    return {
        "id": quiz_id,
        "title": "Footwork",
        "skillId": "skill_footwork",
        "sportId": "sport_basketball",
        "settings": {"passingScore": 70},
        "questions": [
            {
                "id": "q1",
                "type": "multiple_choice",
                "title": "Best pivot foot?",
                "content": "Pick one",
                "points": 5,
                "allowMultipleAnswers": False,
                "options": [
                    {"id": "a", "text": "Either", "isCorrect": False},
                    {"id": "b", "text": "The first to land", "isCorrect": True},
                ],
            },
            {
                "id": "q2",
                "type": "true_false",
                "title": "Travelling is legal after a jump stop",
                "content": "True or false?",
                "points": 5,
                "correctAnswer": True,
            },
            {
                "id": "q3",
                "type": "fill_in_blank",
                "title": "Cue",
                "content": "Stay ____",
                "points": 10,
                "caseSensitive": False,
                "correctAnswers": ["low"],
            },
        ],
    }


@pytest.fixture
def stub_grader() -> StubGrader:
    return StubGrader(result=GradeResult(is_correct=True, points_earned=7.0, feedback="Good"))


@pytest.fixture
def curriculum() -> list[CurriculumItem]:
    return build_curriculum()


def reload_app(tmp_path) -> tuple[object, object]:
    """Re-import the API against a fresh DATA_DIR."""
    os.environ["DATA_DIR"] = str(tmp_path)
    if "api.storage" in sys.modules:
        importlib.reload(sys.modules["api.storage"])
    else:
        import api.storage  # noqa: F401
    storage = sys.modules["api.storage"]
    if "api.app" in sys.modules:
        importlib.reload(sys.modules["api.app"])
    else:
        import api.app  # noqa: F401
    app_module = sys.modules["api.app"]
    return storage, app_module

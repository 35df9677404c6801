from __future__ import annotations

from learn_core import config
from learn_core.grading_bridge import GradeResult, HttpGrader
from learn_core.scoring import evaluate
from tests.conftest import StubGrader, descriptive, offline_grader


def test_unreachable_grader_yields_zero_credit():
    res = evaluate(descriptive(points=10), "Chop your steps and get a high hand up.", grader=offline_grader())
    assert res.is_correct is False
    assert res.points_earned == 0
    assert res.graded_by == "fallback"


def test_unconfigured_endpoint_falls_back(monkeypatch):
    monkeypatch.setattr(config, "GRADING_URL", "")
    res = evaluate(descriptive(), "Chop your steps.")
    assert res.is_correct is False and res.points_earned == 0


def test_unexpected_grader_error_never_escapes():
    res = evaluate(descriptive(), "Chop your steps.", grader=StubGrader(exc=KeyError("boom")))
    assert res.points_earned == 0 and not res.is_correct


def test_remote_verdict_used_with_partial_credit(stub_grader):
    res = evaluate(descriptive(points=10), "Sprint, chop, high hand.", grader=stub_grader, time_spent=40)
    assert res.is_correct is True
    assert res.points_earned == 7.0
    assert res.feedback == "Good"
    assert res.graded_by == "remote"
    assert res.time_spent == 40

    req = stub_grader.calls[0]
    assert req.question_text == "Explain the closeout"
    assert req.question_content == "How do you close out on a shooter?"
    assert req.user_answer == "Sprint, chop, high hand."
    assert req.sample_answer.startswith("Sprint")
    assert "high hand" in req.rubric
    assert req.correct_answer is None
    assert req.max_points == 10


def test_partial_credit_allowed_without_correct_flag():
    grader = StubGrader(result=GradeResult(is_correct=False, points_earned=3.5))
    res = evaluate(descriptive(points=10), "Some effort.", grader=grader)
    assert res.is_correct is False and res.points_earned == 3.5


def test_remote_points_clamped_to_question_points():
    high = evaluate(descriptive(points=10), "x y z", grader=StubGrader(result=GradeResult(True, 99)))
    assert high.points_earned == 10
    low = evaluate(descriptive(points=10), "x y z", grader=StubGrader(result=GradeResult(False, -4)))
    assert low.points_earned == 0


def test_blank_answer_or_zero_points_skips_grader(stub_grader):
    assert evaluate(descriptive(), "   ", grader=stub_grader).points_earned == 0
    assert evaluate(descriptive(points=0), "real answer", grader=stub_grader).points_earned == 0
    assert stub_grader.calls == []


def test_non_text_answer_is_malformed(stub_grader):
    res = evaluate(descriptive(), ["a", "list"], grader=stub_grader)
    assert res.points_earned == 0 and stub_grader.calls == []


def test_word_limits_are_not_enforced(stub_grader):
    res = evaluate(descriptive(), "short", grader=stub_grader)
    assert res.points_earned == 7.0


def test_http_grader_transport_failure_falls_back():
    import httpx

    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    grader = HttpGrader(url="http://grader.test/grade", transport=httpx.MockTransport(_boom))
    res = evaluate(descriptive(), "Chop your steps.", grader=grader)
    assert res.points_earned == 0 and not res.is_correct


def test_grader_returning_the_wrong_type_falls_back():
    for bogus in (None, {"isCorrect": True, "pointsEarned": 10}, "yes"):
        res = evaluate(descriptive(), "Chop your steps.", grader=lambda req, out=bogus: out)
        assert res.is_correct is False and res.points_earned == 0
        assert res.graded_by == "fallback"


def test_non_numeric_time_spent_is_zeroed(stub_grader):
    assert evaluate(descriptive(), "Chop.", grader=stub_grader, time_spent="soon").time_spent == 0
    assert evaluate(descriptive(), "Chop.", grader=stub_grader, time_spent=float("nan")).time_spent == 0
    assert evaluate(descriptive(), "Chop.", grader=stub_grader, time_spent="12.5").time_spent == 12.5

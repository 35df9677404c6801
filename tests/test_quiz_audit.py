from __future__ import annotations

import json

import learn_core.audit_quiz as audit_quiz
from learn_core import config
from tests.conftest import quiz_doc


def test_clean_quiz_has_no_warnings():
    summary = audit_quiz.audit_quiz(quiz_doc())
    assert summary["warnings"] == []
    assert summary["totals"]["multiple_choice"] == 1
    assert summary["totals"]["points"] == 20


def test_flags_grading_pitfalls(tmp_path):
    doc = quiz_doc()
    doc["questions"][0]["options"].append({"id": "c", "text": "Right foot", "isCorrect": True})
    doc["questions"][1]["correctAnswer"] = "yes"
    doc["questions"][2]["correctAnswers"] = []
    doc["questions"].append({"id": "q1", "type": "descriptive", "title": "Why", "content": "Explain",
                             "points": 5, "minWords": 50, "maxWords": 10})
    doc["settings"]["passingScore"] = 140

    summary = audit_quiz.audit_quiz(doc)
    joined = "\n".join(summary["warnings"])
    assert "marks 2 options correct; any of them will be accepted" in joined
    assert "q2: true_false correctAnswer must be a boolean" in joined
    assert "q3: fill_in_blank has no correctAnswers" in joined
    assert "minWords 50 exceeds maxWords 10" in joined
    assert "neither sampleAnswer nor rubric" in joined
    assert "question id q1 appears 2 times" in joined
    assert "passingScore 140 is outside 0-100" in joined

    out = tmp_path / "audit.json"
    text = audit_quiz.write_summary(summary, path=out)
    assert out.read_text(encoding="utf-8").strip() == text


def test_zero_point_quiz_warns(monkeypatch):
    monkeypatch.setattr(config, "AUDIT_MIN_QUESTIONS", 5)
    doc = quiz_doc()
    for q in doc["questions"]:
        q["points"] = 0
    joined = "\n".join(audit_quiz.audit_quiz(doc)["warnings"])
    assert "awards no points" in joined
    assert "quiz has 3 questions (<5)" in joined


def test_main_returns_warning_exit(tmp_path, capsys):
    clean = tmp_path / "clean.json"
    clean.write_text(json.dumps(quiz_doc()), encoding="utf-8")
    assert audit_quiz.main([str(clean), "--out", str(tmp_path / "a.json")]) == 0
    assert "No warnings." in capsys.readouterr().out

    doc = quiz_doc()
    doc["questions"][2]["correctAnswers"] = [" "]
    dirty = tmp_path / "dirty.json"
    dirty.write_text(json.dumps(doc), encoding="utf-8")
    assert audit_quiz.main([str(dirty), "--out", str(tmp_path / "b.json")]) == 2
    assert "empty correct answer" in capsys.readouterr().out


def test_packaged_sample_is_clean(tmp_path):
    assert audit_quiz.main(["--out", str(tmp_path / "sample.json")]) == 0

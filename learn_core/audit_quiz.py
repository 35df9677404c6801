from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable

from . import config
from .quiz_bank import load_quiz_doc
from .types import QUESTION_TYPES


def _blank_totals() -> dict[str, int]:
    totals = {t: 0 for t in QUESTION_TYPES}
    totals["points"] = 0
    return totals


def _question_warnings(q: Dict[str, Any]) -> list[str]:
    qid = q.get("id", "?")
    t = q.get("type")
    out: list[str] = []
    try:
        points = int(q.get("points") or 0)
    except (TypeError, ValueError):
        points = -1
    if points < 0:
        out.append(f"{qid}: points must be a non-negative integer (got {q.get('points')!r})")

    if t == "multiple_choice":
        options = q.get("options") or []
        correct = [o for o in options if str(o.get("isCorrect")).strip().lower() == "true"]
        ids = [o.get("id") for o in options]
        if not correct:
            out.append(f"{qid}: multiple_choice has no correct option")
        multi = q.get("allowMultipleAnswers", q.get("allowMultiple", False))
        if len(correct) > 1 and not multi:
            out.append(f"{qid}: single-answer multiple_choice marks {len(correct)} options correct; any of them will be accepted")
        dupes = [i for i, n in Counter(ids).items() if n > 1]
        if dupes:
            out.append(f"{qid}: duplicate option ids {sorted(map(str, dupes))}")
    elif t == "true_false":
        if not isinstance(q.get("correctAnswer"), bool):
            out.append(f"{qid}: true_false correctAnswer must be a boolean")
    elif t == "fill_in_blank":
        answers = q.get("correctAnswers") or []
        if not answers:
            out.append(f"{qid}: fill_in_blank has no correctAnswers")
        elif any(not str(a).strip() for a in answers):
            out.append(f"{qid}: fill_in_blank has an empty correct answer")
    elif t == "descriptive":
        lo, hi = q.get("minWords"), q.get("maxWords")
        if isinstance(lo, int) and isinstance(hi, int) and lo > hi:
            out.append(f"{qid}: minWords {lo} exceeds maxWords {hi}")
        if not q.get("sampleAnswer") and not q.get("rubric"):
            out.append(f"{qid}: descriptive has neither sampleAnswer nor rubric; grading will be unguided")
    else:
        out.append(f"{qid}: unknown question type {t!r}")
    return out


def audit_quiz(doc: Dict[str, Any]) -> dict[str, object]:
    questions: Iterable[Dict[str, Any]] = doc.get("questions") or []
    totals = _blank_totals()
    warnings: list[str] = []
    seen: Counter[str] = Counter()

    for q in questions:
        seen[str(q.get("id"))] += 1
        t = q.get("type")
        if t in totals:
            totals[t] += 1
        try:
            totals["points"] += max(0, int(q.get("points") or 0))
        except (TypeError, ValueError):
            pass
        warnings.extend(_question_warnings(q))

    for qid, n in seen.items():
        if n > 1:
            warnings.append(f"question id {qid} appears {n} times")

    count = sum(seen.values())
    if count < config.AUDIT_MIN_QUESTIONS:
        warnings.append(f"quiz has {count} questions (<{config.AUDIT_MIN_QUESTIONS})")

    passing = (doc.get("settings") or {}).get("passingScore", config.DEFAULT_PASSING_SCORE)
    if not isinstance(passing, (int, float)) or not 0 <= passing <= 100:
        warnings.append(f"passingScore {passing!r} is outside 0-100")
    if totals["points"] == 0 and count:
        warnings.append("quiz awards no points; every attempt scores 0%")

    return {"quizId": doc.get("id"), "totals": totals, "warnings": warnings}


def print_report(summary: dict[str, object]) -> None:
    print(f"=== Quiz audit: {summary.get('quizId')} ===")
    totals: dict[str, int] = summary["totals"]  # type: ignore[assignment]
    for t in QUESTION_TYPES:
        print(f"  {t:16s} {totals.get(t, 0):3d}")
    print(f"  {'max points':16s} {totals.get('points', 0):3d}")

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")


def write_summary(summary: dict[str, object], path: Path = Path("/tmp/quiz_audit.json")) -> str:
    text = json.dumps(summary, indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    return text


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Audit a quiz definition for grading pitfalls.")
    ap.add_argument("quiz", nargs="?", help="quiz JSON file (defaults to the packaged sample)")
    ap.add_argument("--out", default="/tmp/quiz_audit.json")
    args = ap.parse_args(argv)

    summary = audit_quiz(load_quiz_doc(args.quiz))
    print_report(summary)
    write_summary(summary, path=Path(args.out))
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())

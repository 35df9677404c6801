from __future__ import annotations
import argparse, json, time
from typing import Any
from learn_core.quiz_bank import load_quiz
from learn_core.scoring import score_quiz, build_completion_record
from learn_core.types import (
    DescriptiveQuestion, FillInBlankQuestion, MultipleChoiceQuestion, Submission, TrueFalseQuestion,
)

def ask(prompt: str, options=None) -> str:
    if options:
        print(prompt)
        for i,opt in enumerate(options): print(f"  [{i}] {opt.text}")
        while True:
            v = input("Your choice (index, comma-separated if several): ").strip()
            if v and all(p.strip().isdigit() and int(p) < len(options) for p in v.split(",")): return v
            print("Enter option indexes.")
    else:
        return input(prompt + " ").strip()

def answer_for(q) -> Any:
    head = f"\n{q.title}\n{q.content}" if q.content and q.content != q.title else f"\n{q.title}"
    if isinstance(q, MultipleChoiceQuestion):
        picks = [q.options[int(p)].id for p in ask(head, q.options).split(",")]
        return picks if q.allow_multiple_answers else picks[0]
    if isinstance(q, TrueFalseQuestion):
        return ask(head + "  [true/false]")
    if isinstance(q, FillInBlankQuestion):
        return [ask(f"{head}\n  blank {i+1}:") for i in range(len(q.correct_answers))]
    if isinstance(q, DescriptiveQuestion):
        return ask(head + "\n  Your answer:")
    return ask(head)

def main():
    ap = argparse.ArgumentParser(description="Take a quiz in the terminal.")
    ap.add_argument("quiz", nargs="?", help="quiz JSON file (defaults to the packaged sample)")
    ap.add_argument("--user", default="cli_user")
    args = ap.parse_args()

    quiz = load_quiz(args.quiz)
    print(f"{quiz.title} ({len(quiz.questions)} questions, pass at {quiz.settings.passing_score:g}%)")
    subs = {}
    for q in quiz.questions:
        t0 = time.perf_counter(); v = answer_for(q); rt = time.perf_counter() - t0
        subs[q.id] = Submission(q.id, v, rt)
    res = score_quiz(quiz, subs)
    for a in res.answers:
        mark = "✓" if a.is_correct else "✗"
        print(f"  {mark} {a.question_id}: {a.points_earned:g} pts ({a.graded_by})" + (f" - {a.feedback}" if a.feedback else ""))
    print(f"Score {res.score:g}/{res.max_score:g} = {res.percentage:.1f}% -> {'PASSED' if res.passed else 'not passed'}")
    print(json.dumps(build_completion_record(args.user, quiz, res), indent=2))
if __name__ == "__main__": main()

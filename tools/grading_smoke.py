# tools/grading_smoke.py
from __future__ import annotations
import argparse
from learn_core import config
from learn_core.grading_bridge import GradeRequest, GradingServiceUnavailable, HttpGrader

def main():
    ap = argparse.ArgumentParser(description="Send one descriptive grading request to the grading endpoint.")
    ap.add_argument("--url", default=None, help="override GRADING_URL")
    ap.add_argument("--answer", default="Keep the ball low, sell the drive with your shoulders, then cross and attack the lead foot.")
    args = ap.parse_args()

    grader = HttpGrader(url=args.url)
    print("Endpoint :", grader.url or "(not configured)")
    print("Timeout  :", grader.timeout, "s")
    req = GradeRequest(
        question_id="smoke",
        question_text="Crossover under pressure",
        question_content="Describe how you would set up a crossover against a defender overplaying your strong hand.",
        user_answer=args.answer,
        max_points=10,
        sample_answer="Sell the strong-hand drive, keep the cross low and tight, explode past the lead foot.",
    )
    try:
        r = grader(req)
        print("Correct  :", r.is_correct)
        print("Points   :", r.points_earned, "/", req.max_points)
        print("Feedback :", r.feedback)
    except GradingServiceUnavailable as e:
        print("Grading unavailable:", e)
        print("→ Quizzes still score; descriptive answers fall back to 0 points.")
        if not config.GRADING_URL and not args.url:
            print("→ Set GRADING_URL, e.g. http://localhost:8000/api/ai/grade-answer")
        raise SystemExit(1)

if __name__ == "__main__":
    main()

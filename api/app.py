from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uuid, os, logging, typing as t

from learn_core import config
from learn_core.types import CurriculumItem, ITEM_TYPES, Submission, quiz_from_dict, item_from_dict
from learn_core.scoring import build_completion_record, check_eligibility, score_quiz
from learn_core.grading_bridge import GradeRequest, Grader
from learn_core.llm_grader import LLMGradingError, LLMNotConfigured, backend_in_use, grade_answer
from learn_core.progress import (
    ProgressResult,
    add_item,
    compute_unlocks,
    next_item,
    next_order,
    progress_summary,
    record_completion,
    remove_item,
    reorder_items,
    start_item,
)
from learn_core.audit_quiz import audit_quiz
from learn_core.attempt_export import to_json as answers_to_json, to_csv as answers_to_csv
from .storage import (
    delete_curriculum,
    list_attempts_for_user,
    list_curricula_for_coach,
    list_curricula_for_student,
    list_quiz_attempts,
    load_attempt,
    load_curriculum,
    load_quiz,
    save_attempt,
    save_curriculum,
    save_quiz,
    utcnow_iso,
    valid_id,
)

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)

# None means the HTTP grader built from GRADING_URL
GRADER: Grader | None = None

app = FastAPI(title="Learn Core API")


@app.get("/")
def root():
    return {"status": "ok", "service": "learn-core-api"}


ALLOWED_ORIGINS = [
    "http://localhost:3000",
    *[o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()],
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class GradeAnswerReq(BaseModel):
    questionText: str = ""
    questionContent: str = ""
    userAnswer: str | list[str] | None = None
    correctAnswer: list[str] | None = None
    sampleAnswer: str | None = None
    rubric: str | list[str] | None = None
    maxPoints: float | None = None

class AnswerIn(BaseModel):
    questionId: str
    answer: t.Any = None
    timeSpent: float = 0.0

class AttemptReq(BaseModel):
    userId: str
    answers: list[AnswerIn] = []
    timeSpent: float | None = None

class ItemIn(BaseModel):
    id: str | None = None
    type: str = "lesson"
    contentId: str | None = None
    order: int | None = None
    title: str | None = None
    estimatedMinutes: int | None = None

class CurriculumReq(BaseModel):
    studentId: str
    coachId: str
    items: list[ItemIn] = []

class ReorderReq(BaseModel):
    itemIds: list[str]
    userId: str | None = None

class ActorReq(BaseModel):
    userId: str | None = None

# ---- Helpers ----
def _fail(status: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "error": error})


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _build_item(spec: ItemIn, order: int) -> CurriculumItem:
    if spec.type not in ITEM_TYPES:
        raise HTTPException(400, f"unknown item type {spec.type!r}")
    return CurriculumItem(
        id=spec.id or _new_id("item"),
        type=spec.type,  # type: ignore[arg-type]
        order=order,
        content_id=spec.contentId,
        title=spec.title,
        estimated_minutes=spec.estimatedMinutes,
    )


def _load_items(curriculum_id: str) -> tuple[dict[str, t.Any], list[CurriculumItem]]:
    doc = load_curriculum(curriculum_id)
    if not doc:
        raise HTTPException(404, "curriculum not found")
    return doc, [item_from_dict(d) for d in doc.get("items") or []]


def _store_items(doc: dict[str, t.Any], items: list[CurriculumItem], user_id: str | None) -> dict[str, t.Any]:
    doc = dict(doc)
    doc["items"] = [it.to_dict() for it in items]
    doc["updatedAt"] = utcnow_iso()
    if user_id:
        doc["lastModifiedBy"] = user_id
    save_curriculum(doc["id"], doc)
    return doc


def _progress_payload(res: ProgressResult, doc: dict[str, t.Any]) -> dict[str, t.Any]:
    nxt = next_item(res.items)
    return {
        "status": res.status,
        "item": res.item.to_dict() if res.item else None,
        "next": nxt.to_dict() if nxt else None,
        "curriculum": doc,
    }

# ---- Health ----
@app.get("/health")
def health():
    return {
        "grading_url_configured": bool(config.GRADING_URL),
        "llm_backend": backend_in_use(),
        "azure_config_present": all(os.getenv(k) for k in [
            "AZURE_OPENAI_ENDPOINT","AZURE_OPENAI_API_KEY","AZURE_OPENAI_API_VERSION","AZURE_OPENAI_DEPLOYMENT"
        ]),
    }

# ---- Grading service ----
@app.post("/api/ai/grade-answer")
def grade_answer_endpoint(req: GradeAnswerReq):
    answer = req.userAnswer
    has_answer = bool(answer.strip()) if isinstance(answer, str) else bool(answer and any(a.strip() for a in answer))
    if not req.questionText.strip() or not req.questionContent.strip() or not has_answer:
        return _fail(400, "Missing required fields: questionText, questionContent, userAnswer")
    if req.maxPoints is None or req.maxPoints <= 0:
        return _fail(400, "maxPoints must be a positive number")

    rubric = "\n".join(req.rubric) if isinstance(req.rubric, list) else req.rubric
    grade_req = GradeRequest(
        question_id="api",
        question_text=req.questionText,
        question_content=req.questionContent,
        user_answer=answer,  # type: ignore[arg-type]
        max_points=req.maxPoints,
        correct_answer=req.correctAnswer,
        sample_answer=req.sampleAnswer,
        rubric=rubric,
    )
    try:
        res = grade_answer(grade_req)
    except LLMNotConfigured as e:
        log.warning("grade-answer requested without an LLM backend: %s", e)
        return _fail(503, "Grading backend not configured")
    except LLMGradingError as e:
        log.error("failed to grade answer for %r: %s", req.questionText[:80], e)
        return _fail(500, "Failed to grade answer")

    log.info("graded answer for %r: correct=%s points=%.2f", req.questionText[:80], res.is_correct, res.points_earned)
    return {
        "success": True,
        "isCorrect": res.is_correct,
        "pointsEarned": res.points_earned,
        "maxPoints": req.maxPoints,
        "feedback": res.feedback,
    }

# ---- Quizzes ----
@app.put("/quizzes/{quiz_id}")
def put_quiz(quiz_id: str, doc: dict[str, t.Any] = Body(...)):
    if not valid_id(quiz_id):
        raise HTTPException(400, "invalid quiz id")
    doc = dict(doc); doc["id"] = quiz_id
    try:
        quiz = quiz_from_dict(doc, default_passing_score=config.DEFAULT_PASSING_SCORE)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise HTTPException(422, f"invalid quiz definition: {e}")
    save_quiz(quiz_id, doc)
    return {"ok": True, "quizId": quiz_id, "maxScore": quiz.max_score, "warnings": audit_quiz(doc)["warnings"]}


@app.get("/quizzes/{quiz_id}")
def get_quiz(quiz_id: str):
    doc = load_quiz(quiz_id)
    if not doc:
        raise HTTPException(404, "quiz not found")
    return doc


@app.get("/quizzes/{quiz_id}/eligibility")
def get_eligibility(quiz_id: str, userId: str):
    doc = load_quiz(quiz_id)
    if not doc:
        raise HTTPException(404, "quiz not found")
    quiz = quiz_from_dict(doc, default_passing_score=config.DEFAULT_PASSING_SCORE)
    return check_eligibility(quiz, list_quiz_attempts(userId, quiz_id))


@app.post("/quizzes/{quiz_id}/attempts")
def submit_attempt(quiz_id: str, req: AttemptReq):
    doc = load_quiz(quiz_id)
    if not doc:
        raise HTTPException(404, "quiz not found")
    quiz = quiz_from_dict(doc, default_passing_score=config.DEFAULT_PASSING_SCORE)
    gate = check_eligibility(quiz, list_quiz_attempts(req.userId, quiz_id))
    if not gate["eligible"]:
        log.info("attempt by %s on %s refused: %s", req.userId, quiz_id, gate["reason"])
        return _fail(409, gate["reason"])
    subs = {a.questionId: Submission(a.questionId, a.answer, max(0.0, a.timeSpent)) for a in req.answers}
    result = score_quiz(quiz, subs, grader=GRADER)
    record = build_completion_record(req.userId, quiz, result, req.timeSpent)
    attempt_id = str(uuid.uuid4())
    record.update(
        id=attempt_id,
        submittedAt=utcnow_iso(),
        passingScore=quiz.settings.passing_score,
        attemptNumber=gate["attemptNumber"],
    )
    save_attempt(attempt_id, record)
    log.info("attempt %s by %s on %s: %.1f%% passed=%s", attempt_id, req.userId, quiz_id, result.percentage, result.passed)
    return record


@app.get("/attempts/{attempt_id}")
def get_attempt(attempt_id: str):
    rec = load_attempt(attempt_id)
    if not rec:
        raise HTTPException(404, "attempt not found")
    return rec


@app.get("/attempts/{attempt_id}/answers.json")
def get_answers_json(attempt_id: str):
    rec = load_attempt(attempt_id)
    if not rec:
        raise HTTPException(404, "attempt not found")
    return {"attempt_id": attempt_id, **answers_to_json(rec.get("answers") or [])}


@app.get("/attempts/{attempt_id}/answers.csv")
def get_answers_csv(attempt_id: str):
    rec = load_attempt(attempt_id)
    if not rec:
        raise HTTPException(404, "attempt not found")
    body = answers_to_csv(rec.get("answers") or [])
    filename = f"{attempt_id}_answers.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )


@app.get("/users/{user_id}/attempts")
def list_attempts(user_id: str):
    return {"attempts": list_attempts_for_user(user_id)}

# ---- Curricula ----
@app.post("/curricula")
def create_curriculum(req: CurriculumReq):
    items: list[CurriculumItem] = []
    nxt = 0
    for spec in req.items:
        order = spec.order if spec.order is not None else nxt
        items.append(_build_item(spec, order))
        nxt = max(nxt, order + 1)
    if len({it.id for it in items}) != len(items):
        raise HTTPException(400, "duplicate item ids")
    now = utcnow_iso()
    doc = {
        "id": _new_id("curriculum"),
        "studentId": req.studentId,
        "coachId": req.coachId,
        "createdAt": now,
        "lastModifiedBy": req.coachId,
    }
    return _store_items(doc, compute_unlocks(items, now=now), req.coachId)


@app.get("/curricula/{curriculum_id}")
def get_curriculum(curriculum_id: str):
    doc, _items = _load_items(curriculum_id)
    return doc


@app.get("/students/{student_id}/curricula")
def list_curricula(student_id: str):
    return {"curricula": list_curricula_for_student(student_id)}


@app.get("/coaches/{coach_id}/curricula")
def list_coach_curricula(coach_id: str):
    return {"curricula": list_curricula_for_coach(coach_id)}


@app.delete("/curricula/{curriculum_id}")
def remove_curriculum(curriculum_id: str):
    doc, _items = _load_items(curriculum_id)
    delete_curriculum(curriculum_id)
    log.info("deleted curriculum %s for student %s", curriculum_id, doc.get("studentId"))
    return {"success": True, "curriculumId": curriculum_id}


@app.post("/curricula/{curriculum_id}/items")
def add_curriculum_item(curriculum_id: str, spec: ItemIn):
    doc, items = _load_items(curriculum_id)
    order = spec.order if spec.order is not None else next_order(items)
    try:
        updated = add_item(items, _build_item(spec, order), now=utcnow_iso())
    except ValueError as e:
        raise HTTPException(409, str(e))
    return _store_items(doc, updated, None)


@app.delete("/curricula/{curriculum_id}/items/{item_id}")
def delete_curriculum_item(curriculum_id: str, item_id: str):
    doc, items = _load_items(curriculum_id)
    res = remove_item(items, item_id, now=utcnow_iso())
    if res.status == "not_found":
        raise HTTPException(404, "curriculum item not found")
    return _store_items(doc, res.items, None)


@app.post("/curricula/{curriculum_id}/reorder")
def reorder_curriculum(curriculum_id: str, req: ReorderReq):
    doc, items = _load_items(curriculum_id)
    try:
        updated = reorder_items(items, req.itemIds, now=utcnow_iso())
    except ValueError as e:
        raise HTTPException(400, str(e))
    return _store_items(doc, updated, req.userId)


@app.post("/curricula/{curriculum_id}/items/{item_id}/start")
def start_curriculum_item(curriculum_id: str, item_id: str, req: ActorReq | None = None):
    doc, items = _load_items(curriculum_id)
    res = start_item(items, item_id)
    if res.status == "not_found":
        raise HTTPException(404, "curriculum item not found")
    if res.status == "locked":
        raise HTTPException(409, "curriculum item is locked")
    if res.status == "ok" and res.items != items:
        doc = _store_items(doc, res.items, req.userId if req else None)
    return _progress_payload(res, doc)


@app.post("/curricula/{curriculum_id}/items/{item_id}/complete")
def complete_curriculum_item(curriculum_id: str, item_id: str, req: ActorReq | None = None):
    doc, items = _load_items(curriculum_id)
    res = record_completion(items, item_id, now=utcnow_iso())
    if res.status == "not_found":
        raise HTTPException(404, "curriculum item not found")
    if res.changed:
        doc = _store_items(doc, res.items, req.userId if req else None)
    return _progress_payload(res, doc)


@app.get("/curricula/{curriculum_id}/next")
def get_next_item(curriculum_id: str):
    _doc, items = _load_items(curriculum_id)
    nxt = next_item(items)
    return {"item": nxt.to_dict() if nxt else None}


@app.get("/curricula/{curriculum_id}/progress")
def get_progress(curriculum_id: str):
    doc, items = _load_items(curriculum_id)
    return {"studentId": doc.get("studentId"), **progress_summary(items)}

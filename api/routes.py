"""
api/routes.py — FastAPI 엔드포인트
"""

import asyncio
import random
from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

import config
from api.deps import Services
from mcq_exam.models.attempt_model import Attempt, AttemptAnswer, AttemptViolation, ViolationType
from mcq_exam.models.exam_model import RandomizationRule
from mcq_exam.services import exam_timer
from mcq_exam.services.errors import (
    AnswerValidationError,
    ExamUnavailableError,
    InsufficientPoolError,
    NotFoundError,
)
from mcq_exam.services.proctoring import ProctoringSignal
from mcq_exam.services.randomizer import select_questions
from mcq_exam.services.review_service import build_review

router = APIRouter()


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


# ── Pydantic request bodies ──────────────────────────────────────────────────

class SaveAnswersBody(BaseModel):
    answers: List[AttemptAnswer]

class ViolationBody(BaseModel):
    type: ViolationType
    details: Optional[str] = None

class SignalBody(BaseModel):
    signal: ProctoringSignal
    details: Optional[str] = None

class InvalidateBody(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

class RandomSelectBody(RandomizationRule):
    seed: Optional[int] = Field(None, description="지정 시 같은 결과 재현")


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _services(request: Request) -> Services:
    return request.app.state.services


def _role(request: Request) -> UserRole:
    return request.state.role


def _require_staff(request: Request) -> None:
    if _role(request) == UserRole.STUDENT:
        raise HTTPException(status_code=403, detail="권한이 없습니다.")


def _load_attempt(request: Request, attempt_id: str) -> Attempt:
    """시도를 조회하고 소유자 확인. 학생은 본인 시도만 접근 가능."""
    try:
        attempt = _services(request).attempts.get(attempt_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="시도를 찾을 수 없습니다.")
    if _role(request) == UserRole.STUDENT and attempt.user_id != request.state.user_id:
        raise HTTPException(status_code=403, detail="본인의 시도만 조회할 수 있습니다.")
    return attempt


def _attempt_to_dict(attempt: Attempt) -> dict:
    return attempt.model_dump(mode="json")


def _questions_for_client(attempt: Attempt) -> list:
    """시도 순서/보기 순서를 반영한 문제 목록 (정답 제외)."""
    out = []
    for q in attempt.question_snapshot:
        view = q.public_view()
        order = attempt.option_order.get(q.id)
        if order and view["options"]:
            by_id = {o["id"]: o for o in view["options"]}
            view["options"] = [by_id[oid] for oid in order]
        out.append(view)
    return out


def _timer_dict(remaining: int) -> dict:
    return {
        "remaining_ms": remaining,
        "display": exam_timer.format_remaining(remaining),
        "level": exam_timer.timer_level(remaining),
        "time_up": remaining == 0,
    }


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.get("/health")
async def health():
    return {"ok": True}


@router.get("/api/exams/{exam_id}")
async def get_exam(exam_id: str, request: Request):
    try:
        exam = _services(request).attempts.get_exam(exam_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="시험을 찾을 수 없습니다.")
    return {
        "id": exam.id,
        "title": exam.title,
        "description": exam.description,
        "question_count": (
            exam.randomization_rule.total_questions if exam.randomization_rule else len(exam.questions)
        ),
        "settings": exam.settings.model_dump(mode="json"),
        "proctoring": exam.proctoring.model_dump(mode="json"),
        "visibility": exam.visibility.value,
    }


@router.post("/api/exams/{exam_id}/attempts")
async def start_attempt(exam_id: str, request: Request):
    svc = _services(request)
    try:
        attempt = await asyncio.to_thread(svc.attempts.start, exam_id, request.state.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ExamUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InsufficientPoolError as e:
        raise HTTPException(status_code=422, detail=str(e))

    remaining = svc.attempts.remaining_ms(attempt.id)
    return {
        "attempt": _attempt_to_dict(attempt),
        "questions": _questions_for_client(attempt),
        "proctoring": attempt.proctoring_settings.model_dump(mode="json"),
        "autosave_interval_seconds": config.AUTOSAVE_INTERVAL_SECONDS,
        "timer": _timer_dict(remaining),
    }


@router.get("/api/attempts/{attempt_id}")
async def get_attempt(attempt_id: str, request: Request):
    return _attempt_to_dict(_load_attempt(request, attempt_id))


@router.put("/api/attempts/{attempt_id}/answers")
async def save_answers(attempt_id: str, body: SaveAnswersBody, request: Request):
    _load_attempt(request, attempt_id)
    svc = _services(request)
    try:
        await asyncio.to_thread(svc.attempts.save_answers, attempt_id, body.answers)
    except AnswerValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"ok": True}


@router.post("/api/attempts/{attempt_id}/submit")
async def submit_attempt(attempt_id: str, request: Request):
    _load_attempt(request, attempt_id)
    attempt = await asyncio.to_thread(_services(request).attempts.submit, attempt_id)
    return _attempt_to_dict(attempt)


@router.post("/api/attempts/{attempt_id}/violations")
async def record_violation(attempt_id: str, body: ViolationBody, request: Request):
    _load_attempt(request, attempt_id)
    svc = _services(request)
    violation = AttemptViolation(type=body.type, timestamp=svc.clock(), details=body.details)
    await asyncio.to_thread(svc.attempts.record_violation, attempt_id, violation)
    return {"ok": True}


@router.post("/api/attempts/{attempt_id}/signals")
async def report_signal(attempt_id: str, body: SignalBody, request: Request):
    attempt = _load_attempt(request, attempt_id)
    svc = _services(request)
    response = await asyncio.to_thread(
        svc.monitor.handle, attempt_id, body.signal, attempt.proctoring_settings, body.details
    )
    return {
        "violation": response.violation.model_dump(mode="json") if response.violation else None,
        "recorded": response.recorded,
        "prevent_default": response.prevent_default,
        "require_fullscreen": response.require_fullscreen,
    }


@router.get("/api/attempts/{attempt_id}/timer")
async def get_timer(attempt_id: str, request: Request):
    _load_attempt(request, attempt_id)
    return _timer_dict(_services(request).attempts.remaining_ms(attempt_id))


@router.get("/api/attempts/{attempt_id}/review")
async def get_review(attempt_id: str, request: Request):
    attempt = _load_attempt(request, attempt_id)
    try:
        return build_review(attempt, _services(request).clock(), config.PASS_SCORE)
    except ExamUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/api/attempts/{attempt_id}/invalidate")
async def invalidate_attempt(attempt_id: str, body: InvalidateBody, request: Request):
    _require_staff(request)
    _load_attempt(request, attempt_id)
    attempt = await asyncio.to_thread(_services(request).attempts.invalidate, attempt_id, body.reason)
    return _attempt_to_dict(attempt)


@router.post("/api/questions/random")
async def select_random_questions(body: RandomSelectBody, request: Request):
    _require_staff(request)
    svc = _services(request)
    rng = random.Random(body.seed) if body.seed is not None else svc.rng_factory()
    rule = RandomizationRule(**body.model_dump(exclude={"seed"}))
    try:
        question_ids = select_questions(rule, svc.bank.list_questions(), rng)
    except InsufficientPoolError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"question_ids": question_ids, "count": len(question_ids)}

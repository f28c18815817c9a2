"""
services/review_service.py

제출된 시도의 결과 요약과 문항별 리뷰 (결과 화면용).
해설/정답 공개 여부는 시험 설정 show_solutions 를 따른다.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from mcq_exam.models.attempt_model import Attempt, AttemptStatus
from mcq_exam.models.exam_model import ShowSolutions
from mcq_exam.models.question_model import QuestionType
from mcq_exam.services.errors import ExamUnavailableError
from mcq_exam.services.evaluator import evaluate
from mcq_exam.services.score_service import is_passed


class AnswerStatus(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    NOT_ANSWERED = "not_answered"


def can_show_solutions(attempt: Attempt, now: datetime) -> bool:
    """
    정답/해설 공개 여부.
    - never:        공개 안 함
    - after_submit: 제출 직후 공개
    - after_window: 응시 기간(end_window) 종료 후 공개. 기간이 없으면 제출 직후
    """
    if attempt.status != AttemptStatus.SUBMITTED:
        return False
    settings = attempt.exam_settings
    if settings.show_solutions == ShowSolutions.NEVER:
        return False
    if settings.show_solutions == ShowSolutions.AFTER_WINDOW:
        return settings.end_window is None or now >= settings.end_window
    return True


def answer_statuses(attempt: Attempt) -> Dict[str, AnswerStatus]:
    partial = attempt.exam_settings.partial_credit
    statuses: Dict[str, AnswerStatus] = {}
    for q in attempt.question_snapshot:
        answer = attempt.answers.get(q.id)
        if answer is None or answer.is_empty:
            statuses[q.id] = AnswerStatus.NOT_ANSWERED
        elif evaluate(q, answer, partial_credit=partial).is_correct:
            statuses[q.id] = AnswerStatus.CORRECT
        else:
            statuses[q.id] = AnswerStatus.INCORRECT
    return statuses


def summarize(attempt: Attempt, pass_score: float = 60.0) -> Dict[str, Any]:
    """
    결과 요약.

    Returns:
        {"score", "passed", "total", "correct_count", "incorrect_count",
         "unanswered_count", "time_taken_seconds", "violation_count", "breakdown"}
    """
    if attempt.status != AttemptStatus.SUBMITTED:
        raise ExamUnavailableError("결과는 제출된 시도에서만 확인할 수 있습니다.")

    counts = {status: 0 for status in AnswerStatus}
    for status in answer_statuses(attempt).values():
        counts[status] += 1

    return {
        "score": attempt.score,
        "passed": is_passed(attempt.score, pass_score),
        "total": len(attempt.question_ids),
        "correct_count": counts[AnswerStatus.CORRECT],
        "incorrect_count": counts[AnswerStatus.INCORRECT],
        "unanswered_count": counts[AnswerStatus.NOT_ANSWERED],
        "time_taken_seconds": int((attempt.submitted_at - attempt.started_at).total_seconds()),
        "violation_count": len(attempt.violations),
        "breakdown": attempt.breakdown.model_dump(),
    }


def build_review(attempt: Attempt, now: datetime, pass_score: float = 60.0) -> Dict[str, Any]:
    """결과 요약 + 문항별 리뷰. 정답/해설은 공개 조건을 만족할 때만 포함."""
    summary = summarize(attempt, pass_score)
    statuses = answer_statuses(attempt)
    show = can_show_solutions(attempt, now)
    partial = attempt.exam_settings.partial_credit

    items: List[Dict[str, Any]] = []
    for q in attempt.question_snapshot:
        answer = attempt.answers.get(q.id)
        view = q.public_view()
        order = attempt.option_order.get(q.id)
        if order and view["options"]:
            by_id = {o["id"]: o for o in view["options"]}
            view["options"] = [by_id[oid] for oid in order]

        item = {
            "question": view,
            "selected_options": answer.selected_options if answer else [],
            "marked_for_review": answer.marked_for_review if answer else False,
            "time_spent": answer.time_spent if answer else 0,
            "status": statuses[q.id].value,
            "points_earned": float(evaluate(q, answer, partial_credit=partial).points_earned),
        }
        if show:
            item["correct_options"] = (
                [q.correct_value] if q.type == QuestionType.NUMERICAL else q.correct_option_ids
            )
            item["explanation"] = q.explanation
        items.append(item)

    return {**summary, "solutions_visible": show, "questions": items}

"""
services/score_service.py

시험 채점 및 결과 집계 비즈니스 로직.
순수 Python 함수로 구성. UI 코드, 전역 상태 변경 없음.
"""

import math
from collections import defaultdict
from fractions import Fraction
from typing import Dict, List, Mapping, NamedTuple

from mcq_exam.models.attempt_model import AttemptAnswer, Breakdown, BreakdownBucket
from mcq_exam.models.exam_model import ExamSettings
from mcq_exam.models.question_model import Question
from mcq_exam.services.evaluator import evaluate


class ScoreResult(NamedTuple):
    score: int
    raw_points: float
    max_score: float
    breakdown: Breakdown


def _round_half_up(value: Fraction) -> int:
    # round()는 은행가 반올림이라 화면 표시(50.5 → 51)와 어긋남
    return math.floor(value + Fraction(1, 2))


def aggregate(
    questions: List[Question],
    answers: Mapping[str, AttemptAnswer],
    settings: ExamSettings,
) -> ScoreResult:
    """
    문항별 판정을 합산하여 100점 만점 환산 점수를 반환한다.

    채점 기준:
    - 문항당 만점 1점. 부분 점수는 evaluator가 0~1 사이로 계산.
    - 완전 오답(0점)이면서 응답한 문항에만 negative_marking 가산.
    - 미응답 문항은 감점하지 않음.

    합산과 반올림은 Fraction 으로 정확하게 계산한다. 문항 순서가 달라도
    같은 점수가 나오고, 정확히 x.5%인 경우 항상 올림된다.

    Args:
        questions: 채점 대상 Question 리스트 (시도 시작 시 스냅샷).
        answers:   {question.id: AttemptAnswer}
        settings:  시험 설정 (감점, 부분 점수).

    Returns:
        ScoreResult. score는 0 ~ 100 정수 (반올림), questions가 비어 있으면 0.
    """
    penalty = Fraction(str(settings.negative_marking))
    raw = Fraction(0)
    for q in questions:
        answer = answers.get(q.id)
        verdict = evaluate(q, answer, partial_credit=settings.partial_credit)
        points = verdict.points_earned
        if not verdict.is_correct and points == 0 and answer is not None and not answer.is_empty:
            points += penalty
        raw += points

    breakdown = calculate_breakdown(questions, answers, settings)
    if not questions:
        return ScoreResult(0, 0.0, 0.0, breakdown)

    pct = min(Fraction(100), max(Fraction(0), raw * 100 / len(questions)))
    return ScoreResult(_round_half_up(pct), float(raw), float(len(questions)), breakdown)


def calculate_breakdown(
    questions: List[Question],
    answers: Mapping[str, AttemptAnswer],
    settings: ExamSettings,
) -> Breakdown:
    """
    주제별 / 난이도별 정답 수를 집계한다 (결과 화면용).

    점수가 아니라 문항 수 기준이며 감점과 무관하다.
    키는 정렬되어 입력 순서와 관계없이 같은 결과가 나온다.
    """
    by_topic: Dict[str, Dict[str, int]] = defaultdict(lambda: {"correct": 0, "total": 0})
    by_difficulty: Dict[str, Dict[str, int]] = defaultdict(lambda: {"correct": 0, "total": 0})

    for q in questions:
        verdict = evaluate(q, answers.get(q.id), partial_credit=settings.partial_credit)
        for bucket in (by_topic[q.topic], by_difficulty[str(q.difficulty)]):
            bucket["total"] += 1
            if verdict.is_correct:
                bucket["correct"] += 1

    return Breakdown(
        by_topic={k: BreakdownBucket(**by_topic[k]) for k in sorted(by_topic)},
        by_difficulty={k: BreakdownBucket(**by_difficulty[k]) for k in sorted(by_difficulty)},
    )


def is_passed(score: float, pass_score: float = 60.0) -> bool:
    """
    합격 여부를 반환한다.

    Args:
        score:      aggregate()가 반환한 점수 (0 ~ 100).
        pass_score: 합격 기준 점수 (기본값 60점).

    Returns:
        score >= pass_score 이면 True, 아니면 False.
    """
    return score >= pass_score

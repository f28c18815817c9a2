"""
services/randomizer.py

랜덤 출제 및 시도별 섞기.
Public API:
  - select_questions(rule, pool, rng) -> List[str]   : 규칙에 맞는 문제 id 선택
  - shuffle_for_attempt(questions, settings, rng)   : 시도별 문제/보기 순서 생성

설계 원칙:
- 난이도 5단계를 3구간으로 묶음: easy(1~2) / medium(3) / hard(4~5)
- 구간이 모자라면 가장 가까운 구간에서 채워 항상 total_questions 개를 반환
- 난수원은 주입받는다 (테스트에서 시드 고정)
"""

import logging
import math
import random
from typing import Dict, List, Sequence, Tuple

from mcq_exam.models.exam_model import ExamSettings, RandomizationRule
from mcq_exam.models.question_model import Question, QuestionType
from mcq_exam.services.errors import InsufficientPoolError

logger = logging.getLogger(__name__)

BUCKETS = ("easy", "medium", "hard")

# 구간별로 부족분을 채울 때 참조하는 순서 (가까운 구간 우선)
_FALLBACK: Dict[str, Tuple[str, ...]] = {
    "easy": ("medium", "hard"),
    "medium": ("easy", "hard"),
    "hard": ("medium", "easy"),
}

# 보기를 섞지 않는 유형 (O/X 순서 고정, 주관식 숫자는 보기 없음)
_FIXED_OPTION_TYPES = (QuestionType.TRUE_FALSE, QuestionType.NUMERICAL)


def difficulty_bucket(difficulty: int) -> str:
    if difficulty <= 2:
        return "easy"
    if difficulty == 3:
        return "medium"
    return "hard"


def _matches_tags(q: Question, rule: RandomizationRule) -> bool:
    tags = set(q.tags)
    if rule.include_tags and not tags.intersection(rule.include_tags):
        return False
    return not tags.intersection(rule.exclude_tags)


def bucket_targets(rule: RandomizationRule) -> Dict[str, int]:
    """
    구간별 출제 수. round(total * pct / 100) 을 최대잔여법으로 맞춰
    합계가 항상 total_questions 가 되게 한다.
    """
    total = rule.total_questions
    dist = rule.difficulty_distribution
    exact = [total * getattr(dist, name) / 100 for name in BUCKETS]
    counts = [math.floor(x) for x in exact]
    leftover = total - sum(counts)
    # 소수부가 큰 구간부터 1개씩 (동률이면 easy → hard 순)
    order = sorted(range(len(BUCKETS)), key=lambda i: (-(exact[i] - counts[i]), i))
    for i in order[:leftover]:
        counts[i] += 1
    return dict(zip(BUCKETS, counts))


def select_questions(
    rule: RandomizationRule,
    pool: Sequence[Question],
    rng: random.Random,
) -> List[str]:
    """
    규칙에 맞게 문제 id를 뽑아 섞어서 반환한다.

    Raises:
        InsufficientPoolError: 태그 필터 후 남은 문제가 total_questions 보다 적을 때.
    """
    candidates = sorted((q for q in pool if _matches_tags(q, rule)), key=lambda q: q.id)
    if len(candidates) < rule.total_questions:
        raise InsufficientPoolError(
            f"문제 은행 부족: 필요 {rule.total_questions}개, 조건에 맞는 문제 {len(candidates)}개"
        )

    remaining: Dict[str, List[str]] = {name: [] for name in BUCKETS}
    for q in candidates:
        remaining[difficulty_bucket(q.difficulty)].append(q.id)
    for name in BUCKETS:
        rng.shuffle(remaining[name])

    targets = bucket_targets(rule)
    chosen: List[str] = []
    shortfall: Dict[str, int] = {}
    for name in BUCKETS:
        take = min(targets[name], len(remaining[name]))
        chosen.extend(remaining[name][:take])
        remaining[name] = remaining[name][take:]
        shortfall[name] = targets[name] - take

    for name in BUCKETS:
        for neighbor in _FALLBACK[name]:
            if shortfall[name] == 0:
                break
            take = min(shortfall[name], len(remaining[neighbor]))
            if take:
                logger.info(f"랜덤 출제: {name} 구간 부족분 {take}개를 {neighbor} 구간에서 보충")
            chosen.extend(remaining[neighbor][:take])
            remaining[neighbor] = remaining[neighbor][take:]
            shortfall[name] -= take

    rng.shuffle(chosen)
    return chosen


def shuffle_for_attempt(
    questions: List[Question],
    settings: ExamSettings,
    rng: random.Random,
) -> Tuple[List[Question], Dict[str, List[str]]]:
    """
    시도별 표시 순서를 만든다. 원본 리스트는 변경하지 않는다.

    Returns:
        (정렬된 문제 리스트, {question_id: 보기 id 순서})
    """
    ordered = list(questions)
    if settings.shuffle_questions:
        rng.shuffle(ordered)

    option_order: Dict[str, List[str]] = {}
    for q in ordered:
        ids = q.option_ids
        if settings.shuffle_options and q.type not in _FIXED_OPTION_TYPES:
            rng.shuffle(ids)
        option_order[q.id] = ids
    return ordered, option_order

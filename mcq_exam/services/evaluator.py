"""
services/evaluator.py

문항 단위 정답 판정.
순수 Python 함수로 구성. 부작용 없이 같은 입력이면 항상 같은 결과 (재채점 멱등성).

Public API:
  - evaluate(question, answer, partial_credit) -> Verdict
  - validate_answer(question, answer)          : 저장 전 답안 형식 검증
"""

from fractions import Fraction
from typing import NamedTuple, Optional

from mcq_exam.models.attempt_model import AttemptAnswer
from mcq_exam.models.question_model import SINGLE_VALUE_TYPES, Question, QuestionType, parse_number
from mcq_exam.services.errors import AnswerValidationError


class Verdict(NamedTuple):
    is_correct: bool
    points_earned: Fraction  # 정확한 유리수. 합산 시 부동소수 오차 없음


_ZERO = Fraction(0)
_FULL = Fraction(1)
_UNANSWERED = Verdict(False, _ZERO)


def numerical_equal(submitted: str, expected: str) -> bool:
    """
    NUMERICAL 정답 비교. 허용 오차 없음.

    문자열이 같거나, 둘 다 숫자로 해석되어 정확히 같은 값이면 정답
    ("42" == "42.0"). 반올림/오차 범위는 적용하지 않는다.
    숫자 형식은 부호, 소수점, 지수 표기만 인정한다 ("1_000" 은 숫자가 아님).
    """
    if submitted == expected:
        return True
    a, b = parse_number(submitted), parse_number(expected)
    return a is not None and b is not None and a == b


def evaluate(
    question: Question,
    answer: Optional[AttemptAnswer],
    partial_credit: bool = False,
) -> Verdict:
    """
    문항 하나를 채점한다.

    Args:
        question:       문제 스냅샷.
        answer:         응시자 답안. None 또는 빈 선택은 미응답.
        partial_credit: MULTI_SELECT 부분 점수 허용 여부 (시험 설정).

    Returns:
        Verdict(is_correct, points_earned). points_earned 는 0 ~ 1 사이의 Fraction.
        감점(negative marking)은 여기서 적용하지 않는다 (score_service 담당).
    """
    if answer is None or answer.is_empty:
        return _UNANSWERED

    selected = answer.selected_options

    if question.type in (QuestionType.SINGLE_CORRECT, QuestionType.TRUE_FALSE):
        ok = len(selected) == 1 and selected[0] in question.correct_option_ids
        return Verdict(ok, _FULL if ok else _ZERO)

    if question.type == QuestionType.NUMERICAL:
        ok = len(selected) == 1 and numerical_equal(selected[0], question.correct_value)
        return Verdict(ok, _FULL if ok else _ZERO)

    # MULTI_SELECT
    correct = set(question.correct_option_ids)
    chosen = set(selected)
    if chosen == correct:
        return Verdict(True, _FULL)
    if not partial_credit:
        return Verdict(False, _ZERO)

    # 오답 하나가 정답 하나를 상쇄. 부분 점수 자체로는 음수가 되지 않음
    hits = len(chosen & correct)
    misses = len(chosen - correct)
    return Verdict(False, max(_ZERO, Fraction(hits - misses, len(correct))))


def validate_answer(question: Question, answer: AttemptAnswer) -> None:
    """
    저장 전에 답안 형식을 검증한다. 잘못되면 AnswerValidationError.

    - 단일 값 유형(SINGLE_CORRECT / TRUE_FALSE / NUMERICAL)은 최대 1개
    - 보기 선택 유형은 문제에 존재하는 보기 id만, 중복 없이
    - NUMERICAL 값은 숫자로 해석 가능해야 함
    """
    selected = answer.selected_options
    if question.type in SINGLE_VALUE_TYPES and len(selected) > 1:
        raise AnswerValidationError(
            f"Q{question.id}: {question.type.value} 문제에는 값이 하나만 허용됩니다 ({len(selected)}개 전송)."
        )

    if question.type == QuestionType.NUMERICAL:
        if selected and parse_number(selected[0]) is None:
            raise AnswerValidationError(f"Q{question.id}: 숫자 형식이 아닙니다 ({selected[0]!r}).")
        return

    if len(set(selected)) != len(selected):
        raise AnswerValidationError(f"Q{question.id}: 같은 보기가 중복 선택되었습니다.")

    unknown = [s for s in selected if s not in question.option_ids]
    if unknown:
        raise AnswerValidationError(f"Q{question.id}: 존재하지 않는 보기 id {unknown}")

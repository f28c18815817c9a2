"""
services/errors.py

시도/채점 도메인 예외.
api/routes.py 에서 HTTPException 으로 변환된다.
"""


class ExamError(Exception):
    """도메인 예외 기본 클래스."""


class NotFoundError(ExamError, LookupError):
    """시도, 시험, 문제 id를 찾을 수 없음."""


class InvalidStateError(ExamError, RuntimeError):
    """종료된 시도에 대한 변경 요청.

    저장은 무시, 제출은 기존 결과 반환으로 흡수되므로 외부로 전파되지 않는다.
    """


class InsufficientPoolError(ExamError, ValueError):
    """랜덤 출제 규칙을 만족할 만큼 문제 은행에 문제가 없음."""


class AnswerValidationError(ExamError, ValueError):
    """형식이 잘못된 답안 (예: 단일 정답 문제에 보기 2개 선택)."""


class ExamUnavailableError(ExamError):
    """응시 기간이 아니거나, 비공개 시험이거나, 응시 횟수를 모두 사용함."""

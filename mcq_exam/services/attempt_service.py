"""
services/attempt_service.py

시험 시도 상태 머신.

상태: in_progress → submitted | invalidated (단방향, 종료 후 변경 없음)

Public API (AttemptService):
  - start(exam_id, user_id)             : 진행 중 시도가 있으면 이어서, 없으면 새로 생성
  - save_answers(attempt_id, answers)   : 전송된 문항만 교체 (나머지 문항은 유지)
  - record_violation(attempt_id, v)     : 위반 로그 추가 (종료된 시도는 무시)
  - submit(attempt_id)                  : 채점 + 제출. 재호출 시 기존 결과 그대로 반환
  - invalidate(attempt_id, reason)      : 관리자 무효 처리
  - get(attempt_id)                     : 읽기 전용 스냅샷
  - remaining_ms(attempt_id)            : 남은 시간 (started_at 기준 재계산)

설계 원칙:
- 같은 시도에 대한 변경은 AttemptStore 잠금으로 직렬화
- 종료된 시도에 대한 저장/위반 기록은 조용히 무시 (InvalidStateError 흡수)
- 채점은 제출 시점에 한 번만 수행
"""

import logging
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import config
from mcq_exam.models.attempt_model import (
    Attempt,
    AttemptAnswer,
    AttemptStatus,
    AttemptViolation,
    ViolationType,
)
from mcq_exam.models.exam_model import Exam, Visibility
from mcq_exam.models.question_model import Question
from mcq_exam.services import exam_timer
from mcq_exam.services.attempt_store import AttemptStore
from mcq_exam.services.errors import (
    AnswerValidationError,
    ExamUnavailableError,
    InvalidStateError,
    NotFoundError,
)
from mcq_exam.services.evaluator import validate_answer
from mcq_exam.services.proctoring import apply_violation_policy
from mcq_exam.services.question_bank import QuestionRepository
from mcq_exam.services.randomizer import select_questions, shuffle_for_attempt
from mcq_exam.services.score_service import aggregate

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AttemptService:
    def __init__(
        self,
        bank: QuestionRepository,
        store: AttemptStore,
        clock: Callable[[], datetime] = utc_now,
        rng_factory: Callable[[], random.Random] = random.Random,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
        late_save_grace_seconds: int = config.LATE_SAVE_GRACE_SECONDS,
    ) -> None:
        self._bank = bank
        self._store = store
        self._clock = clock
        self._rng_factory = rng_factory
        self._id_factory = id_factory
        self._late_save_grace = timedelta(seconds=late_save_grace_seconds)

    # ── 조회 ────────────────────────────────────────────────────────────────

    def get_exam(self, exam_id: str) -> Exam:
        exam = self._bank.get_exam(exam_id)
        if exam is None:
            raise NotFoundError(f"시험을 찾을 수 없습니다: {exam_id}")
        return exam

    def get(self, attempt_id: str) -> Attempt:
        attempt = self._store.get(attempt_id)
        if attempt is None:
            raise NotFoundError(f"시도를 찾을 수 없습니다: {attempt_id}")
        return attempt

    def remaining_ms(self, attempt_id: str) -> int:
        attempt = self.get(attempt_id)
        if attempt.is_terminal:
            return 0
        return exam_timer.remaining_ms(attempt.started_at, attempt.exam_settings.duration, self._clock())

    # ── 시작 ────────────────────────────────────────────────────────────────

    def _load_questions(self, question_ids: List[str]) -> List[Question]:
        questions = []
        for qid in question_ids:
            q = self._bank.get_question(qid)
            if q is None:
                raise NotFoundError(f"문제를 찾을 수 없습니다: {qid}")
            questions.append(q)
        return questions

    def _check_available(self, exam: Exam, user_id: str, now: datetime) -> None:
        settings = exam.settings
        if exam.visibility != Visibility.PUBLISHED:
            raise ExamUnavailableError(f"공개되지 않은 시험입니다 ({exam.visibility.value}).")
        if settings.start_window and now < settings.start_window:
            raise ExamUnavailableError("아직 응시 기간이 아닙니다.")
        if settings.end_window and now > settings.end_window:
            raise ExamUnavailableError("응시 기간이 종료되었습니다.")

        used = sum(1 for a in self._store.list_for_user(exam.id, user_id) if a.is_terminal)
        if used >= settings.attempts_allowed:
            raise ExamUnavailableError(f"응시 가능 횟수({settings.attempts_allowed}회)를 모두 사용했습니다.")

    def start(self, exam_id: str, user_id: str) -> Attempt:
        """
        시도를 시작하거나 진행 중인 시도를 이어서 반환한다 (멱등).

        새 시도는 랜덤 출제/섞기를 거친 문제 순서와 문제 스냅샷을 고정한다.

        Raises:
            NotFoundError:         시험 또는 문제 id가 없음.
            ExamUnavailableError:  비공개/응시 기간 외/응시 횟수 초과 (새 시도일 때만).
            InsufficientPoolError: 랜덤 출제 규칙을 만족할 문제가 없음.
        """
        exam = self.get_exam(exam_id)

        with self._store.user_lock(exam_id, user_id):
            existing = self._store.find_active(exam_id, user_id)
            if existing is not None:
                logger.info(f"[{existing.id}] 진행 중인 시도 이어서 진행 (exam={exam_id}, user={user_id})")
                return existing

            now = self._clock()
            self._check_available(exam, user_id, now)

            rng = self._rng_factory()
            if exam.randomization_rule is not None:
                question_ids = select_questions(exam.randomization_rule, self._bank.list_questions(), rng)
            else:
                question_ids = list(exam.questions)

            questions, option_order = shuffle_for_attempt(
                self._load_questions(question_ids), exam.settings, rng
            )

            attempt = Attempt(
                id=self._id_factory(),
                user_id=user_id,
                exam_id=exam_id,
                question_ids=[q.id for q in questions],
                option_order=option_order,
                started_at=now,
                max_score=float(len(questions)),
                question_snapshot=questions,
                exam_settings=exam.settings,
                proctoring_settings=exam.proctoring,
            )
            self._store.insert(attempt)

        logger.info(f"[{attempt.id}] 시도 시작 (exam={exam_id}, user={user_id}, 문항 {len(questions)}개)")
        return attempt

    # ── 답안 저장 ───────────────────────────────────────────────────────────

    def _validate_payload(self, attempt: Attempt, answers: List[AttemptAnswer]) -> None:
        by_id = {q.id: q for q in attempt.question_snapshot}
        seen = set()
        for answer in answers:
            question = by_id.get(answer.question_id)
            if question is None:
                raise AnswerValidationError(f"이 시도에 없는 문제입니다: {answer.question_id}")
            if answer.question_id in seen:
                raise AnswerValidationError(f"같은 문제의 답안이 중복 전송되었습니다: {answer.question_id}")
            seen.add(answer.question_id)
            validate_answer(question, answer)

    def _ensure_in_progress(self, attempt: Attempt) -> None:
        if attempt.is_terminal:
            raise InvalidStateError(f"이미 종료된 시도입니다 ({attempt.status.value}).")

    def save_answers(self, attempt_id: str, answers: List[AttemptAnswer]) -> None:
        """
        전송된 문항의 답안을 통째로 교체한다. 전송되지 않은 문항은 그대로 둔다.

        종료된 시도이거나 제한 시간 + 유예를 넘긴 저장은 조용히 버린다.
        검증 실패 시 아무것도 저장하지 않고 AnswerValidationError.
        """
        with self._store.locked(attempt_id) as attempt:
            try:
                self._ensure_in_progress(attempt)
            except InvalidStateError as e:
                logger.info(f"[{attempt_id}] 답안 저장 무시: {e}")
                return

            now = self._clock()
            deadline = attempt.started_at + timedelta(minutes=attempt.exam_settings.duration)
            if now > deadline + self._late_save_grace:
                logger.warning(f"[{attempt_id}] 제한 시간 이후 도착한 저장 요청 무시 ({now.isoformat()})")
                return

            self._validate_payload(attempt, answers)

            for answer in answers:
                previous = attempt.answers.get(answer.question_id)
                time_spent = max(previous.time_spent, answer.time_spent) if previous else answer.time_spent
                attempt.answers[answer.question_id] = answer.model_copy(update={"time_spent": time_spent})

        logger.debug(f"[{attempt_id}] 답안 {len(answers)}개 저장")

    # ── 감독 위반 ───────────────────────────────────────────────────────────

    def record_violation(self, attempt_id: str, violation: AttemptViolation) -> None:
        """위반 로그에 추가. 종료된 시도면 무시."""
        with self._store.locked(attempt_id) as attempt:
            try:
                self._ensure_in_progress(attempt)
            except InvalidStateError as e:
                logger.info(f"[{attempt_id}] 위반 기록 무시: {e}")
                return

            new = apply_violation_policy(
                attempt.violations, violation, attempt.proctoring_settings, self._clock()
            )
            attempt.violations.extend(new)

        for v in new:
            if v.type == ViolationType.SUSPICIOUS_ACTIVITY:
                logger.warning(f"[{attempt_id}] 의심 행위 감지: {v.details}")
            else:
                logger.info(f"[{attempt_id}] 위반 기록: {v.type.value} ({v.details})")

    # ── 제출 / 무효 ─────────────────────────────────────────────────────────

    def submit(self, attempt_id: str) -> Attempt:
        """
        채점 후 제출 상태로 전환한다.

        이미 제출된 시도는 다시 채점하지 않고 저장된 결과를 그대로 반환한다.
        무효 처리된 시도는 점수 없이 그대로 반환한다.
        """
        with self._store.locked(attempt_id) as attempt:
            try:
                self._ensure_in_progress(attempt)
            except InvalidStateError:
                logger.info(f"[{attempt_id}] 중복 제출 요청, 기존 결과 반환 ({attempt.status.value})")
                return attempt.model_copy(deep=True)

            result = aggregate(attempt.question_snapshot, attempt.answers, attempt.exam_settings)
            attempt.score = result.score
            attempt.raw_points = result.raw_points
            attempt.max_score = result.max_score
            attempt.breakdown = result.breakdown
            attempt.submitted_at = self._clock()
            attempt.status = AttemptStatus.SUBMITTED
            submitted = attempt.model_copy(deep=True)

        logger.info(
            f"[{attempt_id}] 제출 완료: {submitted.score}점 "
            f"(원점수 {submitted.raw_points:.2f}/{submitted.max_score:.0f})"
        )
        return submitted

    def invalidate(self, attempt_id: str, reason: Optional[str] = None) -> Attempt:
        """
        진행 중 시도를 무효 처리한다 (관리자 전용, 자동 호출 없음).
        이미 종료된 시도는 변경하지 않고 그대로 반환한다.
        """
        with self._store.locked(attempt_id) as attempt:
            try:
                self._ensure_in_progress(attempt)
            except InvalidStateError as e:
                logger.info(f"[{attempt_id}] 무효 처리 무시: {e}")
                return attempt.model_copy(deep=True)

            attempt.status = AttemptStatus.INVALIDATED
            attempt.invalidated_at = self._clock()
            attempt.invalidation_reason = reason
            invalidated = attempt.model_copy(deep=True)

        logger.warning(f"[{attempt_id}] 시도 무효 처리: {reason or '사유 없음'}")
        return invalidated

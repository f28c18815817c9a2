"""
services/exam_session.py — 응시 화면 컨트롤러

응시자 측 상태(로컬 답안지, 검토 표시)와 진행 규칙을 담당한다.
  - 일정 주기(AUTOSAVE_INTERVAL_SECONDS)로 자동 저장. 실패하면 다음 틱에 재시도
  - 남은 시간이 0이 되면 제출을 정확히 한 번만 호출
  - 감독 신호는 ProctoringMonitor 로 전달

자동 저장은 보조 수단이고, 최종 저장은 제출 직전에 이루어진다.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

import config
from mcq_exam.models.attempt_model import Attempt, AttemptAnswer
from mcq_exam.services import exam_timer
from mcq_exam.services.attempt_service import AttemptService, utc_now
from mcq_exam.services.proctoring import MonitorResponse, ProctoringMonitor, ProctoringSignal

logger = logging.getLogger(__name__)


class QuestionStatus(str, Enum):
    ANSWERED = "answered"
    REVIEW = "review"
    NOT_VISITED = "not_visited"


class ExamSession:
    def __init__(
        self,
        service: AttemptService,
        exam_id: str,
        user_id: str,
        monitor: Optional[ProctoringMonitor] = None,
        clock: Callable[[], datetime] = utc_now,
        autosave_interval: int = config.AUTOSAVE_INTERVAL_SECONDS,
    ) -> None:
        self._service = service
        self._monitor = monitor
        self._clock = clock
        self._autosave_interval = autosave_interval
        self.exam_id = exam_id
        self.user_id = user_id

        self.attempt: Optional[Attempt] = None
        self.answers: Dict[str, AttemptAnswer] = {}
        self.current_index = 0
        self.result: Optional[Attempt] = None
        self._last_save: Optional[datetime] = None
        self._submit_lock = threading.Lock()

    # ── 시작 ────────────────────────────────────────────────────────────────

    def open(self) -> Attempt:
        """시도를 시작(또는 이어서)하고 서버에 저장된 답안으로 로컬 답안지를 채운다."""
        self.attempt = self._service.start(self.exam_id, self.user_id)
        self.answers = {qid: a.model_copy() for qid, a in self.attempt.answers.items()}
        self._last_save = self._clock()
        return self.attempt

    @property
    def question_ids(self) -> List[str]:
        return self.attempt.question_ids if self.attempt else []

    # ── 답안 조작 ───────────────────────────────────────────────────────────

    def change_answer(self, question_id: str, selected_options: List[str]) -> None:
        previous = self.answers.get(question_id)
        self.answers[question_id] = AttemptAnswer(
            question_id=question_id,
            selected_options=list(selected_options),
            time_spent=previous.time_spent if previous else 0,
            marked_for_review=previous.marked_for_review if previous else False,
        )

    def toggle_review(self, question_id: str) -> None:
        previous = self.answers.get(question_id) or AttemptAnswer(question_id=question_id)
        self.answers[question_id] = previous.model_copy(
            update={"marked_for_review": not previous.marked_for_review}
        )

    def add_time(self, question_id: str, seconds: int) -> None:
        previous = self.answers.get(question_id) or AttemptAnswer(question_id=question_id)
        self.answers[question_id] = previous.model_copy(
            update={"time_spent": previous.time_spent + max(0, seconds)}
        )

    def navigate(self, index: int) -> int:
        self.current_index = max(0, min(index, len(self.question_ids) - 1))
        return self.current_index

    # ── 진행 현황 ───────────────────────────────────────────────────────────

    def question_status(self, question_id: str) -> QuestionStatus:
        answer = self.answers.get(question_id)
        if answer and answer.marked_for_review:
            return QuestionStatus.REVIEW
        if answer and answer.selected_options:
            return QuestionStatus.ANSWERED
        return QuestionStatus.NOT_VISITED

    def answered_count(self) -> int:
        return sum(1 for a in self.answers.values() if a.selected_options)

    def review_count(self) -> int:
        return sum(1 for a in self.answers.values() if a.marked_for_review)

    def remaining_ms(self) -> int:
        return exam_timer.remaining_ms(
            self.attempt.started_at, self.attempt.exam_settings.duration, self._clock()
        )

    # ── 저장 / 제출 ─────────────────────────────────────────────────────────

    def save(self) -> None:
        """로컬 답안지 전체를 서버에 저장. 예외는 호출자에게 전달."""
        self._service.save_answers(self.attempt.id, list(self.answers.values()))
        self._last_save = self._clock()

    def tick(self) -> Optional[Attempt]:
        """
        주기적으로 호출된다.

        Returns:
            시간 초과로 제출했으면 제출 결과, 아니면 None.
        """
        if self.result is not None:
            return self.result
        if self.remaining_ms() == 0:
            logger.info(f"[{self.attempt.id}] 시간 종료, 자동 제출")
            return self.submit()

        now = self._clock()
        if (now - self._last_save).total_seconds() >= self._autosave_interval:
            try:
                self.save()
            except Exception as e:
                # 다음 틱에 다시 시도
                logger.warning(f"[{self.attempt.id}] 자동 저장 실패: {e}")
        return None

    def submit(self) -> Attempt:
        """최종 저장 후 제출. 타이머와 버튼이 동시에 눌러도 제출은 한 번만 호출된다."""
        with self._submit_lock:
            if self.result is not None:
                return self.result
            try:
                self.save()
            except Exception as e:
                logger.warning(f"[{self.attempt.id}] 최종 저장 실패, 마지막 저장본으로 제출: {e}")
            self.result = self._service.submit(self.attempt.id)
            return self.result

    # ── 감독 ────────────────────────────────────────────────────────────────

    def report_signal(self, signal: ProctoringSignal, details: Optional[str] = None) -> MonitorResponse:
        if self._monitor is None or self.result is not None:
            return MonitorResponse(None)
        return self._monitor.handle(self.attempt.id, signal, self.attempt.proctoring_settings, details)

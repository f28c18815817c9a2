"""
services/proctoring.py

부정행위 감독 프로토콜.
클라이언트가 관찰한 환경 신호(전체화면 이탈, 탭 전환, 복사/붙여넣기)를
AttemptViolation 으로 변환해 시도의 위반 로그에 추가한다.

Public API:
  - translate_signal(signal, settings, now, details)  : 신호 1개 → 위반 0~1개
  - apply_violation_policy(existing, violation, settings, now) : 탭 전환 초과 판정
  - ProctoringMonitor.handle(...)                      : 변환 + 기록, 절대 예외를 던지지 않음

정책:
- 탭 전환 수가 max_tab_switches 를 처음 넘는 순간 suspicious_activity 1건 추가
- 자동 무효 처리는 하지 않는다 (무효화는 관리자가 명시적으로 수행)
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Sequence, Set

from mcq_exam.models.attempt_model import AttemptViolation, ViolationType
from mcq_exam.models.exam_model import ProctoringSettings

logger = logging.getLogger(__name__)


class ProctoringSignal(str, Enum):
    FULLSCREEN_EXIT = "fullscreen_exit"
    FULLSCREEN_DECLINED = "fullscreen_declined"  # 전체화면 경고 모달에서 그대로 진행
    FULLSCREEN_ENTERED = "fullscreen_entered"    # 전체화면 (재)진입, 모달 해제
    VISIBILITY_HIDDEN = "visibility_hidden"
    COPY = "copy"
    CUT = "cut"
    PASTE = "paste"
    CONTEXT_MENU = "context_menu"


_CLIPBOARD_SIGNALS = (
    ProctoringSignal.COPY,
    ProctoringSignal.CUT,
    ProctoringSignal.PASTE,
    ProctoringSignal.CONTEXT_MENU,
)


class MonitorResponse(NamedTuple):
    violation: Optional[AttemptViolation]
    prevent_default: bool = False     # 클라이언트가 기본 동작(클립보드 등)을 막아야 함
    require_fullscreen: bool = False  # 전체화면 재요청 + 시험 화면 차단 모달 표시
    recorded: bool = False


def translate_signal(
    signal: ProctoringSignal,
    settings: ProctoringSettings,
    now: datetime,
    details: Optional[str] = None,
) -> MonitorResponse:
    """신호 하나를 위반 하나로 변환. 해당 감독 기능이 꺼져 있으면 위반 없음."""
    if signal == ProctoringSignal.VISIBILITY_HIDDEN:
        return MonitorResponse(AttemptViolation(type=ViolationType.TAB_SWITCH, timestamp=now, details=details))

    if signal == ProctoringSignal.FULLSCREEN_EXIT:
        if not settings.fullscreen_required:
            return MonitorResponse(None)
        violation = AttemptViolation(
            type=ViolationType.FULLSCREEN_EXIT,
            timestamp=now,
            details=details or "User exited fullscreen mode",
        )
        return MonitorResponse(violation, require_fullscreen=True)

    if signal == ProctoringSignal.FULLSCREEN_ENTERED:
        return MonitorResponse(None)

    if signal == ProctoringSignal.FULLSCREEN_DECLINED:
        if not settings.fullscreen_required:
            return MonitorResponse(None)
        violation = AttemptViolation(
            type=ViolationType.FULLSCREEN_EXIT,
            timestamp=now,
            details=details or "User proceeded without fullscreen",
        )
        return MonitorResponse(violation)

    if signal in _CLIPBOARD_SIGNALS:
        if not settings.block_copy_paste:
            return MonitorResponse(None)
        violation = AttemptViolation(
            type=ViolationType.COPY_PASTE,
            timestamp=now,
            details=details or f"Attempted {signal.value} operation",
        )
        return MonitorResponse(violation, prevent_default=True)

    logger.warning(f"알 수 없는 감독 신호: {signal!r}")
    return MonitorResponse(None)


def apply_violation_policy(
    existing: Sequence[AttemptViolation],
    violation: AttemptViolation,
    settings: ProctoringSettings,
    now: datetime,
) -> List[AttemptViolation]:
    """
    기록할 위반 목록을 반환한다 (입력 위반 + 정책상 추가되는 위반).
    시도 잠금 안에서 호출되어야 탭 전환 카운트가 정확하다.
    """
    if violation.type != ViolationType.TAB_SWITCH:
        return [violation]

    count = sum(1 for v in existing if v.type == ViolationType.TAB_SWITCH) + 1
    if violation.details is None:
        violation = violation.model_copy(update={"details": f"Tab switch #{count}"})

    out = [violation]
    if count == settings.max_tab_switches + 1:
        out.append(AttemptViolation(
            type=ViolationType.SUSPICIOUS_ACTIVITY,
            timestamp=now,
            details=f"Exceeded maximum tab switches ({settings.max_tab_switches})",
        ))
    return out


class ProctoringMonitor:
    """
    신호를 받아 위반으로 변환하고 recorder(attempt_id, violation)로 넘긴다.
    기록 실패는 로그만 남기고 다음 신호 처리를 막지 않는다.

    전체화면 이탈은 이탈 시점에 한 번 기록된다. 이어지는 경고 모달에서
    그대로 진행(FULLSCREEN_DECLINED)하거나 다시 진입(FULLSCREEN_ENTERED)하면
    모달만 닫히고 추가 위반은 남지 않는다. 이탈 없이 처음부터 전체화면을
    거부한 경우에만 FULLSCREEN_DECLINED 가 위반으로 기록된다.
    """

    def __init__(
        self,
        recorder: Callable[[str, AttemptViolation], object],
        clock: Callable[[], datetime],
    ) -> None:
        self._recorder = recorder
        self._clock = clock
        self._lock = threading.Lock()
        self._open_exits: Set[str] = set()  # 이탈이 기록되고 모달이 떠 있는 시도

    def _close_modal(self, attempt_id: str) -> bool:
        with self._lock:
            had_exit = attempt_id in self._open_exits
            self._open_exits.discard(attempt_id)
        return had_exit

    def handle(
        self,
        attempt_id: str,
        signal: ProctoringSignal,
        settings: ProctoringSettings,
        details: Optional[str] = None,
    ) -> MonitorResponse:
        if signal in (ProctoringSignal.FULLSCREEN_DECLINED, ProctoringSignal.FULLSCREEN_ENTERED):
            if self._close_modal(attempt_id):
                return MonitorResponse(None)

        try:
            response = translate_signal(signal, settings, self._clock(), details)
        except Exception as e:
            logger.error(f"[{attempt_id}] 감독 신호 변환 실패 ({signal}): {e}")
            return MonitorResponse(None)

        if response.violation is None:
            return response

        try:
            self._recorder(attempt_id, response.violation)
        except Exception as e:
            logger.error(f"[{attempt_id}] 위반 기록 실패 ({response.violation.type.value}): {e}")
            return response

        if signal == ProctoringSignal.FULLSCREEN_EXIT:
            with self._lock:
                self._open_exits.add(attempt_id)
        return response._replace(recorded=True)

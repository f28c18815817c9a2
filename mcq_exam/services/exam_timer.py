"""
services/exam_timer.py

남은 시험 시간을 계산하는 함수 모음.
남은 시간은 저장하지 않고 매번 started_at 과 현재 시각으로 다시 계산한다.
백그라운드 탭 등으로 틱이 빠져도 실제 응시 시간이 늘어나지 않는다.
"""

from datetime import datetime

import config


def remaining_ms(started_at: datetime, duration_minutes: int, now: datetime) -> int:
    """
    남은 시간 (밀리초).

    Args:
        started_at:       Attempt.started_at
        duration_minutes: ExamSettings.duration (분)
        now:              현재 시각 (started_at과 같은 tz 기준)

    Returns:
        duration*60000 - (now - started_at). 0 미만이면 0.
    """
    elapsed_ms = int((now - started_at).total_seconds() * 1000)
    return max(0, duration_minutes * 60_000 - elapsed_ms)


def is_time_up(started_at: datetime, duration_minutes: int, now: datetime) -> bool:
    return remaining_ms(started_at, duration_minutes, now) == 0


def format_remaining(milliseconds: int) -> str:
    """1:05:09 / 5:09 형식 문자열."""
    total_seconds = max(0, milliseconds) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def timer_level(milliseconds: int) -> str:
    """
    타이머 표시 단계.

    Returns:
        "critical": TIMER_CRITICAL_MINUTES 이하
        "warning":  TIMER_WARNING_MINUTES 이하
        "normal":   그 외
    """
    total_minutes = max(0, milliseconds) // 60_000
    if total_minutes <= config.TIMER_CRITICAL_MINUTES:
        return "critical"
    if total_minutes <= config.TIMER_WARNING_MINUTES:
        return "warning"
    return "normal"

from datetime import timedelta

import pytest

from mcq_exam.services.exam_timer import format_remaining, is_time_up, remaining_ms, timer_level

from conftest import START


def test_remaining_at_deadline_is_zero_not_negative():
    assert remaining_ms(START, 30, START + timedelta(minutes=30)) == 0
    assert remaining_ms(START, 30, START + timedelta(days=2)) == 0
    assert is_time_up(START, 30, START + timedelta(minutes=30))


def test_remaining_counts_down_in_milliseconds():
    assert remaining_ms(START, 30, START) == 1_800_000
    assert remaining_ms(START, 30, START + timedelta(seconds=1.5)) == 1_798_500
    assert not is_time_up(START, 30, START + timedelta(minutes=29))


@pytest.mark.parametrize("ms,expected", [
    (0, "0:00"),
    (59_999, "0:59"),
    (5 * 60_000 + 9_000, "5:09"),
    (3_909_000, "1:05:09"),
])
def test_format_remaining(ms, expected):
    assert format_remaining(ms) == expected


def test_timer_level():
    assert timer_level(60 * 60_000) == "normal"
    assert timer_level(15 * 60_000) == "warning"
    assert timer_level(5 * 60_000 + 59_000) == "critical"
    assert timer_level(0) == "critical"

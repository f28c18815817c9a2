from mcq_exam.models.attempt_model import AttemptViolation, ViolationType
from mcq_exam.models.exam_model import ProctoringSettings
from mcq_exam.services.proctoring import (
    ProctoringMonitor,
    ProctoringSignal,
    apply_violation_policy,
    translate_signal,
)

from conftest import START


STRICT = ProctoringSettings(fullscreen_required=True, max_tab_switches=3, block_copy_paste=True)
LENIENT = ProctoringSettings(max_tab_switches=3)


def test_visibility_change_is_always_a_tab_switch():
    for settings in (STRICT, LENIENT):
        response = translate_signal(ProctoringSignal.VISIBILITY_HIDDEN, settings, START)
        assert response.violation.type == ViolationType.TAB_SWITCH


def test_clipboard_blocked_only_when_enabled():
    blocked = translate_signal(ProctoringSignal.PASTE, STRICT, START)
    assert blocked.violation.type == ViolationType.COPY_PASTE
    assert blocked.violation.details == "Attempted paste operation"
    assert blocked.prevent_default

    allowed = translate_signal(ProctoringSignal.PASTE, LENIENT, START)
    assert allowed.violation is None
    assert not allowed.prevent_default


def test_context_menu_is_blocked_and_logged():
    response = translate_signal(ProctoringSignal.CONTEXT_MENU, STRICT, START)
    assert response.prevent_default
    assert response.violation.type == ViolationType.COPY_PASTE


def test_fullscreen_exit_requires_modal():
    response = translate_signal(ProctoringSignal.FULLSCREEN_EXIT, STRICT, START)
    assert response.violation.type == ViolationType.FULLSCREEN_EXIT
    assert response.require_fullscreen
    assert translate_signal(ProctoringSignal.FULLSCREEN_EXIT, LENIENT, START).violation is None


def test_proceeding_without_fullscreen_is_recorded():
    response = translate_signal(ProctoringSignal.FULLSCREEN_DECLINED, STRICT, START)
    assert response.violation.type == ViolationType.FULLSCREEN_EXIT
    assert not response.require_fullscreen


def test_policy_emits_suspicious_activity_once_at_crossing():
    log = []
    for _ in range(6):
        v = AttemptViolation(type=ViolationType.TAB_SWITCH, timestamp=START)
        log.extend(apply_violation_policy(log, v, STRICT, START))
    types = [v.type for v in log]
    assert types.count(ViolationType.TAB_SWITCH) == 6
    assert types.count(ViolationType.SUSPICIOUS_ACTIVITY) == 1
    assert types.index(ViolationType.SUSPICIOUS_ACTIVITY) == 4
    assert log[0].details == "Tab switch #1"


def test_policy_with_zero_allowed_switches():
    v = AttemptViolation(type=ViolationType.TAB_SWITCH, timestamp=START)
    out = apply_violation_policy([], v, ProctoringSettings(max_tab_switches=0), START)
    assert [x.type for x in out] == [ViolationType.TAB_SWITCH, ViolationType.SUSPICIOUS_ACTIVITY]


def test_monitor_records_violation(service, monitor):
    attempt = service.start("exam-1", "alice")
    response = monitor.handle(attempt.id, ProctoringSignal.COPY, attempt.proctoring_settings)
    assert response.recorded
    assert service.get(attempt.id).count_violations(ViolationType.COPY_PASTE) == 1


def test_monitor_keeps_going_after_recorder_failure(clock):
    calls = []

    def flaky(attempt_id, violation):
        calls.append(violation)
        if len(calls) == 1:
            raise RuntimeError("storage down")

    monitor = ProctoringMonitor(flaky, clock)
    first = monitor.handle("a1", ProctoringSignal.VISIBILITY_HIDDEN, STRICT)
    second = monitor.handle("a1", ProctoringSignal.VISIBILITY_HIDDEN, STRICT)
    assert not first.recorded
    assert second.recorded
    assert len(calls) == 2


def test_monitor_ignores_unknown_attempt_without_raising(monitor):
    response = monitor.handle("missing", ProctoringSignal.VISIBILITY_HIDDEN, STRICT)
    assert response.violation is not None
    assert not response.recorded


def test_monitor_after_submit_is_ignored(service, monitor):
    attempt = service.start("exam-1", "alice")
    service.submit(attempt.id)
    monitor.handle(attempt.id, ProctoringSignal.VISIBILITY_HIDDEN, attempt.proctoring_settings)
    assert service.get(attempt.id).violations == []


def test_proceeding_after_exit_does_not_log_a_second_violation(service, monitor):
    attempt = service.start("exam-1", "alice")
    settings = attempt.proctoring_settings
    exited = monitor.handle(attempt.id, ProctoringSignal.FULLSCREEN_EXIT, settings)
    declined = monitor.handle(attempt.id, ProctoringSignal.FULLSCREEN_DECLINED, settings)
    assert exited.require_fullscreen and exited.recorded
    assert declined.violation is None
    assert service.get(attempt.id).count_violations(ViolationType.FULLSCREEN_EXIT) == 1

    # 다음 이탈은 새로 기록된다
    monitor.handle(attempt.id, ProctoringSignal.FULLSCREEN_EXIT, settings)
    monitor.handle(attempt.id, ProctoringSignal.FULLSCREEN_ENTERED, settings)
    assert service.get(attempt.id).count_violations(ViolationType.FULLSCREEN_EXIT) == 2


def test_declining_fullscreen_at_start_is_recorded(service, monitor):
    attempt = service.start("exam-1", "alice")
    response = monitor.handle(attempt.id, ProctoringSignal.FULLSCREEN_DECLINED, attempt.proctoring_settings)
    assert response.recorded
    assert service.get(attempt.id).count_violations(ViolationType.FULLSCREEN_EXIT) == 1


def test_reentering_fullscreen_is_never_a_violation():
    assert translate_signal(ProctoringSignal.FULLSCREEN_ENTERED, STRICT, START).violation is None

import random
from datetime import datetime, timedelta, timezone

import pytest

from mcq_exam.models.exam_model import Exam, ExamSettings, ProctoringSettings
from mcq_exam.models.question_model import Option, Question, QuestionType
from mcq_exam.services.attempt_service import AttemptService
from mcq_exam.services.attempt_store import AttemptStore
from mcq_exam.services.proctoring import ProctoringMonitor
from mcq_exam.services.question_bank import InMemoryQuestionBank


START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_question(qid, qtype=QuestionType.SINGLE_CORRECT, correct=("B",), options=("A", "B", "C", "D"),
                  topic="General", difficulty=3, tags=(), is_published=True):
    if qtype == QuestionType.NUMERICAL:
        opts = [Option(id="answer", text=correct[0], is_correct=True)]
    else:
        opts = [Option(id=o, text=f"option {o}", is_correct=o in correct) for o in options]
    return Question(
        id=qid,
        stem=f"Question {qid}",
        type=qtype,
        options=opts,
        topic=topic,
        difficulty=difficulty,
        tags=list(tags),
        is_published=is_published,
    )


def scenario_questions():
    """단일 정답(B) / 복수 정답({A, C}) / 숫자(42) 세 문항."""
    return [
        make_question("q1", correct=("B",), topic="Algebra", difficulty=2),
        make_question("q2", QuestionType.MULTI_SELECT, correct=("A", "C"), topic="Algebra", difficulty=3),
        make_question("q3", QuestionType.NUMERICAL, correct=("42",), topic="Arithmetic", difficulty=1),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return ExamSettings(duration=60, negative_marking=-0.25, partial_credit=True, attempts_allowed=2)


@pytest.fixture
def bank(settings):
    bank = InMemoryQuestionBank()
    for q in scenario_questions():
        bank.add_question(q)
    bank.add_exam(Exam(
        id="exam-1",
        title="Scenario",
        questions=["q1", "q2", "q3"],
        settings=settings,
        proctoring=ProctoringSettings(max_tab_switches=3, block_copy_paste=True, fullscreen_required=True),
    ))
    return bank


@pytest.fixture
def store():
    return AttemptStore()


@pytest.fixture
def service(bank, store, clock):
    seeds = iter(range(1000))
    return AttemptService(bank, store, clock=clock, rng_factory=lambda: random.Random(next(seeds)))


@pytest.fixture
def monitor(service, clock):
    return ProctoringMonitor(service.record_violation, clock)

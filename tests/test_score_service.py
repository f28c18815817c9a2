from mcq_exam.models.attempt_model import AttemptAnswer
from mcq_exam.models.exam_model import ExamSettings
from mcq_exam.models.question_model import QuestionType
from mcq_exam.services.score_service import aggregate, is_passed

from conftest import make_question, scenario_questions


def answers(**selected):
    return {qid: AttemptAnswer(question_id=qid, selected_options=list(sel)) for qid, sel in selected.items()}


def test_worked_example_with_negative_marking_and_partial_credit():
    settings = ExamSettings(duration=60, negative_marking=-0.25, partial_credit=True)
    result = aggregate(scenario_questions(), answers(q1=["A"], q2=["A"], q3=["42"]), settings)
    assert result.raw_points == 1.25
    assert result.max_score == 3
    assert result.score == 42


def test_unanswered_questions_are_not_penalised():
    settings = ExamSettings(duration=60, negative_marking=-1)
    result = aggregate(scenario_questions(), answers(q3=["42"], q2=[]), settings)
    assert result.raw_points == 1.0
    assert result.score == 33


def test_partial_answer_is_not_penalised_but_zero_partial_is():
    settings = ExamSettings(duration=60, negative_marking=-0.5, partial_credit=True)
    qs = scenario_questions()
    # {A, B}: 정답 1 + 오답 1 → 부분 점수 0 → 완전 오답으로 감점
    assert aggregate(qs, answers(q2=["A", "B"]), settings).raw_points == -0.5
    assert aggregate(qs, answers(q2=["A"]), settings).raw_points == 0.5


def test_score_is_clamped_to_zero():
    settings = ExamSettings(duration=60, negative_marking=-1)
    result = aggregate(scenario_questions(), answers(q1=["A"], q2=["B"], q3=["1"]), settings)
    assert result.raw_points == -3
    assert result.score == 0


def test_perfect_score():
    settings = ExamSettings(duration=60)
    result = aggregate(scenario_questions(), answers(q1=["B"], q2=["C", "A"], q3=["42"]), settings)
    assert result.score == 100


def test_half_rounds_up():
    settings = ExamSettings(duration=60)
    qs = [make_question(f"q{i}") for i in range(8)]
    # 1/8 = 12.5% → 13
    assert aggregate(qs, answers(q0=["B"]), settings).score == 13


def test_breakdown_counts_correct_questions_not_points():
    settings = ExamSettings(duration=60, negative_marking=-0.25, partial_credit=True)
    result = aggregate(scenario_questions(), answers(q1=["B"], q2=["A"], q3=["42"]), settings)
    by_topic = {k: v.model_dump() for k, v in result.breakdown.by_topic.items()}
    assert by_topic == {
        "Algebra": {"correct": 1, "total": 2},
        "Arithmetic": {"correct": 1, "total": 1},
    }
    assert list(result.breakdown.by_difficulty) == ["1", "2", "3"]
    assert result.breakdown.by_difficulty["3"].correct == 0


def test_aggregate_does_not_depend_on_order():
    settings = ExamSettings(duration=60, negative_marking=-0.25, partial_credit=True)
    given = answers(q1=["A"], q2=["A"], q3=["42"])
    forward = aggregate(scenario_questions(), given, settings)
    backward = aggregate(list(reversed(scenario_questions())), dict(reversed(list(given.items()))), settings)
    assert forward == backward


def test_empty_exam_scores_zero():
    result = aggregate([], {}, ExamSettings(duration=10))
    assert result.score == 0
    assert result.max_score == 0


def test_is_passed():
    assert is_passed(60)
    assert not is_passed(59.9)
    assert is_passed(40, pass_score=40)


def test_exact_half_percent_rounds_up():
    settings = ExamSettings(duration=60, negative_marking=-0.1)
    qs = [make_question(f"q{i}") for i in range(1, 9)]
    result = aggregate(qs, answers(q1=["B"], q2=["B"], q3=["A"], q4=["C"]), settings)
    # (2 - 0.2) / 8 = 22.5%
    assert result.raw_points == 1.8
    assert result.score == 23


def test_fractional_penalties_give_same_score_in_any_order():
    settings = ExamSettings(duration=60, negative_marking=-0.1, partial_credit=True)
    qs = [
        make_question("w1"),
        make_question("w2"),
        make_question("ok"),
        make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C")),
    ]
    given = answers(w1=["A"], w2=["C"], ok=["B"], m=["A"])
    forward = aggregate(qs, given, settings)
    backward = aggregate(list(reversed(qs)), given, settings)
    # -0.1 - 0.1 + 1 + 0.5 = 1.3 → 32.5%
    assert forward.score == backward.score == 33
    assert forward.raw_points == backward.raw_points == 1.3

import pytest

from mcq_exam.models.attempt_model import AttemptAnswer
from mcq_exam.models.question_model import QuestionType
from mcq_exam.services.errors import AnswerValidationError
from mcq_exam.services.evaluator import evaluate, numerical_equal, validate_answer

from conftest import make_question


def answer(qid, *selected):
    return AttemptAnswer(question_id=qid, selected_options=list(selected))


@pytest.mark.parametrize("selected,expected", [("A", False), ("B", True), ("C", False), ("D", False)])
def test_single_correct_matches_only_the_correct_option(selected, expected):
    q = make_question("q", correct=("B",))
    verdict = evaluate(q, answer("q", selected))
    assert verdict.is_correct is expected
    assert verdict.points_earned == (1.0 if expected else 0.0)


def test_true_false():
    q = make_question("tf", QuestionType.TRUE_FALSE, correct=("T",), options=("T", "F"))
    assert evaluate(q, answer("tf", "T")).is_correct
    assert not evaluate(q, answer("tf", "F")).is_correct


def test_unanswered_is_incorrect_with_zero_points():
    q = make_question("q")
    assert evaluate(q, None) == (False, 0.0)
    assert evaluate(q, answer("q")) == (False, 0.0)


def test_multi_select_exact_match_is_order_independent():
    q = make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C"))
    assert evaluate(q, answer("m", "C", "A")) == (True, 1.0)


@pytest.mark.parametrize("selected", [("A",), ("A", "B"), ("A", "C", "D"), ("B",), ("B", "D")])
def test_multi_select_without_partial_credit_scores_zero_unless_exact(selected):
    q = make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C"))
    assert evaluate(q, answer("m", *selected), partial_credit=False) == (False, 0.0)


def test_partial_credit_grows_toward_correct_set():
    q = make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C", "E"), options=("A", "B", "C", "D", "E"))
    steps = [(), ("A",), ("A", "C"), ("A", "C", "E")]
    points = [evaluate(q, answer("m", *s), partial_credit=True).points_earned for s in steps]
    assert points == sorted(points)
    assert points[-1] == 1.0


def test_partial_credit_drops_when_a_wrong_option_is_added():
    q = make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C", "E"), options=("A", "B", "C", "D", "E"))
    base = evaluate(q, answer("m", "A", "C"), partial_credit=True).points_earned
    with_wrong = evaluate(q, answer("m", "A", "C", "B"), partial_credit=True).points_earned
    assert with_wrong < base
    full = evaluate(q, answer("m", "A", "C", "E"), partial_credit=True).points_earned
    full_with_wrong = evaluate(q, answer("m", "A", "C", "E", "B"), partial_credit=True).points_earned
    assert full_with_wrong < full


def test_partial_credit_is_floored_at_zero():
    q = make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C"))
    assert evaluate(q, answer("m", "A", "B", "D"), partial_credit=True) == (False, 0.0)
    assert evaluate(q, answer("m", "A"), partial_credit=True) == (False, 0.5)


def test_numerical_is_exact_without_tolerance():
    q = make_question("n", QuestionType.NUMERICAL, correct=("42",))
    assert evaluate(q, answer("n", "42")).is_correct
    assert evaluate(q, answer("n", "42.0")).is_correct
    assert not evaluate(q, answer("n", "42.0001")).is_correct
    assert not evaluate(q, answer("n", "41.9999")).is_correct


def test_numerical_rejects_digit_grouping_and_special_values():
    q = make_question("n", QuestionType.NUMERICAL, correct=("1000",))
    assert evaluate(q, answer("n", "1e3")).is_correct
    assert not numerical_equal("1_000", "1000")
    assert not evaluate(q, answer("n", "1_000")).is_correct
    for value in ("1_000", "Infinity", "NaN", "0x10"):
        with pytest.raises(AnswerValidationError):
            validate_answer(q, answer("n", value))


def test_numerical_equal_handles_non_numbers():
    assert numerical_equal("abc", "abc")
    assert not numerical_equal("abc", "42")
    assert not numerical_equal("NaN", "NaN ")


def test_evaluate_is_pure():
    q = make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C"))
    a = answer("m", "A", "D")
    results = {evaluate(q, a, partial_credit=True) for _ in range(5)}
    assert len(results) == 1
    assert a.selected_options == ["A", "D"]


def test_validate_rejects_multiple_values_for_single_correct():
    q = make_question("q")
    with pytest.raises(AnswerValidationError):
        validate_answer(q, answer("q", "A", "B"))


def test_validate_rejects_unknown_and_duplicate_options():
    q = make_question("m", QuestionType.MULTI_SELECT, correct=("A", "C"))
    with pytest.raises(AnswerValidationError):
        validate_answer(q, answer("m", "Z"))
    with pytest.raises(AnswerValidationError):
        validate_answer(q, answer("m", "A", "A"))


def test_validate_numerical_requires_a_number():
    q = make_question("n", QuestionType.NUMERICAL, correct=("42",))
    validate_answer(q, answer("n", "3.5"))
    validate_answer(q, answer("n"))
    with pytest.raises(AnswerValidationError):
        validate_answer(q, answer("n", "forty-two"))

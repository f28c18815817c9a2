"""
api/sample_data.py — 데모용 문제 은행 / 시험

LOAD_SAMPLE_DATA=1 이면 앱 시작 시 InMemoryQuestionBank 에 적재된다.
"""

from mcq_exam.models.exam_model import (
    DifficultyDistribution,
    Exam,
    ExamSettings,
    ProctoringSettings,
    RandomizationRule,
    ShowSolutions,
)
from mcq_exam.models.question_model import Option, Question, QuestionType


def _single(qid, stem, options, correct, topic, difficulty, tags=(), explanation=None):
    return Question(
        id=qid,
        stem=stem,
        type=QuestionType.SINGLE_CORRECT,
        options=[Option(id=oid, text=text, is_correct=(oid == correct)) for oid, text in options],
        topic=topic,
        difficulty=difficulty,
        tags=list(tags),
        explanation=explanation,
    )


SAMPLE_QUESTIONS = [
    _single(
        "q1", "What is the derivative of $x^2$?",
        [("A", "$x$"), ("B", "$2x$"), ("C", "$x^2$"), ("D", "$2$")],
        "B", "Calculus", 2, ("math", "calculus"),
        "Power rule: d/dx x^n = n x^(n-1).",
    ),
    Question(
        id="q2",
        stem="Which of the following are prime numbers?",
        type=QuestionType.MULTI_SELECT,
        options=[
            Option(id="A", text="2", is_correct=True),
            Option(id="B", text="4", is_correct=False),
            Option(id="C", text="7", is_correct=True),
            Option(id="D", text="9", is_correct=False),
        ],
        topic="Number Theory",
        difficulty=3,
        tags=["math", "number-theory"],
        explanation="2 and 7 have no divisors other than 1 and themselves.",
    ),
    Question(
        id="q3",
        stem="What is $6 \\times 7$?",
        type=QuestionType.NUMERICAL,
        options=[Option(id="answer", text="42", is_correct=True)],
        topic="Arithmetic",
        difficulty=1,
        tags=["math", "arithmetic"],
    ),
    Question(
        id="q4",
        stem="The sum of the interior angles of a triangle is 180 degrees.",
        type=QuestionType.TRUE_FALSE,
        options=[Option(id="T", text="True", is_correct=True), Option(id="F", text="False")],
        topic="Geometry",
        difficulty=1,
        tags=["math", "geometry"],
    ),
    _single(
        "q5", "Which law states that F = ma?",
        [("A", "Newton's first law"), ("B", "Newton's second law"), ("C", "Newton's third law")],
        "B", "Mechanics", 2, ("physics",),
    ),
    _single(
        "q6", "What is the integral of $1/x$?",
        [("A", "$\\ln|x| + C$"), ("B", "$x^{-2} + C$"), ("C", "$e^x + C$")],
        "A", "Calculus", 3, ("math", "calculus"),
    ),
    _single(
        "q7", "Which quantity is conserved in an elastic collision but not in an inelastic one?",
        [("A", "Momentum"), ("B", "Kinetic energy"), ("C", "Mass")],
        "B", "Mechanics", 3, ("physics",),
    ),
    _single(
        "q8", "What is the eigenvalue of the identity matrix?",
        [("A", "0"), ("B", "1"), ("C", "-1")],
        "B", "Linear Algebra", 4, ("math", "linear-algebra"),
    ),
    _single(
        "q9", "Which series converges?",
        [("A", "$\\sum 1/n$"), ("B", "$\\sum 1/n^2$"), ("C", "$\\sum n$")],
        "B", "Calculus", 4, ("math", "calculus"),
    ),
    _single(
        "q10", "What is the entropy change of a reversible adiabatic process?",
        [("A", "Positive"), ("B", "Zero"), ("C", "Negative")],
        "B", "Thermodynamics", 5, ("physics", "thermodynamics"),
    ),
    _single(
        "q11", "What is $\\gcd(12, 18)$?",
        [("A", "3"), ("B", "6"), ("C", "9")],
        "B", "Number Theory", 2, ("math", "number-theory"),
    ),
    _single(
        "q12", "Draft question: which unit measures force?",
        [("A", "Joule"), ("B", "Newton")],
        "B", "Mechanics", 1, ("physics", "draft"),
    ),
]


SAMPLE_EXAMS = [
    Exam(
        id="1",
        title="Mathematics Final Exam",
        description="Calculus, number theory and arithmetic.",
        questions=["q1", "q2", "q3"],
        settings=ExamSettings(
            duration=120,
            attempts_allowed=1,
            negative_marking=-0.25,
            partial_credit=True,
            shuffle_questions=True,
            shuffle_options=True,
            show_solutions=ShowSolutions.AFTER_SUBMIT,
        ),
        proctoring=ProctoringSettings(
            fullscreen_required=True,
            max_tab_switches=2,
            block_copy_paste=True,
        ),
    ),
    Exam(
        id="2",
        title="Mixed Science Quiz",
        description="Randomly drawn from the question bank.",
        randomization_rule=RandomizationRule(
            total_questions=5,
            difficulty_distribution=DifficultyDistribution(easy=40, medium=40, hard=20),
            exclude_tags=["draft"],
        ),
        settings=ExamSettings(
            duration=30,
            attempts_allowed=2,
            shuffle_options=True,
            show_solutions=ShowSolutions.AFTER_WINDOW,
        ),
        proctoring=ProctoringSettings(max_tab_switches=5),
    ),
]

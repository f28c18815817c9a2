"""
services/question_bank.py

문제/시험 저장소 인터페이스와 인메모리 구현.
실제 문서 DB 연동은 범위 밖. QuestionRepository 를 구현한 객체로 교체하면 된다.
"""

import logging
import threading
from typing import Dict, List, Optional, Protocol

from mcq_exam.models.exam_model import Exam
from mcq_exam.models.question_model import Question

logger = logging.getLogger(__name__)


class QuestionRepository(Protocol):
    def get_question(self, question_id: str) -> Optional[Question]: ...

    def get_exam(self, exam_id: str) -> Optional[Exam]: ...

    def list_questions(self, published_only: bool = True) -> List[Question]: ...


class InMemoryQuestionBank:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._questions: Dict[str, Question] = {}
        self._exams: Dict[str, Exam] = {}

    def add_question(self, question: Question) -> None:
        with self._lock:
            self._questions[question.id] = question

    def add_exam(self, exam: Exam) -> None:
        with self._lock:
            self._exams[exam.id] = exam

    def load(self, questions: List[Question], exams: List[Exam]) -> None:
        for q in questions:
            self.add_question(q)
        for e in exams:
            self.add_exam(e)
        logger.info(f"문제 은행 로드: 문제 {len(questions)}개, 시험 {len(exams)}개")

    def get_question(self, question_id: str) -> Optional[Question]:
        with self._lock:
            return self._questions.get(question_id)

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        with self._lock:
            return self._exams.get(exam_id)

    def list_questions(self, published_only: bool = True) -> List[Question]:
        with self._lock:
            questions = list(self._questions.values())
        if published_only:
            questions = [q for q in questions if q.is_published]
        return sorted(questions, key=lambda q: q.id)

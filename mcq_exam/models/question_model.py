"""
models/question_model.py

객관식 문제 모델 (시도 시작 시점에 스냅샷으로 고정됨).
Pydantic v2 적용
"""

import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class QuestionType(str, Enum):
    SINGLE_CORRECT = "single_correct"
    MULTI_SELECT = "multi_select"
    TRUE_FALSE = "true_false"
    NUMERICAL = "numerical"


# 선택지가 하나뿐이어야 하는 유형
SINGLE_VALUE_TYPES = (
    QuestionType.SINGLE_CORRECT,
    QuestionType.TRUE_FALSE,
    QuestionType.NUMERICAL,
)

# 부호, 소수점, 지수 표기만 허용 ("1_000", "NaN", "Infinity" 불가)
_NUMBER_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def parse_number(value: str) -> Optional[Decimal]:
    """숫자 문자열을 정확한 Decimal로 변환. 숫자 형식이 아니면 None."""
    text = value.strip()
    if not _NUMBER_RE.fullmatch(text):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


class Option(BaseModel):
    id: str = Field(..., min_length=1, description="보기 식별자 (예: A, B, C)")
    text: str = Field(..., description="보기 내용. NUMERICAL 문제에서는 정답 값")
    is_correct: bool = Field(default=False, description="정답 여부")


class Question(BaseModel):
    """
    객관식 문제 모델

    시험 시도 중에는 변경되지 않는다. 시도 시작 시 스냅샷을 떠서
    채점까지 같은 객체를 사용한다.
    """
    id: str = Field(
        ...,
        min_length=1,
        description="문제 고유 식별자"
    )
    stem: str = Field(
        ...,
        min_length=1,
        description="발문 (Markdown + LaTeX)"
    )
    type: QuestionType = Field(
        ...,
        description="문제 유형"
    )
    options: List[Option] = Field(
        ...,
        description="보기 리스트 (순서 유지)"
    )
    correct_count: int = Field(
        default=0,
        ge=0,
        description="MULTI_SELECT에서 골라야 하는 정답 개수 (미지정 시 자동 계산)"
    )
    difficulty: int = Field(
        ...,
        ge=1,
        le=5,
        description="난이도 (1~5)"
    )
    topic: str = Field(
        ...,
        min_length=1,
        description="주제 (결과 분석 그룹핑 기준)"
    )
    subtopic: Optional[str] = Field(None, description="세부 주제")
    tags: List[str] = Field(default_factory=list, description="랜덤 출제 필터용 태그")
    explanation: Optional[str] = Field(None, description="해설")
    is_published: bool = Field(default=True, description="출제 가능 여부")

    @field_validator('options')
    @classmethod
    def validate_option_ids(cls, v: List[Option]) -> List[Option]:
        """
        검증 로직 1: 보기는 최소 1개 이상, 보기 id는 중복될 수 없다.
        """
        if not v:
            raise ValueError("보기(options)는 최소 1개 이상의 항목이 필요합니다.")
        ids = [opt.id for opt in v]
        if len(set(ids)) != len(ids):
            raise ValueError(f"보기 id가 중복되었습니다: {ids}")
        return v

    @model_validator(mode='after')
    def validate_correct_options(self) -> 'Question':
        """
        검증 로직 2: 유형별 정답 개수 규칙.
        - SINGLE_CORRECT / TRUE_FALSE / NUMERICAL: 정답 정확히 1개
        - NUMERICAL: 정답 값은 숫자 형식 (응시자 답안도 숫자만 허용되므로)
        - MULTI_SELECT: 정답 1개 이상, correct_count는 정답 수와 일치
        """
        n_correct = sum(1 for opt in self.options if opt.is_correct)
        if self.type in SINGLE_VALUE_TYPES:
            if n_correct != 1:
                raise ValueError(f"{self.type.value} 문제는 정답이 정확히 1개여야 합니다 (현재 {n_correct}개).")
            if self.type == QuestionType.NUMERICAL and parse_number(self.correct_value) is None:
                raise ValueError(f"numerical 문제의 정답 값이 숫자가 아닙니다 ({self.correct_value!r}).")
            return self

        if n_correct == 0:
            raise ValueError("multi_select 문제는 정답이 1개 이상이어야 합니다.")
        if self.correct_count == 0:
            self.correct_count = n_correct
        elif self.correct_count != n_correct:
            raise ValueError(f"correct_count({self.correct_count})가 정답 보기 수({n_correct})와 다릅니다.")
        return self

    @property
    def option_ids(self) -> List[str]:
        return [opt.id for opt in self.options]

    @property
    def correct_option_ids(self) -> List[str]:
        return [opt.id for opt in self.options if opt.is_correct]

    @property
    def correct_value(self) -> str:
        """NUMERICAL 문제의 정답 값 (정답 보기의 text)."""
        return next(opt.text for opt in self.options if opt.is_correct)

    def public_view(self) -> dict:
        """응시자에게 내려보낼 형태 (정답/해설 제거)."""
        return {
            "id": self.id,
            "stem": self.stem,
            "type": self.type.value,
            "options": [{"id": o.id, "text": o.text} for o in self.options]
            if self.type != QuestionType.NUMERICAL else [],
            "correct_count": self.correct_count if self.type == QuestionType.MULTI_SELECT else None,
            "topic": self.topic,
            "difficulty": self.difficulty,
        }

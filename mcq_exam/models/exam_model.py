"""
models/exam_model.py

시험 설정 모델 (시간, 감점, 부분 점수, 섞기, 감독 설정, 랜덤 출제 규칙).
시험 CRUD는 외부 저장소 책임이고, 여기서는 시도/채점에 필요한 필드만 다룬다.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ShowSolutions(str, Enum):
    NEVER = "never"
    AFTER_SUBMIT = "after_submit"
    AFTER_WINDOW = "after_window"


class Visibility(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ExamSettings(BaseModel):
    duration: int = Field(..., gt=0, description="제한 시간 (분)")
    attempts_allowed: int = Field(default=1, ge=1, description="허용 응시 횟수")
    negative_marking: float = Field(
        default=0.0,
        le=0,
        description="오답 1문항당 가산되는 점수 (0 이하, 예: -0.25)"
    )
    partial_credit: bool = Field(default=False, description="MULTI_SELECT 부분 점수 허용")
    shuffle_questions: bool = Field(default=False)
    shuffle_options: bool = Field(default=False)
    show_solutions: ShowSolutions = Field(default=ShowSolutions.AFTER_SUBMIT)
    start_window: Optional[datetime] = Field(None, description="응시 가능 시작 시각")
    end_window: Optional[datetime] = Field(None, description="응시 가능 종료 시각")

    @field_validator('start_window', 'end_window')
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """tz 정보가 없는 시각은 UTC로 간주."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode='after')
    def validate_window(self) -> 'ExamSettings':
        if self.start_window and self.end_window and self.end_window <= self.start_window:
            raise ValueError("end_window는 start_window 이후여야 합니다.")
        return self


class ProctoringSettings(BaseModel):
    fullscreen_required: bool = Field(default=False)
    max_tab_switches: int = Field(default=999, ge=0, description="허용 탭 전환 횟수")
    block_copy_paste: bool = Field(default=False)
    require_webcam: bool = Field(default=False)
    require_microphone: bool = Field(default=False)


class DifficultyDistribution(BaseModel):
    easy: float = Field(..., ge=0, le=100, description="난이도 1~2 비율 (%)")
    medium: float = Field(..., ge=0, le=100, description="난이도 3 비율 (%)")
    hard: float = Field(..., ge=0, le=100, description="난이도 4~5 비율 (%)")

    @model_validator(mode='after')
    def validate_total(self) -> 'DifficultyDistribution':
        total = self.easy + self.medium + self.hard
        if abs(total - 100) > 1e-9:
            raise ValueError(f"난이도 비율의 합은 100이어야 합니다 (현재 {total}).")
        return self


class RandomizationRule(BaseModel):
    total_questions: int = Field(..., gt=0)
    difficulty_distribution: DifficultyDistribution
    include_tags: List[str] = Field(default_factory=list, description="하나 이상 포함해야 하는 태그")
    exclude_tags: List[str] = Field(default_factory=list, description="하나라도 있으면 제외할 태그")


class Exam(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(default="")
    questions: List[str] = Field(default_factory=list, description="고정 출제 문제 id 목록")
    randomization_rule: Optional[RandomizationRule] = Field(
        None,
        description="지정 시 시도마다 문제 은행에서 랜덤 출제"
    )
    settings: ExamSettings
    proctoring: ProctoringSettings = Field(default_factory=ProctoringSettings)
    visibility: Visibility = Field(default=Visibility.PUBLISHED)

    @model_validator(mode='after')
    def validate_question_source(self) -> 'Exam':
        if not self.questions and self.randomization_rule is None:
            raise ValueError("questions 또는 randomization_rule 중 하나는 필요합니다.")
        return self

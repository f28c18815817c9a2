"""
models/attempt_model.py

시험 시도(Attempt) 상태를 담는 OMR 카드 모델.
Pydantic BaseModel 기반: 직렬화/역직렬화 및 타입 안전성 확보.

상태 전이는 단방향이다: in_progress → submitted | invalidated.
전이 규칙 자체는 services/attempt_service.py 가 담당하고, 이 모듈은 데이터만 정의한다.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from mcq_exam.models.exam_model import ExamSettings, ProctoringSettings
from mcq_exam.models.question_model import Question


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    INVALIDATED = "invalidated"


TERMINAL_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.INVALIDATED)


class ViolationType(str, Enum):
    TAB_SWITCH = "tab_switch"
    COPY_PASTE = "copy_paste"
    FULLSCREEN_EXIT = "fullscreen_exit"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


class AttemptAnswer(BaseModel):
    question_id: str = Field(..., min_length=1)
    selected_options: List[str] = Field(
        default_factory=list,
        description="선택한 보기 id 목록 (순서 유지). NUMERICAL은 입력 값 문자열 1개"
    )
    time_spent: int = Field(default=0, ge=0, description="문항별 누적 풀이 시간 (초)")
    marked_for_review: bool = Field(default=False)

    @property
    def is_empty(self) -> bool:
        return not self.selected_options


class AttemptViolation(BaseModel):
    type: ViolationType
    timestamp: datetime
    details: Optional[str] = None


class BreakdownBucket(BaseModel):
    correct: int = 0
    total: int = 0


class Breakdown(BaseModel):
    by_topic: Dict[str, BreakdownBucket] = Field(default_factory=dict)
    by_difficulty: Dict[str, BreakdownBucket] = Field(default_factory=dict)


class Attempt(BaseModel):
    """
    사용자의 시험 시도 전체 상태를 표현하는 모델.

    Attributes:
        question_ids:      랜덤 출제/섞기가 끝난 문제 순서 (시작 시 고정).
        option_order:      문항별 화면에 표시할 보기 순서.
        answers:           {question_id: AttemptAnswer}. 문항당 최대 1개.
        violations:        감독 위반 로그 (추가만 가능).
        started_at:        시작 시각. 남은 시간은 항상 이 값에서 다시 계산한다.
        submitted_at:      제출 시각. 제출과 동시에 한 번만 기록.
        score:             0~100 환산 점수. 제출 전에는 None.
        question_snapshot: 채점용 문제 스냅샷. 직렬화에서 제외 (정답 유출 방지).
        exam_settings:     시작 시점의 시험 설정 스냅샷. 직렬화에서 제외.
        proctoring_settings: 시작 시점의 감독 설정 스냅샷. 직렬화에서 제외.
    """

    id: str
    user_id: str
    exam_id: str
    question_ids: List[str] = Field(default_factory=list)
    option_order: Dict[str, List[str]] = Field(default_factory=dict)
    answers: Dict[str, AttemptAnswer] = Field(default_factory=dict)
    violations: List[AttemptViolation] = Field(default_factory=list)
    started_at: datetime
    submitted_at: Optional[datetime] = None
    score: Optional[int] = None
    raw_points: Optional[float] = None
    max_score: float = 0.0
    breakdown: Breakdown = Field(default_factory=Breakdown)
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    invalidated_at: Optional[datetime] = None
    invalidation_reason: Optional[str] = None

    question_snapshot: List[Question] = Field(default_factory=list, exclude=True)
    exam_settings: Optional[ExamSettings] = Field(None, exclude=True)
    proctoring_settings: Optional[ProctoringSettings] = Field(None, exclude=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def count_violations(self, vtype: ViolationType) -> int:
        return sum(1 for v in self.violations if v.type == vtype)

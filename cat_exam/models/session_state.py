"""
models/session_state.py

시험 진행 상태를 담는 OMR 카드 모델과 채점 결과 모델.
Pydantic BaseModel 기반 — 직렬화/역직렬화 및 타입 안전성 확보.
상태 변경은 ExamController를 통해서만 이루어진다.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

from cat_exam.models.question_model import Question


class ExamPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class SubmissionStatus(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    SUBMITTED = "submitted"
    FAILED = "failed"


class ExamSession(BaseModel):
    """
    사용자의 시험 세션 전체 상태를 표현하는 모델.

    Attributes:
        questions:         시작 시 고정되는 문제 리스트 (이후 변경 없음).
        answers:           사용자 답안지. {question.id: 선택한 보기 key}
        flags:             "헷갈림" 표시. {question.id: bool} — 채점과 무관.
        current_index:     현재 풀고 있는 문제의 인덱스 (0-based).
        remaining_seconds: 남은 시간 (초). 진행 중에는 감소만 한다.
        phase:             uninitialized → in_progress → finished
    """

    questions: List[Question] = Field(
        default_factory=list,
        description="시험 문제 리스트 (시작 후 불변)"
    )
    answers: Dict[int, str] = Field(
        default_factory=dict,
        description="사용자 답안지. key: question.id, value: 선택한 보기 key"
    )
    flags: Dict[int, bool] = Field(
        default_factory=dict,
        description="헷갈림 표시. key: question.id"
    )
    current_index: int = Field(
        default=0,
        ge=0,
        description="현재 풀고 있는 문제 인덱스 (0-based)"
    )
    remaining_seconds: int = Field(
        default=0,
        ge=0,
        description="남은 시간 (초)"
    )
    phase: ExamPhase = Field(
        default=ExamPhase.UNINITIALIZED,
        description="세션 단계"
    )

    @property
    def total(self) -> int:
        return len(self.questions)

    def question_by_id(self, question_id: int) -> Question | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


class ExamResult(BaseModel):
    """결과 저장소에 한 번만 기록되는 채점 결과."""

    course_id: int
    user_id: str
    score_value: int
    correct_count: int = Field(ge=0)
    wrong_count: int = Field(ge=0)
    empty_count: int = Field(ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total(self) -> int:
        return self.correct_count + self.wrong_count + self.empty_count

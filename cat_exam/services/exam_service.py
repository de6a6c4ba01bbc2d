"""
services/exam_service.py

시험 채점 및 결과 분석 비즈니스 로직.
순수 Python 함수로 구성 — UI 코드, 전역 상태 변경 없음.

채점 정책 (config.SCORING_POLICY):
  - "points":     정답 1개당 POINTS_PER_CORRECT점 (상한 없음). 기본값.
  - "percentage": 정답 수 / 전체 문항 수 × 100, 반올림(0.5 올림) 정수.
"""

from collections import defaultdict
from enum import Enum
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

import config
from cat_exam.models.question_model import Question

NO_EXPLANATION = "해설이 없습니다."


class Outcome(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    EMPTY = "empty"


class Tally(BaseModel):
    """정답/오답/미응답 집계."""

    model_config = ConfigDict(frozen=True)

    correct: int = Field(ge=0)
    wrong: int = Field(ge=0)
    empty: int = Field(ge=0)

    @property
    def total(self) -> int:
        return self.correct + self.wrong + self.empty


class ScoringPolicy(BaseModel):
    """점수 산정 방식. kind는 "points" 또는 "percentage"."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["points", "percentage"] = Field(
        default="points",
        description="채점 정책"
    )
    points_per_correct: PositiveInt = Field(
        default=5,
        description="정답 1개당 점수 (points 정책에서만 사용)"
    )

    @classmethod
    def from_config(cls) -> "ScoringPolicy":
        return cls(kind=config.SCORING_POLICY, points_per_correct=config.POINTS_PER_CORRECT)

    def score(self, tally: Tally) -> int:
        if self.kind == "points":
            return tally.correct * self.points_per_correct
        if tally.total == 0:
            return 0
        # round()는 은행가 반올림이므로 정수 연산으로 0.5 올림
        return (tally.correct * 200 + tally.total) // (tally.total * 2)

    def max_score(self, total_questions: int) -> int:
        if self.kind == "points":
            return total_questions * self.points_per_correct
        return 100


def classify(question: Question, user_answers: Dict[int, str]) -> Outcome:
    """
    한 문제의 채점 결과를 판정한다.

    - 답안 없음 → EMPTY
    - 정답 key와 일치 → CORRECT
    - 그 외 → WRONG
    """
    answer = user_answers.get(question.id)
    if answer is None:
        return Outcome.EMPTY
    if answer == question.correct_option_key:
        return Outcome.CORRECT
    return Outcome.WRONG


def tally_answers(questions: List[Question], user_answers: Dict[int, str]) -> Tally:
    """
    정답/오답/미응답 수를 센다.
    세 값의 합은 항상 len(questions)와 같다.
    """
    counts = {outcome: 0 for outcome in Outcome}
    for q in questions:
        counts[classify(q, user_answers)] += 1
    return Tally(
        correct=counts[Outcome.CORRECT],
        wrong=counts[Outcome.WRONG],
        empty=counts[Outcome.EMPTY],
    )


def get_incorrect_questions(
    questions: List[Question],
    user_answers: Dict[int, str],
) -> List[Question]:
    """
    오답 문제 리스트를 반환한다 (오답 노트용). 미응답 포함, 원본 순서 유지.
    """
    return [q for q in questions if classify(q, user_answers) is not Outcome.CORRECT]


def build_review(
    questions: List[Question],
    user_answers: Dict[int, str],
) -> List[Dict[str, object]]:
    """
    제출 후 전체 문제 해설 보기용 데이터.

    Returns:
        [{"index", "id", "text", "image_url", "options", "category",
          "user_answer", "correct_option_key", "outcome", "explanation"}, ...]
        user_answer는 미응답이면 None.
    """
    rows = []
    for idx, q in enumerate(questions):
        rows.append({
            "index": idx,
            "id": q.id,
            "text": q.text,
            "image_url": q.image_url,
            "options": [opt.model_dump() for opt in q.options],
            "category": q.category,
            "user_answer": user_answers.get(q.id),
            "correct_option_key": q.correct_option_key,
            "outcome": classify(q, user_answers).value,
            "explanation": q.explanation or NO_EXPLANATION,
        })
    return rows


def calculate_category_scores(
    questions: List[Question],
    user_answers: Dict[int, str],
) -> List[Dict[str, object]]:
    """
    분류별 점수를 계산하여 반환한다.

    Returns:
        [{"category": str, "total": int, "correct": int,
          "wrong": int, "empty": int, "score": float}, ...]
        분류명 기준 정렬. score는 분류 내 정답률(%).
    """
    buckets: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"total": 0, "correct": 0, "wrong": 0, "empty": 0}
    )

    for q in questions:
        b = buckets[q.category or "기타"]
        b["total"] += 1
        b[classify(q, user_answers).value] += 1

    result = []
    for cat in sorted(buckets):
        b = buckets[cat]
        score = round(b["correct"] / b["total"] * 100, 1) if b["total"] else 0.0
        result.append({"category": cat, **b, "score": score})
    return result


def format_remaining(seconds: int) -> str:
    """남은 시간을 MM:SS 문자열로 변환."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def is_time_warning(seconds: int) -> bool:
    """남은 시간이 경고 기준 미만인지 여부."""
    return seconds < config.TIME_WARNING_SECONDS

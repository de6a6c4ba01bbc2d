"""
services/collaborators.py

시험 컨트롤러가 사용하는 외부 협력자 인터페이스와 상위 조립 로직.

- QuestionStore:      과목별 문제 조회 (id 오름차순, 결정적 순서)
- CourseCatalog:      과목 정보 조회 (시험 시간 출처)
- EntitlementService: 프리미엄 여부 조회
- ResultSink:         결과 1회 저장 + 이력 조회
- IdentityProvider:   액세스 토큰 → 사용자 id

체험판 문항 제한은 컨트롤러가 아니라 여기(load_exam_questions)에서 처리한다.
"""

from typing import List, Optional, Protocol

import config
from cat_exam.models.question_model import Course, Question
from cat_exam.models.session_state import ExamResult


class QuestionStore(Protocol):
    def fetch_questions(self, course_id: int) -> List[Question]: ...


class CourseCatalog(Protocol):
    def fetch_course(self, course_id: int) -> Optional[Course]: ...


class EntitlementService(Protocol):
    def is_full_access(self, user_id: str) -> bool: ...


class ResultSink(Protocol):
    def submit_result(self, result: ExamResult) -> None: ...
    def fetch_results(self, user_id: str) -> List[ExamResult]: ...


class IdentityProvider(Protocol):
    def user_id_for(self, access_token: str) -> Optional[str]: ...


def load_exam_questions(
    store: QuestionStore,
    entitlements: EntitlementService,
    course_id: int,
    user_id: str,
    trial_limit: int = config.TRIAL_QUESTION_LIMIT,
) -> List[Question]:
    """
    시험에 쓸 문제 리스트를 만든다.
    프리미엄이 아니면 앞쪽 trial_limit개만 남긴다.
    """
    questions = sorted(store.fetch_questions(course_id), key=lambda q: q.id)
    if entitlements.is_full_access(user_id):
        return questions
    return questions[:trial_limit]


def resolve_duration_seconds(course: Optional[Course]) -> int:
    """과목의 시험 시간(초). 정보가 없거나 0 이하이면 기본값."""
    if course is None or not course.duration_minutes or course.duration_minutes <= 0:
        return config.DEFAULT_DURATION_SECONDS
    return course.duration_minutes * 60

"""
services/memory_backend.py

프로세스 내부 협력자 구현. BACKEND_URL이 없을 때(로컬 실행)와 테스트에서 사용.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from cat_exam.models.question_model import Course, Question
from cat_exam.models.session_state import ExamResult
from cat_exam.services.errors import ResultSubmissionFailed

logger = logging.getLogger(__name__)


class InMemoryBackend:
    """
    QuestionStore / CourseCatalog / EntitlementService / ResultSink /
    IdentityProvider를 한 객체로 제공한다.
    """

    def __init__(
        self,
        courses: Iterable[Course] = (),
        questions: Optional[Dict[int, List[Question]]] = None,
        premium_users: Iterable[str] = (),
        tokens: Optional[Dict[str, str]] = None,
    ):
        self._lock = threading.Lock()
        self.courses: Dict[int, Course] = {c.id: c for c in courses}
        self.questions: Dict[int, List[Question]] = dict(questions or {})
        self.premium_users = set(premium_users)
        self.tokens: Dict[str, str] = dict(tokens or {})
        self.results: List[ExamResult] = []
        self.fail_submissions = False

    def fetch_questions(self, course_id: int) -> List[Question]:
        return sorted(self.questions.get(course_id, []), key=lambda q: q.id)

    def fetch_course(self, course_id: int) -> Optional[Course]:
        return self.courses.get(course_id)

    def is_full_access(self, user_id: str) -> bool:
        return user_id in self.premium_users

    def user_id_for(self, access_token: str) -> Optional[str]:
        return self.tokens.get(access_token)

    def submit_result(self, result: ExamResult) -> None:
        if self.fail_submissions:
            raise ResultSubmissionFailed("결과 저장소에 연결할 수 없습니다.")
        with self._lock:
            self.results.append(result)
        logger.debug(f"결과 저장: {result.user_id} / 과목 {result.course_id} / {result.score_value}점")

    def fetch_results(self, user_id: str) -> List[ExamResult]:
        with self._lock:
            mine = [r for r in self.results if r.user_id == user_id]
        return sorted(mine, key=lambda r: r.timestamp, reverse=True)
